"""
Sentinel - Utilities Package
============================
"""

from .retry import retry_async, backoff_delay, RETRYABLE_EXCEPTIONS

__all__ = ["retry_async", "backoff_delay", "RETRYABLE_EXCEPTIONS"]

"""
Sentinel - AI Package
=====================
"""

from .service import AIService, FALLBACK_RESPONSE, MAX_ATTEMPTS

__all__ = ["AIService", "FALLBACK_RESPONSE", "MAX_ATTEMPTS"]

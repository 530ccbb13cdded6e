"""
Sentinel - Services Package
===========================

Long-lived services shared by the cogs:

    - automod/: message classification, detectors, violation handling
    - ai/: OpenAI-backed text generation
    - warning_service.py: warning ledger facade and escalation
    - logging_service.py: moderation log embeds
    - warning_cleanup.py: periodic expiry and rate-window sweeps
"""

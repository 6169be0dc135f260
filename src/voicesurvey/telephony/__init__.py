"""
Telephony package: webhook endpoints, provider configuration, recording relay.

Keep package import side-effects to a minimum to avoid circular imports.
"""

__all__ = [
    "config",
    "recordings",
]

"""
Automated voice survey driven by telephony call-flow webhooks.
"""

__version__ = "0.1.0"

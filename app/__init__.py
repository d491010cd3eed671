"""Cyber Risk Dashboard.

Multi-tenant Microsoft 365 security posture platform: maturity scoring,
secure score tracking, quarterly risk reports and PDF exports for the
client organizations an MSP looks after.
"""

__version__ = "0.1.0"
__author__ = "Cyber Risk Team"

"""
UTC clock helpers shared by the domain models and validators.
"""

from datetime import date, datetime, timezone


def utc_today() -> date:
    """Current calendar date in UTC."""
    return datetime.now(timezone.utc).date()


def utc_timestamp() -> str:
    """Current instant as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()

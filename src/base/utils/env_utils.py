"""
Environment utilities
"""

import os

LOCAL_ENVIRONMENTS = {"development", "local"}


def is_local_development() -> bool:
    """True when ENVIRONMENT names a developer machine (development/local)."""
    return os.getenv("ENVIRONMENT", "").lower() in LOCAL_ENVIRONMENTS

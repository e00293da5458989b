"""
claimwitness/core/time.py

THE ONLY CLOCK READ IN CLAIMWITNESS.

Claims and epochs are stamped in whole unix seconds (timestampS).
Every module that needs "now" imports unix_timestamp() from here.
"""

import time


def unix_timestamp() -> int:
    """Return the current time as whole seconds since the unix epoch."""
    return int(time.time())

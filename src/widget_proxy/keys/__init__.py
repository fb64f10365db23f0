"""
Upstream API key pool.

Holds the configured credentials in rotation order together with the
shared prompt ID, the rotation cursor and per-key health records.

Usage:
    >>> from widget_proxy.keys import Credential, KeyPool
    >>> pool = KeyPool([Credential("sk-1", "Primary")], prompt_id="pmpt_abc")
    >>> pool.current_credential().label
    'Primary'
"""

from widget_proxy.keys.exceptions import ConfigurationError
from widget_proxy.keys.pool import Credential, HealthRecord, KeyHealth, KeyPool

__all__ = [
    "ConfigurationError",
    "Credential",
    "HealthRecord",
    "KeyHealth",
    "KeyPool",
]

"""
Skill sync API client layer.

Provides async HTTP communication with the skill sync server.
"""

from skillsync.api.http_client import AsyncHttpClient, Session, sanitize_for_log

__all__ = ["AsyncHttpClient", "Session", "sanitize_for_log"]

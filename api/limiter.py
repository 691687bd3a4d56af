"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in the route modules
under api/routes/ (to apply per-route limits with @limiter.limit()).

All routes must use this one instance so they share a single in-memory
counter store. A limiter built per module keeps its own counters and its
limits never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

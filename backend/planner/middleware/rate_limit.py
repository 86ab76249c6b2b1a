"""Per-IP request limits for the HTTP surface."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from planner.config import settings

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.DEFAULT_RATE_LIMIT])

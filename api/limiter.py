"""
api/limiter.py -- The one slowapi Limiter the API shares.

api/main.py mounts it (SlowAPIMiddleware + app.state.limiter) and
api/routes/v1/users.py decorates the login route with it. Both must use this
instance: counters live in its storage, so a second Limiter would count
separately and never trip.

Clients are keyed by remote address. Storage comes from RATE_LIMIT_STORAGE
(in-process memory by default, which is per worker).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri=get_settings().rate_limit_storage)

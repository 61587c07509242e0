# dnsportal/core/limiter.py

from slowapi import Limiter
from slowapi.util import get_remote_address

from dnsportal.core.config import settings

# ---------------------------------------------
# Rate Limiting Configuration
# ---------------------------------------------
# One limiter for the whole app: main.py registers it on app.state and the
# routes decorate themselves with its per-route limits.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)

"""
------------------------------------------------
Purpose:
Throttles clients per IP so order creation, payment verification and
subdomain creation can't be hammered.

Used By:
- main.py (app.state.limiter + SlowAPIMiddleware + 429 handler).
- Routes via @limiter.limit(settings.RATE_LIMIT_...).
------------------------------------------------
"""

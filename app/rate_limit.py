"""
UserDesk - Centralized rate limiting configuration.

All rate limit decorators should import `limiter` from this module.
The limiter keys on client IP address.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# --- Rate limit constants ---

# Credential endpoints (login, register, password reset) - strict to prevent brute force
RATE_LIMIT_AUTH = "5/minute"

# Authenticated account writes (profile, password, delete)
RATE_LIMIT_GENERAL = "30/minute"

# Read-heavy endpoints (session checks, listings)
RATE_LIMIT_READ = "60/minute"

# Admin panel endpoints - moderate (admin traffic is low volume)
RATE_LIMIT_ADMIN = "30/minute"

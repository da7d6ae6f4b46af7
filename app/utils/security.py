"""
Security utilities and authentication
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import time
from collections import defaultdict

from sqlalchemy.orm import Session

from app.core.access import Caller
from app.core.config import settings
from app.core.db import get_db
from app.core.errors import Unauthorized
from app.models import User
from app.services.identity import get_identity_provider
from app.services.user_service import UserService

# Simple in-memory rate limiter
rate_limiter = defaultdict(list)

security = HTTPBearer(auto_error=False)

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Verify the bearer session and load the matching staff account"""
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Missing bearer token")

    identity = get_identity_provider().verify_session(credentials.credentials)
    return UserService.resolve_session(db, identity)

def get_caller(user: User = Depends(get_current_user)) -> Caller:
    """Caller passed explicitly into every service call"""
    return Caller.from_user(user)

def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    current_time = time.time()
    minute_ago = current_time - 60

    # Clean old requests
    rate_limiter[client_ip] = [
        req_time for req_time in rate_limiter[client_ip]
        if req_time > minute_ago
    ]

    if len(rate_limiter[client_ip]) >= limit:
        return False

    rate_limiter[client_ip].append(current_time)
    return True

def get_client_ip(request) -> str:
    """Extract client IP from request"""
    # Check for forwarded IP first (for reverse proxy setups)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"

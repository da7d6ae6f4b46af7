"""
Identity collaborator adapters.

The ledger only needs "is this session valid" and "who is it"; role, venue
and quota come from the users table. Two backends are supported:

* jwt: HS256 session tokens issued by the hosted auth service
* firebase: Firebase ID tokens, with account provisioning through the
  Firebase Admin SDK
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

import jwt  # PyJWT
from firebase_admin import auth as firebase_auth
from firebase_admin.exceptions import FirebaseError

from app.core.config import settings
from app.core.errors import StoreError, Unauthorized, ValidationError
from app.services.firebase_client import get_firebase_app

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionIdentity:
    uid: str
    email: Optional[str] = None


class JwtIdentity:
    """Verifies session JWTs signed with the shared project secret"""

    def __init__(self, secret: str, audience: str):
        self.secret = secret
        self.audience = audience

    def verify_session(self, token: str) -> SessionIdentity:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=["HS256"],
                audience=self.audience,
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError as e:
            raise Unauthorized(f"Invalid session: {e}")
        return SessionIdentity(uid=str(payload["sub"]), email=payload.get("email"))

    def issue_session(self, uid: str, email: Optional[str] = None, ttl_seconds: int = 3600) -> str:
        """Mint a session token (local development and tests)"""
        now = int(time.time())
        payload: dict[str, Any] = {
            "sub": uid,
            "aud": self.audience,
            "iat": now,
            "exp": now + ttl_seconds,
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self.secret, algorithm="HS256")

    def create_account(self, email: str, password: Optional[str], display_name: str) -> Optional[str]:
        # Accounts live in the hosted auth service; the row is bound by email on first session
        logger.info(f"Account for {email} will be bound on first sign-in")
        return None

    def invite_link(self, email: str) -> Optional[str]:
        return None

    def delete_account(self, uid: str) -> None:
        return None


class FirebaseIdentity:
    """Firebase Authentication backed identity"""

    def verify_session(self, token: str) -> SessionIdentity:
        try:
            claims = firebase_auth.verify_id_token(token, app=get_firebase_app())
        except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
                firebase_auth.RevokedIdTokenError) as e:
            raise Unauthorized(f"Invalid session: {e}")
        return SessionIdentity(uid=claims["uid"], email=claims.get("email"))

    def create_account(self, email: str, password: Optional[str], display_name: str) -> Optional[str]:
        try:
            record = firebase_auth.create_user(
                email=email,
                password=password,
                display_name=display_name,
                app=get_firebase_app(),
            )
        except firebase_auth.EmailAlreadyExistsError:
            raise ValidationError("Email is already registered")
        except FirebaseError as e:
            logger.error(f"Firebase account creation failed for {email}: {e}")
            raise StoreError("Could not create the sign-in account")
        return record.uid

    def invite_link(self, email: str) -> Optional[str]:
        action = firebase_auth.ActionCodeSettings(url=f"{settings.BASE_URL.rstrip('/')}/auth/reset-password")
        try:
            return firebase_auth.generate_password_reset_link(email, action, app=get_firebase_app())
        except FirebaseError as e:
            logger.error(f"Invite link generation failed for {email}: {e}")
            raise StoreError("Could not generate the invitation link")

    def delete_account(self, uid: str) -> None:
        try:
            firebase_auth.delete_user(uid, app=get_firebase_app())
        except firebase_auth.UserNotFoundError:
            logger.warning(f"Firebase account {uid} already gone")


@lru_cache(maxsize=1)
def get_identity_provider():
    """Identity backend selected by AUTH_PROVIDER"""
    if settings.AUTH_PROVIDER == "firebase":
        return FirebaseIdentity()
    return JwtIdentity(settings.SESSION_JWT_SECRET, settings.SESSION_JWT_AUDIENCE)

"""
Firebase Admin SDK initialization for the firebase identity backend
"""

from __future__ import annotations

import base64
import json
import logging
import os
from functools import lru_cache
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials

from app.core.config import settings

logger = logging.getLogger(__name__)

APP_NAME = "guestlist-identity"


def load_service_account() -> Optional[dict[str, Any]]:
    """Service account info from FIREBASE_CREDENTIALS_JSON, _B64 or _FILE (first one set wins)"""
    if settings.FIREBASE_CREDENTIALS_JSON:
        return json.loads(settings.FIREBASE_CREDENTIALS_JSON)
    if settings.FIREBASE_CREDENTIALS_B64:
        return json.loads(base64.b64decode(settings.FIREBASE_CREDENTIALS_B64).decode("utf-8"))
    if settings.FIREBASE_CREDENTIALS_FILE and os.path.exists(settings.FIREBASE_CREDENTIALS_FILE):
        with open(settings.FIREBASE_CREDENTIALS_FILE, "r", encoding="utf-8") as f:
            return json.load(f)
    return None


@lru_cache(maxsize=1)
def get_firebase_app() -> firebase_admin.App:
    """Named Firebase app used only for Authentication calls"""
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass

    info = load_service_account()
    if not info:
        raise RuntimeError(
            "AUTH_PROVIDER=firebase needs FIREBASE_CREDENTIALS_JSON, FIREBASE_CREDENTIALS_B64 or FIREBASE_CREDENTIALS_FILE"
        )

    app = firebase_admin.initialize_app(credentials.Certificate(info), name=APP_NAME)
    logger.info(f"Firebase identity initialized for project {info.get('project_id', 'unknown')}")
    return app

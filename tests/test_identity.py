"""
Tests for the identity backends
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from firebase_admin import auth as firebase_auth

from app.core.config import settings
from app.core.errors import Unauthorized, ValidationError
from app.services import firebase_client, identity
from app.services.identity import FirebaseIdentity, JwtIdentity, SessionIdentity, get_identity_provider

@pytest.fixture
def firebase(monkeypatch):
    """Firebase Auth calls replaced with mocks"""
    monkeypatch.setattr(identity, "get_firebase_app", lambda: "app")
    fake = MagicMock()
    for name in ("verify_id_token", "create_user", "generate_password_reset_link", "delete_user"):
        monkeypatch.setattr(firebase_auth, name, getattr(fake, name))
    return fake

class TestFirebaseIdentity:
    """Test the firebase backend"""

    def test_verify_session(self, firebase):
        firebase.verify_id_token.return_value = {"uid": "abc", "email": "x@y.kr"}
        assert FirebaseIdentity().verify_session("id-token") == SessionIdentity(uid="abc", email="x@y.kr")

    def test_invalid_token(self, firebase):
        firebase.verify_id_token.side_effect = ValueError("malformed")
        with pytest.raises(Unauthorized):
            FirebaseIdentity().verify_session("garbage")

    def test_create_account(self, firebase):
        firebase.create_user.return_value = SimpleNamespace(uid="new-uid")
        assert FirebaseIdentity().create_account("dj@club.kr", "secret1", "DJ") == "new-uid"
        firebase.create_user.assert_called_once_with(
            email="dj@club.kr", password="secret1", display_name="DJ", app="app"
        )

    def test_existing_email(self, firebase):
        firebase.create_user.side_effect = firebase_auth.EmailAlreadyExistsError("exists", None, None)
        with pytest.raises(ValidationError):
            FirebaseIdentity().create_account("dj@club.kr", None, "DJ")

    def test_invite_link(self, firebase):
        firebase.generate_password_reset_link.return_value = "https://reset"
        assert FirebaseIdentity().invite_link("dj@club.kr") == "https://reset"

class TestProviderSelection:
    """Test AUTH_PROVIDER switching"""

    def test_default_is_jwt(self, monkeypatch):
        monkeypatch.setattr(settings, "AUTH_PROVIDER", "jwt")
        get_identity_provider.cache_clear()
        try:
            assert isinstance(get_identity_provider(), JwtIdentity)
        finally:
            get_identity_provider.cache_clear()

    def test_firebase(self, monkeypatch):
        monkeypatch.setattr(settings, "AUTH_PROVIDER", "firebase")
        get_identity_provider.cache_clear()
        try:
            assert isinstance(get_identity_provider(), FirebaseIdentity)
        finally:
            get_identity_provider.cache_clear()

    def test_firebase_without_credentials(self, monkeypatch):
        for name in ("FIREBASE_CREDENTIALS_JSON", "FIREBASE_CREDENTIALS_B64", "FIREBASE_CREDENTIALS_FILE"):
            monkeypatch.setattr(settings, name, None)
        firebase_client.get_firebase_app.cache_clear()

        with pytest.raises(RuntimeError):
            firebase_client.get_firebase_app()

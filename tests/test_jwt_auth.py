import jwt
import pytest

from app.core.exceptions import AuthenticationError, ConfigurationError
from app.core.jwt_auth import ACCESS_TOKEN_TYPE, JWTManager

SECRET = "unit-test-secret"


def test_round_trip_carries_identity():
    manager = JWTManager(secret_key=SECRET)

    payload = manager.decode_token(manager.create_access_token(42, "COACH"))

    assert payload["sub"] == "42"
    assert payload["role"] == "COACH"
    assert payload["type"] == ACCESS_TOKEN_TYPE


def test_expired_token_is_rejected():
    manager = JWTManager(secret_key=SECRET)
    token = manager.create_access_token(1, "PARENT", expires_minutes=-1)

    with pytest.raises(AuthenticationError) as exc:
        manager.decode_token(token)

    assert exc.value.message == "Token has expired"


def test_foreign_signature_is_rejected():
    token = JWTManager(secret_key="someone-else").create_access_token(1, "PARENT")

    with pytest.raises(AuthenticationError):
        JWTManager(secret_key=SECRET).decode_token(token)


def test_wrong_token_type_is_rejected():
    token = jwt.encode({"sub": "1", "role": "PARENT", "type": "refresh_token"}, SECRET, algorithm="HS256")

    with pytest.raises(AuthenticationError):
        JWTManager(secret_key=SECRET).decode_token(token)


def test_missing_secret_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        JWTManager(secret_key="").create_access_token(1, "COACH")

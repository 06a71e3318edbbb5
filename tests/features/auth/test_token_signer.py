"""Tests for access token signing and verification."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import jwt

from truedope.config.settings import settings
from truedope.features.auth.jwt_utils import TokenSigner


def make_signer(**overrides) -> TokenSigner:
    return TokenSigner(replace(settings.jwt, **overrides))


def decode_unverified(token: str) -> dict:
    return jwt.decode(token, options={"verify_signature": False})


class TestTokenSigner:
    def test_issue_and_verify(self):
        signer = make_signer()

        claims = signer.verify(signer.issue(5, "user", "shooter@example.com"))

        assert claims is not None
        assert claims.user_id == 5
        assert claims.role == "user"
        assert claims.is_admin is False
        assert claims.email == "shooter@example.com"

    def test_payload_lifetime_and_admin_claim(self):
        signer = make_signer()

        payload = decode_unverified(signer.issue(1, "admin"))

        assert payload["exp"] - payload["iat"] == settings.access_token_expire_minutes * 60
        assert payload["is_admin"] is True
        assert payload["type"] == "access"

    def test_each_token_has_unique_jti(self):
        signer = make_signer()
        now = datetime.now(UTC)

        first = decode_unverified(signer.issue(1, "user", now=now))
        second = decode_unverified(signer.issue(1, "user", now=now))

        assert first["jti"] != second["jti"]

    def test_expired_token(self):
        signer = make_signer()
        token = signer.issue(1, "user", now=datetime.now(UTC) - timedelta(minutes=16))
        assert signer.verify(token) is None

    def test_wrong_secret(self):
        token = make_signer(secret_key="a" * 32).issue(1, "user")
        assert make_signer(secret_key="b" * 32).verify(token) is None

    def test_wrong_audience(self):
        token = make_signer(audience="someone-else").issue(1, "user")
        assert make_signer().verify(token) is None

    def test_wrong_issuer(self):
        token = make_signer(issuer="someone-else").issue(1, "user")
        assert make_signer().verify(token) is None

    def test_tampered_token(self):
        signer = make_signer()
        token = signer.issue(1, "user")
        header, payload, signature = token.split(".")
        tampered = f"{header}.{payload}.{signature[::-1]}"

        assert signer.verify(tampered) is None

    def test_garbage(self):
        assert make_signer().verify("not-a-token") is None

    def test_non_access_token_type(self):
        config = settings.jwt
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "sub": "1",
                "role": "user",
                "iat": now,
                "exp": now + timedelta(minutes=5),
                "iss": config.issuer,
                "aud": config.audience,
                "type": "refresh",
            },
            config.secret_key,
            algorithm=config.algorithm,
        )

        assert make_signer().verify(token) is None

    def test_missing_subject(self):
        config = settings.jwt
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "role": "user",
                "iat": now,
                "exp": now + timedelta(minutes=5),
                "iss": config.issuer,
                "aud": config.audience,
                "type": "access",
            },
            config.secret_key,
            algorithm=config.algorithm,
        )

        assert make_signer().verify(token) is None

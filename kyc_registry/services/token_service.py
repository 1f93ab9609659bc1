"""JWT access token validation (ES256).

Bearer tokens identify the caller of the registry API.  Whether that
caller is the registry authority is decided later by the authority gate
from the token's ``sub`` and ``roles`` claims.

Key management
--------------
  JWT_PUBLIC_KEY set:   tokens are signed by the identity service that
                        holds the matching private key; this process only
                        verifies them and cannot mint.
  JWT_PUBLIC_KEY unset: dev/test only (prod refuses to start without a
                        key).  An ephemeral EC key pair is generated on
                        import so local callers and tests can mint tokens.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from kyc_registry.core.config import SETTINGS, Settings

ALGORITHM = "ES256"
ISSUER = SETTINGS.jwt_issuer
AUDIENCE = SETTINGS.jwt_audience
ACCESS_TOKEN_TTL_MIN = 15


class TokenMintingDisabled(RuntimeError):
    """Raised when asked to sign a token while only a public key is configured."""


def build_keys(
    settings: Settings,
) -> tuple[ec.EllipticCurvePrivateKey | None, ec.EllipticCurvePublicKey]:
    """Return (signing key or None, verification key) for ``settings``."""
    if settings.jwt_public_key:
        public_key = serialization.load_pem_public_key(
            settings.jwt_public_key.encode()
        )
        if not isinstance(public_key, ec.EllipticCurvePublicKey) or not isinstance(
            public_key.curve, ec.SECP256R1
        ):
            raise ValueError("JWT_PUBLIC_KEY must be a P-256 (ES256) public key")
        return None, public_key

    private_key = ec.generate_private_key(ec.SECP256R1())
    return private_key, private_key.public_key()


_private_key, _public_key = build_keys(SETTINGS)


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    """Build and sign a JWT access token (sub, iss, aud, exp, iat, jti, roles).

    Only available with the ephemeral dev/test key.
    """
    if _private_key is None:
        raise TokenMintingDisabled(
            "token minting is disabled when JWT_PUBLIC_KEY is configured"
        )
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["user"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )

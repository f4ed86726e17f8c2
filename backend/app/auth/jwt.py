"""JWT token creation and decoding.

Token claims:
  - sub:           caller ID (staff user, partner or customer)
  - role:          "admin" | "partner" | "customer"
  - organization:  tenant code the caller acts for
  - type:          "access"
  - exp:           expiry timestamp

Tokens are issued by the login service; `create_access_token` is used by
the ops CLI and tests.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.config import settings

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    subject: str,
    role: str,
    organization: str,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": subject,
        "role": role,
        "organization": organization,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}

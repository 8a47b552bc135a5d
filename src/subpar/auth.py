from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

JWT_ALG = "HS256"


def create_push_token(secret: str, subject: str = "push", ttl_sec: int = 60 * 60) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "exp": now + timedelta(seconds=ttl_sec),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALG)


def verify_push_token(token: str, secret: str) -> Optional[str]:
    """Return the token subject, or None when the token is invalid or expired."""
    try:
        data = jwt.decode(token, secret, algorithms=[JWT_ALG])
        return data.get("sub")
    except JWTError:
        return None


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

from datetime import datetime, timedelta, timezone
import secrets

from jose import jwt, JWTError
from passlib.context import CryptContext
import structlog

from rights_api.config import settings

logger = structlog.get_logger()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# ---------- password helpers ----------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed) -> bool:
    # Invited users have no password until they accept
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


# ---------- one-time tokens (invites, password resets) ----------

def generate_invite_token() -> tuple[str, datetime]:
    """Return (token, expiry) for an invite link; expiry is naive UTC."""
    return (
        secrets.token_urlsafe(32),
        datetime.utcnow() + timedelta(hours=settings.INVITE_TOKEN_EXPIRE_HOURS),
    )


def generate_reset_token() -> tuple[str, datetime]:
    return (
        secrets.token_urlsafe(32),
        datetime.utcnow() + timedelta(hours=settings.RESET_TOKEN_EXPIRE_HOURS),
    )


def token_expired(expiry) -> bool:
    return expiry is None or expiry < datetime.utcnow()


# ---------- access tokens ----------

def create_access_token(user_id: str, role: str, email: str) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "email": email,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        "type": "access",
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token. Raises JWTError on failure."""
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def verify_access_token(token: str) -> dict:
    """Verify an access token and return its claims."""
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    return payload

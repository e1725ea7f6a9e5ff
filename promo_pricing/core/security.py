# promo_pricing/core/security.py
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from promo_pricing.core.config import settings
from promo_pricing.schemas.user import TokenData

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


# Password hashing
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def _encode(data: dict, expire: datetime) -> str:
    payload = dict(data)
    # "sub" must be a string for python-jose claim validation
    if "sub" in payload:
        payload["sub"] = str(payload["sub"])
    payload["exp"] = expire
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    expire = datetime.utcnow() + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    return _encode({**data, "type": "access"}, expire)


def create_refresh_token(data: dict, expires_days: int = 7) -> str:
    expire = datetime.utcnow() + timedelta(days=expires_days)
    return _encode({**data, "type": "refresh"}, expire)


def _decode_raw(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def _to_token_data(payload: Optional[dict], expected_type: str) -> TokenData:
    if not payload or payload.get("type") != expected_type:
        return TokenData()
    sub = payload.get("sub")
    user_id = int(sub) if sub is not None and str(sub).isdigit() else None
    return TokenData(user_id=user_id, role=payload.get("role"))


def decode_access_token(token: str) -> TokenData:
    return _to_token_data(_decode_raw(token), "access")


def decode_refresh_token(token: str) -> TokenData:
    return _to_token_data(_decode_raw(token), "refresh")

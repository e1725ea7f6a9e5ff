from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from promo_pricing.database.connection import get_db
from promo_pricing.core.security import decode_access_token
from promo_pricing.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.user_id == user_id).first()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    The shopper behind an access token. Refresh tokens decode to an empty
    TokenData here and are refused like any other bad token.
    """
    token_data = decode_access_token(token)
    if token_data.user_id is None:
        raise _unauthorized("Could not validate credentials")

    user = get_user_by_id(db, token_data.user_id)
    if not user:
        raise _unauthorized("User not found")

    # role changed since the token was issued
    if token_data.role is not None and token_data.role != user.role:
        raise _unauthorized("Token role is out of date, please log in again")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )
    return user


def require_auth(user: User = Depends(get_current_user)) -> User:
    return user


def require_role(*roles: str):
    def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{' or '.join(r.capitalize() for r in roles)} privileges required",
            )
        return user

    return _check


require_admin = require_role("admin")

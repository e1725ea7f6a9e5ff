import pytest
from fastapi import HTTPException

from promo_pricing.core.security import create_access_token, create_refresh_token
from promo_pricing.dependencies.auth import get_current_user, require_admin


def test_access_token_resolves_user(db, user):
    token = create_access_token({"sub": user.user_id, "role": user.role})
    assert get_current_user(token=token, db=db).user_id == user.user_id


def test_refresh_token_is_not_an_access_token(db, user):
    token = create_refresh_token({"sub": user.user_id, "role": user.role})
    with pytest.raises(HTTPException) as exc:
        get_current_user(token=token, db=db)
    assert exc.value.status_code == 401


def test_token_for_missing_user(db):
    token = create_access_token({"sub": 9999, "role": "user"})
    with pytest.raises(HTTPException) as exc:
        get_current_user(token=token, db=db)
    assert exc.value.detail == "User not found"


def test_stale_role_claim_is_refused(db, user):
    token = create_access_token({"sub": user.user_id, "role": "admin"})
    with pytest.raises(HTTPException) as exc:
        get_current_user(token=token, db=db)
    assert exc.value.status_code == 401


def test_inactive_user(db, user):
    user.is_active = False
    db.commit()
    token = create_access_token({"sub": user.user_id, "role": user.role})
    with pytest.raises(HTTPException) as exc:
        get_current_user(token=token, db=db)
    assert exc.value.status_code == 400


def test_require_admin(user, admin):
    assert require_admin(user=admin) is admin
    with pytest.raises(HTTPException) as exc:
        require_admin(user=user)
    assert exc.value.status_code == 403
    assert exc.value.detail == "Admin privileges required"

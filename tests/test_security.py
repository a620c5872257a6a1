import asyncio
from datetime import timedelta

import pytest
from fastapi import HTTPException

from storehouse.models import Role
from storehouse.security import (
    CallerContext,
    create_access_token,
    get_caller_context,
    require_roles,
    verify_access_token,
)


def _resolve(token):
    return asyncio.run(get_caller_context(token))


def test_token_round_trips_to_caller_context():
    token = create_access_token("w-1", Role.WORKER, company_id=1, user_name="walt")

    caller = _resolve(token)

    assert caller == CallerContext(user_id="w-1", role=Role.WORKER, company_id=1, user_name="walt")


def test_expired_token_is_invalid():
    token = create_access_token("w-1", Role.WORKER, expires_delta=timedelta(minutes=-1))

    assert verify_access_token(token) is None
    with pytest.raises(HTTPException) as exc:
        _resolve(token)
    assert exc.value.status_code == 401


def test_missing_token():
    with pytest.raises(HTTPException) as exc:
        _resolve(None)
    assert exc.value.status_code == 401


def test_require_roles_blocks_other_roles():
    check = require_roles(Role.COMPANY_MANAGER)
    manager = CallerContext(user_id="cm-1", role=Role.COMPANY_MANAGER)
    worker = CallerContext(user_id="w-1", role=Role.WORKER)

    assert asyncio.run(check(manager)) is manager
    with pytest.raises(HTTPException) as exc:
        asyncio.run(check(worker))
    assert exc.value.status_code == 403

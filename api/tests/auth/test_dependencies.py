"""Tests for auth dependencies."""

from uuid import uuid4

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from src.auth.dependencies import get_current_user, get_token_from_header
from src.auth.permissions import UserRole
from src.auth.security import create_access_token
from src.core.context import clear_context, get_user_id


def make_request(authorization: str | None) -> Request:
    headers = []
    if authorization is not None:
        headers.append((b"authorization", authorization.encode()))
    return Request({"type": "http", "headers": headers})


class TestGetTokenFromHeader:
    """Tests for get_token_from_header."""

    def test_bearer_token(self) -> None:
        assert get_token_from_header(make_request("Bearer abc")) == "abc"

    @pytest.mark.parametrize("header", [None, "Basic abc", "Bearer", "Bearer a b"])
    def test_missing_or_malformed(self, header: str | None) -> None:
        assert get_token_from_header(make_request(header)) is None


class TestGetCurrentUser:
    """Tests for get_current_user."""

    @pytest.mark.asyncio
    async def test_decodes_user_and_sets_context(self) -> None:
        user_id = uuid4()
        token = create_access_token(
            {"sub": str(user_id), "email": "t@test.com", "role": UserRole.TEACHER.value}
        )

        try:
            user = await get_current_user(token)
            assert user.id == user_id
            assert user.role == UserRole.TEACHER
            assert get_user_id() == str(user_id)
        finally:
            clear_context()

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_non_uuid_subject_is_401(self) -> None:
        token = create_access_token({"sub": "not-a-uuid", "role": "student"})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(token)
        assert exc_info.value.status_code == 401

"""
Shared test configuration and fixtures.

Provides an in-memory stand-in for the REST transport that counts calls
and can be paused or made to fail per operation, plus a fake aiohttp
session for exercising ``RestApi`` without a network.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any

import pytest

from firebase_rest_auth.exceptions import AuthError, AuthErrorKind
from firebase_rest_auth.models import (
    RefreshResponse,
    SignInResponse,
    UpdateResponse,
    UserData,
)

logger = logging.getLogger(__name__)


def make_sign_in_response(
    local_id: str = "user-1",
    expires_in: int = 3600,
    suffix: str = "0",
    email: str | None = None,
) -> SignInResponse:
    return SignInResponse(
        id_token=f"id-token-{suffix}",
        refresh_token=f"refresh-token-{suffix}",
        expires_in=expires_in,
        local_id=local_id,
        email=email,
    )


def auth_error(kind: AuthErrorKind, code: str = "ERROR") -> AuthError:
    return AuthError(kind, code, code=code, status=400)


class FakeRestApi:
    """
    In-memory transport for account tests.

    - ``fail[name]`` makes the operation ``name`` raise that exception
    - ``gates[name]`` makes the operation wait for the event before answering
    - ``calls`` records ``(name, request, locale)`` in call order
    """

    def __init__(self, refresh_expires_in: int = 3600) -> None:
        self.refresh_expires_in = refresh_expires_in
        self.fail: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, Any, str | None]] = []
        self.linked_emails: dict[str, str] = {}

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def _enter(self, name: str, request: Any, locale: str | None = None) -> int:
        self.calls.append((name, request, locale))
        number = self.count(name)
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        if name in self.fail:
            raise self.fail[name]
        return number

    async def refresh_token(self, request):
        n = await self._enter("refresh_token", request)
        return RefreshResponse(
            id_token=f"id-token-r{n}",
            refresh_token=f"refresh-token-r{n}",
            expires_in=self.refresh_expires_in,
            user_id="user-1",
        )

    async def send_oob_code(self, request, locale=None):
        await self._enter("send_oob_code", request, locale)

    async def confirm_email(self, request):
        await self._enter("confirm_email", request)
        return UpdateResponse(local_id="user-1", email_verified=True)

    async def lookup(self, request):
        await self._enter("lookup", request)
        return UserData(local_id="user-1", email="alice@example.com")

    async def update_email(self, request, locale=None):
        n = await self._enter("update_email", request, locale)
        return UpdateResponse(
            local_id="user-1",
            email=request.email,
            id_token=f"id-token-e{n}",
            refresh_token=f"refresh-token-e{n}",
            expires_in=3600,
        )

    async def update_password(self, request):
        n = await self._enter("update_password", request)
        return UpdateResponse(
            local_id="user-1",
            id_token=f"id-token-p{n}",
            refresh_token=f"refresh-token-p{n}",
            expires_in=3600,
        )

    async def update_profile(self, request):
        await self._enter("update_profile", request)
        return UpdateResponse(local_id="user-1", display_name=request.display_name)

    async def link_email(self, request):
        n = await self._enter("link_email", request)
        owner = self.linked_emails.setdefault("user-1", request.email)
        if owner != request.email:
            raise auth_error(AuthErrorKind.ACCOUNT_EXISTS, "EMAIL_EXISTS")
        return UpdateResponse(
            local_id="user-1",
            email=request.email,
            email_verified=False,
            provider_ids=["password"],
            id_token=f"id-token-l{n}",
            refresh_token=f"refresh-token-l{n}",
            expires_in=3600,
        )

    async def link_idp(self, request):
        n = await self._enter("link_idp", request)
        return make_sign_in_response(suffix=f"i{n}")

    async def unlink_providers(self, request):
        await self._enter("unlink_providers", request)
        return UpdateResponse(local_id="user-1", provider_ids=["password"])

    async def delete(self, request):
        await self._enter("delete", request)


class FakeResponse:
    """Minimal aiohttp response: a status and a raw body."""

    def __init__(self, status: int, body: Any = None) -> None:
        self.status = status
        self._body = body

    async def read(self) -> bytes:
        if self._body is None:
            return b""
        if isinstance(self._body, bytes):
            return self._body
        if isinstance(self._body, str):
            return self._body.encode()
        return json.dumps(self._body).encode()


class FakeClientSession:
    """Replays queued responses (or raises queued exceptions) for ``post``."""

    def __init__(self, *responses: FakeResponse | Exception) -> None:
        self.responses = list(responses)
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def post(self, url: str, **kwargs: Any):
        self.requests.append((url, kwargs))
        response = self.responses.pop(0)

        @asynccontextmanager
        async def _context():
            if isinstance(response, Exception):
                raise response
            yield response

        return _context()


@pytest.fixture
def fake_api() -> FakeRestApi:
    return FakeRestApi()

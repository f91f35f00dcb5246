"""
Firebase auth REST transport.

One POST per operation against the Identity Toolkit and Secure Token
endpoints. Successful responses are parsed into the types from
``models``; error payloads and connection failures are translated into
``AuthError``. There is no retry here: a failed call raises.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from .config import DEFAULT_TIMEOUT, IDENTITY_TOOLKIT_URL, SECURE_TOKEN_URL, AuthConfig
from .exceptions import AuthError, AuthErrorKind
from .models import (
    AnonymousSignInRequest,
    ConfirmEmailRequest,
    CustomTokenSignInRequest,
    EmailUpdateRequest,
    FetchProviderRequest,
    FetchProviderResponse,
    IdpSignInRequest,
    IdTokenRequest,
    OobCodeRequest,
    PasswordResetRequest,
    PasswordResetResponse,
    PasswordSignInRequest,
    PasswordUpdateRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    RefreshResponse,
    SignInResponse,
    UnlinkRequest,
    UpdateResponse,
    UserData,
)

logger = logging.getLogger(__name__)

LOCALE_HEADER = "X-Firebase-Locale"


def decode_error(status: int, body: Any) -> AuthError:
    """Translate an error response body into an ``AuthError``.

    Handles the Identity Toolkit shape ``{"error": {"code": 400,
    "message": "WEAK_PASSWORD : Password should be ..."}}`` as well as
    the OAuth style ``{"error": "invalid_grant"}``.
    """
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = str(error.get("message", ""))
    elif isinstance(error, str):
        message = error.upper()
    else:
        return AuthError(
            AuthErrorKind.UNKNOWN_BACKEND_ERROR,
            f"Unexpected HTTP {status} response",
            status=status,
        )

    code, _, detail = message.partition(" : ")
    code = code.strip() or f"HTTP_{status}"
    return AuthError.from_backend(code, detail.strip() or None, status)


class RestApi:
    """Thin async client for the Firebase auth REST endpoints.

    The ``aiohttp.ClientSession`` is owned by the caller; this class never
    closes it.

    Example:
        >>> async with aiohttp.ClientSession() as session:
        ...     api = RestApi(session, "AIza...")
        ...     response = await api.sign_up_anonymous(AnonymousSignInRequest())
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_key: str,
        identity_toolkit_url: str = IDENTITY_TOOLKIT_URL,
        secure_token_url: str = SECURE_TOKEN_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._session = session
        self._api_key = api_key
        self._identity_toolkit_url = identity_toolkit_url.rstrip("/")
        self._secure_token_url = secure_token_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @classmethod
    def from_config(cls, session: aiohttp.ClientSession, config: AuthConfig) -> RestApi:
        return cls(
            session,
            config.api_key,
            identity_toolkit_url=config.identity_toolkit_url,
            secure_token_url=config.secure_token_url,
            timeout=config.timeout,
        )

    # Sign up / sign in

    async def sign_up_anonymous(self, request: AnonymousSignInRequest) -> SignInResponse:
        return SignInResponse.from_dict(await self._accounts("signUp", request.to_dict()))

    async def sign_up_with_password(self, request: PasswordSignInRequest) -> SignInResponse:
        return SignInResponse.from_dict(await self._accounts("signUp", request.to_dict()))

    async def sign_in_with_idp(self, request: IdpSignInRequest) -> SignInResponse:
        return SignInResponse.from_dict(await self._accounts("signInWithIdp", request.to_dict()))

    async def sign_in_with_password(self, request: PasswordSignInRequest) -> SignInResponse:
        return SignInResponse.from_dict(
            await self._accounts("signInWithPassword", request.to_dict())
        )

    async def sign_in_with_custom_token(self, request: CustomTokenSignInRequest) -> SignInResponse:
        return SignInResponse.from_dict(
            await self._accounts("signInWithCustomToken", request.to_dict())
        )

    async def refresh_token(self, request: RefreshRequest) -> RefreshResponse:
        data = await self._post(f"{self._secure_token_url}/token", request.to_dict())
        return RefreshResponse.from_dict(data)

    # Account discovery and out-of-band codes

    async def fetch_providers(self, request: FetchProviderRequest) -> FetchProviderResponse:
        return FetchProviderResponse.from_dict(
            await self._accounts("createAuthUri", request.to_dict())
        )

    async def send_oob_code(self, request: OobCodeRequest, locale: str | None = None) -> None:
        await self._accounts("sendOobCode", request.to_dict(), locale=locale)

    async def reset_password(self, request: PasswordResetRequest) -> PasswordResetResponse:
        return PasswordResetResponse.from_dict(
            await self._accounts("resetPassword", request.to_dict())
        )

    async def confirm_email(self, request: ConfirmEmailRequest) -> UpdateResponse:
        return UpdateResponse.from_dict(await self._accounts("update", request.to_dict()))

    # Account management

    async def lookup(self, request: IdTokenRequest) -> UserData | None:
        data = await self._accounts("lookup", request.to_dict())
        users = data.get("users") or []
        return UserData.from_dict(users[0]) if users else None

    async def update_email(self, request: EmailUpdateRequest, locale: str | None = None) -> UpdateResponse:
        return UpdateResponse.from_dict(
            await self._accounts("update", request.to_dict(), locale=locale)
        )

    async def update_password(self, request: PasswordUpdateRequest) -> UpdateResponse:
        return UpdateResponse.from_dict(await self._accounts("update", request.to_dict()))

    async def update_profile(self, request: ProfileUpdateRequest) -> UpdateResponse:
        return UpdateResponse.from_dict(await self._accounts("update", request.to_dict()))

    async def link_email(self, request: PasswordUpdateRequest) -> UpdateResponse:
        return UpdateResponse.from_dict(await self._accounts("update", request.to_dict()))

    async def link_idp(self, request: IdpSignInRequest) -> SignInResponse:
        return SignInResponse.from_dict(await self._accounts("signInWithIdp", request.to_dict()))

    async def unlink_providers(self, request: UnlinkRequest) -> UpdateResponse:
        return UpdateResponse.from_dict(await self._accounts("update", request.to_dict()))

    async def delete(self, request: IdTokenRequest) -> None:
        await self._accounts("delete", request.to_dict())

    # Plumbing

    async def _accounts(
        self, method: str, payload: dict[str, Any], locale: str | None = None
    ) -> dict[str, Any]:
        return await self._post(f"{self._identity_toolkit_url}/accounts:{method}", payload, locale)

    async def _post(
        self, url: str, payload: dict[str, Any], locale: str | None = None
    ) -> dict[str, Any]:
        headers = {LOCALE_HEADER: locale} if locale else {}
        logger.debug(f"POST {url}")

        try:
            async with self._session.post(
                url,
                params={"key": self._api_key},
                json=payload,
                headers=headers,
                timeout=self._timeout,
            ) as response:
                status = response.status
                raw = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Request to {url} failed: {e}")
            raise AuthError.network(e) from e

        text = raw.decode("utf-8", errors="replace")
        try:
            body = json.loads(text) if text else {}
        except json.JSONDecodeError:
            body = None

        if status >= 400:
            error = decode_error(status, body)
            logger.info(f"Request to {url} rejected: {error.code} (HTTP {status})")
            raise error

        if not isinstance(body, dict):
            raise AuthError(
                AuthErrorKind.UNKNOWN_BACKEND_ERROR,
                f"Malformed response from {url}",
                status=status,
            )
        return body

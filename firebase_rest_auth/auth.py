"""
Global Firebase auth entry points.

``FirebaseAuth`` creates accounts and signs users in, returning a
``FirebaseAccount`` that manages the resulting session. Password reset
helpers and provider discovery are stateless and need no account.
"""

from __future__ import annotations

import logging

import aiohttp

from .config import DEFAULT_REFRESH_MARGIN, AuthConfig
from .models import (
    AnonymousSignInRequest,
    CustomTokenSignInRequest,
    FetchProviderRequest,
    IdpSignInRequest,
    OobCodeRequest,
    PasswordResetRequest,
    PasswordSignInRequest,
    SignInResponse,
)
from .providers import IdpProvider
from .rest_api import RestApi
from .session.account import FirebaseAccount, send_email_confirmation

logger = logging.getLogger(__name__)

# Sent by fetch_providers when the caller gives no continue URI
DEFAULT_CONTINUE_URI = "http://localhost"

PASSWORD_PROVIDER = "email"


class FirebaseAuth:
    """Firebase authentication client.

    Example:
        >>> async with aiohttp.ClientSession() as session:
        ...     auth = FirebaseAuth.from_session(session, "AIza...", locale="en")
        ...     async with await auth.sign_in_with_password(email, password) as account:
        ...         print(account.local_id)
    """

    def __init__(
        self,
        api: RestApi,
        locale: str | None = None,
        refresh_margin: float = DEFAULT_REFRESH_MARGIN,
        auto_refresh: bool = True,
    ):
        """Initialize the client.

        Args:
            api: Transport used for all requests
            locale: Default locale of emails sent by Firebase
            refresh_margin: Seconds before expiry at which accounts refresh their token
            auto_refresh: Default for the auto_refresh argument of the sign-in methods
        """
        self._api = api
        self.locale = locale
        self.refresh_margin = refresh_margin
        self.auto_refresh = auto_refresh

    @classmethod
    def from_session(
        cls,
        session: aiohttp.ClientSession,
        api_key: str,
        locale: str | None = None,
        refresh_margin: float = DEFAULT_REFRESH_MARGIN,
    ) -> FirebaseAuth:
        """Create a client talking to the production endpoints through ``session``."""
        return cls(RestApi(session, api_key), locale=locale, refresh_margin=refresh_margin)

    @classmethod
    def from_config(cls, config: AuthConfig, session: aiohttp.ClientSession) -> FirebaseAuth:
        return cls(
            RestApi.from_config(session, config),
            locale=config.locale,
            refresh_margin=config.refresh_margin,
            auto_refresh=config.auto_refresh,
        )

    @property
    def api(self) -> RestApi:
        return self._api

    async def fetch_providers(self, email: str, continue_uri: str | None = None) -> list[str]:
        """List the sign-in methods available for ``email``.

        Returns provider ids such as ``"google.com"``, preceded by
        ``"email"`` if the user can sign in with a password. Unknown
        emails yield an empty list.
        """
        response = await self._api.fetch_providers(
            FetchProviderRequest(email, continue_uri or DEFAULT_CONTINUE_URI)
        )
        providers = [PASSWORD_PROVIDER] if response.registered else []
        providers.extend(response.all_providers)
        return providers

    async def sign_up_anonymous(self, auto_refresh: bool | None = None) -> FirebaseAccount:
        """Create an anonymous account.

        The account has no sign-in method; keep it alive by refreshing, or
        make it permanent with ``link_email``/``link_idp``.
        """
        response = await self._api.sign_up_anonymous(AnonymousSignInRequest())
        return self._account(response, auto_refresh)

    async def sign_up_with_password(
        self,
        email: str,
        password: str,
        auto_verify: bool = True,
        auto_refresh: bool | None = None,
        locale: str | None = None,
    ) -> FirebaseAccount:
        """Create an account with email and password.

        With ``auto_verify`` a confirmation email is sent, in ``locale`` or
        the client's locale. A failure to send it does not fail the sign-up;
        check ``account.email_verification`` for the outcome.
        """
        response = await self._api.sign_up_with_password(PasswordSignInRequest(email, password))
        verification = None
        if auto_verify:
            # the account and its refresh timer exist only once this returns
            verification = await send_email_confirmation(
                self._api, response.id_token, locale or self.locale
            )
        account = self._account(response, auto_refresh)
        account.email_verification = verification
        return account

    async def sign_in_with_idp(
        self,
        provider: IdpProvider,
        request_uri: str,
        auto_refresh: bool | None = None,
    ) -> FirebaseAccount:
        """Sign in with an identity provider, creating the account if needed."""
        response = await self._api.sign_in_with_idp(
            IdpSignInRequest(provider.post_body, request_uri)
        )
        return self._account(response, auto_refresh)

    async def sign_in_with_password(
        self,
        email: str,
        password: str,
        auto_refresh: bool | None = None,
    ) -> FirebaseAccount:
        response = await self._api.sign_in_with_password(PasswordSignInRequest(email, password))
        return self._account(response, auto_refresh)

    async def sign_in_with_custom_token(
        self,
        token: str,
        auto_refresh: bool | None = None,
    ) -> FirebaseAccount:
        response = await self._api.sign_in_with_custom_token(CustomTokenSignInRequest(token))
        return self._account(response, auto_refresh)

    async def restore_account(
        self, refresh_token: str, auto_refresh: bool | None = None
    ) -> FirebaseAccount:
        """Resume a session from a refresh token stored by the application."""
        return await FirebaseAccount.restore(
            self._api,
            refresh_token,
            auto_refresh=self.auto_refresh if auto_refresh is None else auto_refresh,
            locale=self.locale,
            refresh_margin=self.refresh_margin,
        )

    async def request_password_reset(self, email: str, locale: str | None = None) -> None:
        """Send a password reset email to ``email``."""
        await self._api.send_oob_code(OobCodeRequest.password_reset(email), locale or self.locale)

    async def validate_password_reset(self, oob_code: str) -> str:
        """Check a password reset code. Returns the email it belongs to."""
        response = await self._api.reset_password(PasswordResetRequest.verify(oob_code))
        return response.email

    async def reset_password(self, oob_code: str, new_password: str) -> str:
        """Set a new password using a reset code. Returns the account's email."""
        response = await self._api.reset_password(
            PasswordResetRequest.confirm(oob_code, new_password)
        )
        logger.info("Password reset completed")
        return response.email

    def _account(self, response: SignInResponse, auto_refresh: bool | None) -> FirebaseAccount:
        logger.debug(f"Signed in account {response.local_id}")
        return FirebaseAccount.create(
            self._api,
            response,
            auto_refresh=self.auto_refresh if auto_refresh is None else auto_refresh,
            locale=self.locale,
            refresh_margin=self.refresh_margin,
        )

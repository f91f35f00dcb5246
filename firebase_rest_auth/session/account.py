"""
Session manager for a single Firebase account.

A ``FirebaseAccount`` owns the account's credential pair. Every
operation reads a snapshot of the current credentials, sends one
request, and on success replaces the credentials in a single
assignment. Failed requests leave the credentials untouched and raise
the ``AuthError`` from the transport.

Refreshes are serialized: at most one refresh request is in flight per
account, and concurrent callers (including the background scheduler)
share its result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..config import DEFAULT_REFRESH_MARGIN
from ..exceptions import FirebaseAuthError, SessionClosedError
from ..logging_utils import AccountLoggerAdapter
from ..models import (
    ConfirmEmailRequest,
    EmailUpdateRequest,
    IdpSignInRequest,
    IdTokenRequest,
    OobCodeRequest,
    PasswordUpdateRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    SignInResponse,
    UnlinkRequest,
    UpdateResponse,
    UserData,
)
from ..providers import IdpProvider
from ..rest_api import RestApi
from .credentials import Credentials
from .scheduler import RefreshScheduler, RefreshState

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    """Outcome of a confirmation email sent as a side effect.

    Sign-up and email linking send the confirmation mail without letting
    its failure fail the main operation; the outcome lands here instead.
    """

    sent: bool
    locale: str | None = None
    error: FirebaseAuthError | None = None


async def send_email_confirmation(
    api: RestApi,
    id_token: str,
    locale: str | None = None,
    log: logging.Logger | logging.LoggerAdapter = logger,
) -> VerificationResult:
    """Send a verification email, capturing a backend failure in the result."""
    try:
        await api.send_oob_code(OobCodeRequest.verify_email(id_token), locale)
    except FirebaseAuthError as e:
        log.warning(f"Email confirmation could not be sent: {e}")
        return VerificationResult(sent=False, locale=locale, error=e)
    return VerificationResult(sent=True, locale=locale)


class FirebaseAccount:
    """A signed-in Firebase account.

    Create instances through ``FirebaseAuth`` or ``FirebaseAccount.create``.
    With ``auto_refresh`` enabled, the ID token is refreshed in the
    background ``refresh_margin`` seconds before it expires. Call
    ``dispose()`` (or use ``async with``) to release the refresh timer.

    Observing the background refresh:
        >>> account.on_token_refreshed = lambda creds: print("new token")
        >>> account.on_refresh_failed = lambda error: print(f"re-login: {error}")
        >>> account.refresh_state  # RefreshState.STOPPED after a failure
    """

    def __init__(
        self,
        api: RestApi,
        credentials: Credentials,
        locale: str | None = None,
        refresh_margin: float = DEFAULT_REFRESH_MARGIN,
    ) -> None:
        self._api = api
        self._credentials = credentials
        self.locale = locale

        self._auto_refresh = False
        self._closed_reason: str | None = None
        self._refresh_task: asyncio.Task[Credentials] | None = None
        self._scheduler = RefreshScheduler(
            self.refresh, refresh_margin, on_failure=self._on_scheduled_refresh_failed
        )
        self._log = AccountLoggerAdapter(logger, {"local_id": credentials.local_id})

        # Callbacks
        self.on_token_refreshed: Callable[[Credentials], None] | None = None
        self.on_refresh_failed: Callable[[Exception], None] | None = None

        self.email_verification: VerificationResult | None = None

    @classmethod
    def create(
        cls,
        api: RestApi,
        response: SignInResponse,
        auto_refresh: bool = True,
        locale: str | None = None,
        refresh_margin: float = DEFAULT_REFRESH_MARGIN,
    ) -> FirebaseAccount:
        """Create an account from a fresh sign-in response.

        Raises:
            RuntimeError: If ``auto_refresh`` is set and no event loop is
                running, since arming the refresh timer needs one
        """
        account = cls(
            api,
            Credentials.from_sign_in(response),
            locale=locale,
            refresh_margin=refresh_margin,
        )
        account.auto_refresh = auto_refresh
        return account

    @classmethod
    async def restore(
        cls,
        api: RestApi,
        refresh_token: str,
        auto_refresh: bool = True,
        locale: str | None = None,
        refresh_margin: float = DEFAULT_REFRESH_MARGIN,
    ) -> FirebaseAccount:
        """Resume an account from a refresh token kept by the application.

        Raises:
            AuthError: If the refresh token is no longer valid
        """
        response = await api.refresh_token(RefreshRequest(refresh_token))
        credentials = Credentials.issued(
            response.user_id or "",
            response.id_token,
            response.refresh_token,
            response.expires_in,
        )
        account = cls(api, credentials, locale=locale, refresh_margin=refresh_margin)
        account.auto_refresh = auto_refresh
        return account

    # State

    @property
    def api(self) -> RestApi:
        return self._api

    @property
    def credentials(self) -> Credentials:
        """Snapshot of the current credential pair."""
        return self._credentials

    @property
    def local_id(self) -> str:
        return self._credentials.local_id

    @property
    def id_token(self) -> str:
        return self._credentials.id_token

    @property
    def refresh_token(self) -> str:
        return self._credentials.refresh_token

    @property
    def expires_at(self) -> datetime:
        return self._credentials.expires_at

    @property
    def refresh_margin(self) -> float:
        return self._scheduler.margin

    @property
    def auto_refresh(self) -> bool:
        return self._auto_refresh

    @auto_refresh.setter
    def auto_refresh(self, value: bool) -> None:
        """Enable or disable the background refresh.

        Enabling re-arms the timer from the current expiry, also after the
        scheduler stopped on a failure.
        """
        if value:
            self._ensure_open()
            self._auto_refresh = True
            self._scheduler.arm(self._credentials.expires_at)
        else:
            self._auto_refresh = False
            self._scheduler.cancel()

    @property
    def refresh_state(self) -> RefreshState:
        return self._scheduler.state

    @property
    def next_refresh_at(self) -> datetime | None:
        """When the background refresh fires next, if it is armed."""
        return self._scheduler.fire_at

    @property
    def refresh_error(self) -> Exception | None:
        """The error that stopped the background refresh, if any."""
        return self._scheduler.last_error

    @property
    def is_closed(self) -> bool:
        return self._closed_reason is not None

    # Token refresh

    async def refresh(self) -> str:
        """Exchange the refresh token for new credentials.

        Joins the in-flight refresh if there is one.

        Returns:
            The new ID token

        Raises:
            AuthError: If the backend rejects the refresh token
            SessionClosedError: If the account was disposed or deleted
        """
        self._ensure_open()
        task = self._refresh_task
        if task is None:
            task = asyncio.create_task(self._perform_refresh())
            task.add_done_callback(self._refresh_done)
            self._refresh_task = task
        else:
            self._log.debug("Joining in-flight token refresh")

        credentials = await asyncio.shield(task)
        return credentials.id_token

    async def _perform_refresh(self) -> Credentials:
        snapshot = self._credentials
        response = await self._api.refresh_token(RefreshRequest(snapshot.refresh_token))
        credentials = snapshot.refreshed(response)
        if not self._apply(credentials):
            raise SessionClosedError(snapshot.local_id, self._closed_reason or "disposed")

        self._log.info(f"Token refreshed, expires at {credentials.expires_at.isoformat()}")
        if self.on_token_refreshed:
            try:
                self.on_token_refreshed(credentials)
            except Exception:
                self._log.exception("on_token_refreshed callback failed")
        return credentials

    def _refresh_done(self, task: asyncio.Task[Credentials]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled():
            # every awaiter still receives the error; this only marks it retrieved
            task.exception()

    def _on_scheduled_refresh_failed(self, error: Exception) -> None:
        self._log.error(f"Background refresh failed, re-authentication may be required: {error}")
        if self.on_refresh_failed:
            try:
                self.on_refresh_failed(error)
            except Exception:
                self._log.exception("on_refresh_failed callback failed")

    # Email

    async def request_email_confirmation(self, locale: str | None = None) -> None:
        """Send an email asking the user to verify their address.

        Args:
            locale: Language of the email; defaults to the account's locale
        """
        self._ensure_open()
        await self._api.send_oob_code(
            OobCodeRequest.verify_email(self._credentials.id_token),
            locale or self.locale,
        )

    async def dispatch_email_confirmation(self, locale: str | None = None) -> VerificationResult:
        """Send the confirmation email without raising on a backend failure.

        The outcome is returned and stored in ``email_verification``.

        Raises:
            SessionClosedError: If the account was disposed or deleted
        """
        self._ensure_open()
        result = await send_email_confirmation(
            self._api, self._credentials.id_token, locale or self.locale, self._log
        )
        self.email_verification = result
        return result

    async def confirm_email(self, oob_code: str) -> bool:
        """Apply the code from a verification email. Returns the verified flag."""
        self._ensure_open()
        response = await self._api.confirm_email(ConfirmEmailRequest(oob_code))
        return response.email_verified

    # Account details

    async def get_details(self) -> UserData | None:
        self._ensure_open()
        return await self._api.lookup(IdTokenRequest(self._credentials.id_token))

    async def update_email(self, new_email: str, locale: str | None = None) -> None:
        """Change the account's email address.

        The backend sends a notification to the old address, localized by
        ``locale`` or the account's locale.
        """
        self._ensure_open()
        snapshot = self._credentials
        response = await self._api.update_email(
            EmailUpdateRequest(snapshot.id_token, new_email), locale or self.locale
        )
        self._apply_update(snapshot, response)

    async def update_password(self, new_password: str) -> None:
        self._ensure_open()
        snapshot = self._credentials
        response = await self._api.update_password(
            PasswordUpdateRequest(snapshot.id_token, new_password)
        )
        self._apply_update(snapshot, response)

    async def update_profile(
        self,
        display_name: str | None = None,
        photo_url: str | None = None,
        delete_display_name: bool = False,
        delete_photo_url: bool = False,
    ) -> None:
        self._ensure_open()
        delete_attributes: list[str] = []
        if delete_display_name:
            delete_attributes.append("DISPLAY_NAME")
        if delete_photo_url:
            delete_attributes.append("PHOTO_URL")

        snapshot = self._credentials
        response = await self._api.update_profile(
            ProfileUpdateRequest(
                snapshot.id_token,
                display_name=display_name,
                photo_url=photo_url,
                delete_attributes=tuple(delete_attributes),
            )
        )
        self._apply_update(snapshot, response)

    # Linking

    async def link_email(
        self,
        email: str,
        password: str,
        auto_verify: bool = True,
        locale: str | None = None,
    ) -> bool:
        """Add email and password sign-in to this account.

        Turns an anonymous account into a permanent one without losing its
        data. With ``auto_verify``, an unverified email gets a confirmation
        mail (see ``dispatch_email_confirmation``).

        Returns:
            Whether the email is already verified

        Raises:
            AuthError: ``ACCOUNT_EXISTS`` if the email belongs to another account
        """
        self._ensure_open()
        snapshot = self._credentials
        response = await self._api.link_email(
            PasswordUpdateRequest(snapshot.id_token, password, email=email)
        )
        self._apply_update(snapshot, response)

        if auto_verify and not response.email_verified:
            await self.dispatch_email_confirmation(locale)
        return response.email_verified

    async def link_idp(self, provider: IdpProvider, request_uri: str) -> None:
        """Add an identity provider sign-in to this account.

        Raises:
            AuthError: ``PROVIDER_ALREADY_LINKED`` if the provider account is
                linked to another Firebase account
        """
        self._ensure_open()
        snapshot = self._credentials
        response = await self._api.link_idp(
            IdpSignInRequest(provider.post_body, request_uri, id_token=snapshot.id_token)
        )
        self._apply(Credentials.from_sign_in(response))

    async def unlink_providers(self, provider_ids: Sequence[str]) -> list[str]:
        """Remove sign-in providers. Returns the ids of the providers left."""
        self._ensure_open()
        snapshot = self._credentials
        response = await self._api.unlink_providers(
            UnlinkRequest(snapshot.id_token, tuple(provider_ids))
        )
        self._apply_update(snapshot, response)
        return response.provider_ids

    # Lifecycle

    async def delete(self) -> None:
        """Delete the account on the backend. The session is closed afterwards."""
        self._ensure_open()
        await self._api.delete(IdTokenRequest(self._credentials.id_token))
        self._close("deleted")

    def dispose(self) -> None:
        """Stop the background refresh and close the session. Idempotent."""
        if self._closed_reason is None:
            self._close("disposed")

    async def __aenter__(self) -> FirebaseAccount:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.dispose()

    def _close(self, reason: str) -> None:
        self._closed_reason = reason
        self._auto_refresh = False
        self._scheduler.dispose()
        self._log.info(f"Account session {reason}")

    def _ensure_open(self) -> None:
        if self._closed_reason is not None:
            raise SessionClosedError(self._credentials.local_id, self._closed_reason)

    def _apply(self, credentials: Credentials) -> bool:
        """Replace the credential pair and re-arm the timer.

        Returns False (and changes nothing) once the session is closed.
        """
        if self._closed_reason is not None:
            self._log.debug("Discarding credentials received after close")
            return False
        self._credentials = credentials
        if self._auto_refresh:
            self._scheduler.arm(credentials.expires_at)
        return True

    def _apply_update(self, snapshot: Credentials, response: UpdateResponse) -> None:
        if response.has_tokens:
            self._apply(snapshot.updated(response))

    def __repr__(self) -> str:
        return (
            f"FirebaseAccount(local_id={self.local_id!r}, "
            f"refresh_state={self.refresh_state.value}, closed={self.is_closed})"
        )

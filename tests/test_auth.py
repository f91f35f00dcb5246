"""Tests for the FirebaseAuth facade."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from conftest import auth_error, make_sign_in_response

from firebase_rest_auth import FirebaseAuth
from firebase_rest_auth.config import AuthConfig
from firebase_rest_auth.exceptions import AuthError, AuthErrorKind
from firebase_rest_auth.models import (
    FetchProviderResponse,
    OobCodeType,
    PasswordResetResponse,
    RefreshResponse,
)
from firebase_rest_auth.providers import FacebookProvider
from firebase_rest_auth.rest_api import RestApi
from firebase_rest_auth.session import RefreshState


@pytest.fixture
def api() -> AsyncMock:
    return AsyncMock(spec=RestApi)


@pytest.fixture
def auth(api: AsyncMock) -> FirebaseAuth:
    return FirebaseAuth(api, locale="en", auto_refresh=False)


class TestFetchProviders:
    """Tests for sign-in method discovery."""

    @pytest.mark.asyncio
    async def test_password_only(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.fetch_providers.return_value = FetchProviderResponse(registered=True)

        assert await auth.fetch_providers("alice@example.com") == ["email"]

    @pytest.mark.asyncio
    async def test_password_first_then_backend_order(
        self, auth: FirebaseAuth, api: AsyncMock
    ) -> None:
        api.fetch_providers.return_value = FetchProviderResponse(
            registered=True, all_providers=["google.com", "facebook.com"]
        )

        providers = await auth.fetch_providers("alice@example.com")

        assert providers == ["email", "google.com", "facebook.com"]

    @pytest.mark.asyncio
    async def test_unregistered(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.fetch_providers.return_value = FetchProviderResponse()

        assert await auth.fetch_providers("nobody@example.com") == []

    @pytest.mark.asyncio
    async def test_continue_uri_default(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.fetch_providers.return_value = FetchProviderResponse()

        await auth.fetch_providers("alice@example.com")
        await auth.fetch_providers("alice@example.com", "https://app.example.com")

        first = api.fetch_providers.await_args_list[0].args[0]
        second = api.fetch_providers.await_args_list[1].args[0]
        assert first.continue_uri == "http://localhost"
        assert second.continue_uri == "https://app.example.com"


class TestSignUp:
    """Tests for account creation."""

    @pytest.mark.asyncio
    async def test_sign_up_anonymous(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.sign_up_anonymous.return_value = make_sign_in_response(local_id="anon-1")

        account = await auth.sign_up_anonymous()

        assert account.local_id == "anon-1"
        assert account.locale == "en"
        assert account.auto_refresh is False
        api.sign_up_anonymous.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sign_up_with_password_sends_confirmation(
        self, auth: FirebaseAuth, api: AsyncMock
    ) -> None:
        api.sign_up_with_password.return_value = make_sign_in_response()

        account = await auth.sign_up_with_password("alice@example.com", "s3cret!", locale="de")

        request = api.sign_up_with_password.await_args.args[0]
        assert request.email == "alice@example.com"
        oob_request, locale = api.send_oob_code.await_args.args
        assert oob_request.request_type == OobCodeType.VERIFY_EMAIL
        assert oob_request.id_token == "id-token-0"
        assert locale == "de"
        assert account.email_verification is not None
        assert account.email_verification.sent is True

    @pytest.mark.asyncio
    async def test_sign_up_succeeds_when_confirmation_fails(
        self, auth: FirebaseAuth, api: AsyncMock
    ) -> None:
        """A failing confirmation email does not fail the sign-up."""
        api.sign_up_with_password.return_value = make_sign_in_response()
        error = auth_error(AuthErrorKind.NETWORK_FAILURE)
        api.send_oob_code.side_effect = error

        account = await auth.sign_up_with_password("alice@example.com", "s3cret!")

        assert account.id_token == "id-token-0"
        assert account.email_verification is not None
        assert account.email_verification.sent is False
        assert account.email_verification.error is error

    @pytest.mark.asyncio
    async def test_sign_up_without_auto_verify(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.sign_up_with_password.return_value = make_sign_in_response()

        account = await auth.sign_up_with_password(
            "alice@example.com", "s3cret!", auto_verify=False
        )

        api.send_oob_code.assert_not_awaited()
        assert account.email_verification is None

    @pytest.mark.asyncio
    async def test_sign_up_failure_propagates(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.sign_up_with_password.side_effect = auth_error(
            AuthErrorKind.ACCOUNT_EXISTS, "EMAIL_EXISTS"
        )

        with pytest.raises(AuthError) as exc_info:
            await auth.sign_up_with_password("alice@example.com", "s3cret!")

        assert exc_info.value.kind == AuthErrorKind.ACCOUNT_EXISTS
        api.send_oob_code.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancelled_sign_up_leaves_no_refresh_timer(self, api: AsyncMock) -> None:
        """Cancelling while the confirmation email is in flight starts no refresh."""
        auth = FirebaseAuth(api, refresh_margin=0, auto_refresh=True)
        api.sign_up_with_password.return_value = make_sign_in_response(expires_in=0)
        api.refresh_token.return_value = RefreshResponse("id-token-r1", "refresh-token-r1", 3600)
        gate = asyncio.Event()

        async def blocked_send(request, locale=None):
            await gate.wait()

        api.send_oob_code.side_effect = blocked_send

        sign_up = asyncio.create_task(auth.sign_up_with_password("alice@example.com", "s3cret!"))
        await asyncio.sleep(0.01)
        api.send_oob_code.assert_awaited_once()
        sign_up.cancel()
        with pytest.raises(asyncio.CancelledError):
            await sign_up
        await asyncio.sleep(0.05)

        api.refresh_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_confirmation_error_leaves_no_refresh_timer(
        self, api: AsyncMock
    ) -> None:
        auth = FirebaseAuth(api, refresh_margin=0, auto_refresh=True)
        api.sign_up_with_password.return_value = make_sign_in_response(expires_in=0)
        api.send_oob_code.side_effect = RuntimeError("transport bug")

        with pytest.raises(RuntimeError):
            await auth.sign_up_with_password("alice@example.com", "s3cret!")
        await asyncio.sleep(0.05)

        api.refresh_token.assert_not_awaited()


class TestSignIn:
    """Tests for the sign-in entry points."""

    @pytest.mark.asyncio
    async def test_sign_in_with_password(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.sign_in_with_password.return_value = make_sign_in_response()

        account = await auth.sign_in_with_password("alice@example.com", "s3cret!")

        assert account.id_token == "id-token-0"

    @pytest.mark.asyncio
    async def test_sign_in_with_idp(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.sign_in_with_idp.return_value = make_sign_in_response()

        await auth.sign_in_with_idp(FacebookProvider("fb-token"), "https://app.example.com/cb")

        request = api.sign_in_with_idp.await_args.args[0]
        assert request.request_uri == "https://app.example.com/cb"
        assert "access_token=fb-token" in request.post_body
        assert request.id_token is None

    @pytest.mark.asyncio
    async def test_sign_in_with_custom_token(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.sign_in_with_custom_token.return_value = make_sign_in_response()

        await auth.sign_in_with_custom_token("custom-jwt")

        assert api.sign_in_with_custom_token.await_args.args[0].token == "custom-jwt"

    @pytest.mark.asyncio
    async def test_auto_refresh_override(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.sign_in_with_password.return_value = make_sign_in_response()

        account = await auth.sign_in_with_password("a@example.com", "pw", auto_refresh=True)

        try:
            assert account.refresh_state == RefreshState.ARMED
        finally:
            account.dispose()

    @pytest.mark.asyncio
    async def test_from_config_carries_settings(self) -> None:
        config = AuthConfig(api_key="key", locale="it", refresh_margin=120, auto_refresh=False)

        auth = FirebaseAuth.from_config(config, session=AsyncMock())

        assert auth.locale == "it"
        assert auth.refresh_margin == 120
        assert auth.auto_refresh is False


class TestPasswordReset:
    """Tests for the stateless password reset helpers."""

    @pytest.mark.asyncio
    async def test_request_password_reset(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        await auth.request_password_reset("alice@example.com")

        request, locale = api.send_oob_code.await_args.args
        assert request.request_type == OobCodeType.PASSWORD_RESET
        assert request.email == "alice@example.com"
        assert locale == "en"

    @pytest.mark.asyncio
    async def test_validate_password_reset(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.reset_password.return_value = PasswordResetResponse(email="alice@example.com")

        assert await auth.validate_password_reset("oob") == "alice@example.com"
        request = api.reset_password.await_args.args[0]
        assert request.oob_code == "oob"
        assert request.new_password is None

    @pytest.mark.asyncio
    async def test_reset_password(self, auth: FirebaseAuth, api: AsyncMock) -> None:
        api.reset_password.return_value = PasswordResetResponse(email="alice@example.com")

        assert await auth.reset_password("oob", "n3w") == "alice@example.com"
        assert api.reset_password.await_args.args[0].new_password == "n3w"

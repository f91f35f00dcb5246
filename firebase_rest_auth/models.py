"""
Request payloads and response types for the Firebase auth REST API.

Requests serialize to the camelCase JSON bodies the Identity Toolkit
expects (``to_dict``); responses are parsed from the backend JSON
(``from_dict``). The Secure Token endpoint is the odd one out and
speaks snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _timestamp_ms(value: Any) -> datetime | None:
    """Parse the millisecond epoch strings used by ``accounts:lookup``."""
    millis = _optional_int(value)
    if millis is None:
        return None
    return datetime.fromtimestamp(millis / 1000, tz=UTC)


# Requests


@dataclass(frozen=True)
class AnonymousSignInRequest:
    """Creates an account with no sign-in method attached."""

    def to_dict(self) -> dict[str, Any]:
        return {"returnSecureToken": True}


@dataclass(frozen=True)
class PasswordSignInRequest:
    """Sign up or sign in with email and password."""

    email: str
    password: str

    def to_dict(self) -> dict[str, Any]:
        return {"email": self.email, "password": self.password, "returnSecureToken": True}


@dataclass(frozen=True)
class IdpSignInRequest:
    """Sign in with an identity provider credential.

    With ``id_token`` set, the provider is linked to that account instead
    of signing in.
    """

    post_body: str
    request_uri: str
    id_token: str | None = None
    return_idp_credential: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "postBody": self.post_body,
            "requestUri": self.request_uri,
            "returnSecureToken": True,
            "returnIdpCredential": self.return_idp_credential,
        }
        if self.id_token is not None:
            data["idToken"] = self.id_token
        return data


@dataclass(frozen=True)
class CustomTokenSignInRequest:
    """Sign in with a custom token minted by a trusted server."""

    token: str

    def to_dict(self) -> dict[str, Any]:
        return {"token": self.token, "returnSecureToken": True}


@dataclass(frozen=True)
class RefreshRequest:
    refresh_token: str

    def to_dict(self) -> dict[str, Any]:
        return {"grant_type": "refresh_token", "refresh_token": self.refresh_token}


@dataclass(frozen=True)
class FetchProviderRequest:
    identifier: str
    continue_uri: str = "http://localhost"

    def to_dict(self) -> dict[str, Any]:
        return {"identifier": self.identifier, "continueUri": self.continue_uri}


class OobCodeType(Enum):
    """Kinds of out-of-band email the backend can send."""

    VERIFY_EMAIL = "VERIFY_EMAIL"
    PASSWORD_RESET = "PASSWORD_RESET"


@dataclass(frozen=True)
class OobCodeRequest:
    """Request for a transactional email carrying an OOB code."""

    request_type: OobCodeType
    id_token: str | None = None
    email: str | None = None

    @classmethod
    def verify_email(cls, id_token: str) -> OobCodeRequest:
        return cls(OobCodeType.VERIFY_EMAIL, id_token=id_token)

    @classmethod
    def password_reset(cls, email: str) -> OobCodeRequest:
        return cls(OobCodeType.PASSWORD_RESET, email=email)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"requestType": self.request_type.value}
        if self.id_token is not None:
            data["idToken"] = self.id_token
        if self.email is not None:
            data["email"] = self.email
        return data


@dataclass(frozen=True)
class PasswordResetRequest:
    """Verify a password reset code, or confirm it with a new password."""

    oob_code: str
    new_password: str | None = None

    @classmethod
    def verify(cls, oob_code: str) -> PasswordResetRequest:
        return cls(oob_code)

    @classmethod
    def confirm(cls, oob_code: str, new_password: str) -> PasswordResetRequest:
        return cls(oob_code, new_password)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"oobCode": self.oob_code}
        if self.new_password is not None:
            data["newPassword"] = self.new_password
        return data


@dataclass(frozen=True)
class ConfirmEmailRequest:
    oob_code: str

    def to_dict(self) -> dict[str, Any]:
        return {"oobCode": self.oob_code}


@dataclass(frozen=True)
class IdTokenRequest:
    """Body for endpoints that only need the caller's ID token (lookup, delete)."""

    id_token: str

    def to_dict(self) -> dict[str, Any]:
        return {"idToken": self.id_token}


@dataclass(frozen=True)
class EmailUpdateRequest:
    id_token: str
    email: str

    def to_dict(self) -> dict[str, Any]:
        return {"idToken": self.id_token, "email": self.email, "returnSecureToken": True}


@dataclass(frozen=True)
class PasswordUpdateRequest:
    """Changes the password, or links email+password when ``email`` is set."""

    id_token: str
    password: str
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "idToken": self.id_token,
            "password": self.password,
            "returnSecureToken": True,
        }
        if self.email is not None:
            data["email"] = self.email
        return data


@dataclass(frozen=True)
class ProfileUpdateRequest:
    id_token: str
    display_name: str | None = None
    photo_url: str | None = None
    delete_attributes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"idToken": self.id_token, "returnSecureToken": True}
        if self.display_name is not None:
            data["displayName"] = self.display_name
        if self.photo_url is not None:
            data["photoUrl"] = self.photo_url
        if self.delete_attributes:
            data["deleteAttribute"] = list(self.delete_attributes)
        return data


@dataclass(frozen=True)
class UnlinkRequest:
    id_token: str
    provider_ids: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"idToken": self.id_token, "deleteProvider": list(self.provider_ids)}


# Responses


@dataclass
class SignInResponse:
    """Token issuance response of the sign-up/sign-in endpoints."""

    id_token: str
    refresh_token: str
    expires_in: int
    local_id: str
    email: str | None = None
    email_verified: bool | None = None
    is_new_user: bool | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SignInResponse:
        return cls(
            id_token=data["idToken"],
            refresh_token=data["refreshToken"],
            expires_in=int(data["expiresIn"]),
            local_id=data["localId"],
            email=data.get("email") or None,
            email_verified=data.get("emailVerified"),
            is_new_user=data.get("isNewUser"),
        )


@dataclass
class RefreshResponse:
    """Response of the Secure Token refresh endpoint."""

    id_token: str
    refresh_token: str
    expires_in: int
    user_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RefreshResponse:
        return cls(
            id_token=data["id_token"],
            refresh_token=data["refresh_token"],
            expires_in=int(data["expires_in"]),
            user_id=data.get("user_id"),
        )


@dataclass
class FetchProviderResponse:
    registered: bool = False
    all_providers: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FetchProviderResponse:
        return cls(
            registered=bool(data.get("registered", False)),
            all_providers=list(data.get("allProviders", [])),
        )


@dataclass
class PasswordResetResponse:
    email: str
    request_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PasswordResetResponse:
        return cls(email=data.get("email", ""), request_type=data.get("requestType"))


@dataclass
class UpdateResponse:
    """Response of ``accounts:update``.

    Token fields are only present when the update invalidated the old
    tokens (email or password changes, email linking).
    """

    local_id: str | None = None
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None
    photo_url: str | None = None
    provider_ids: list[str] = field(default_factory=list)
    id_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None

    @property
    def has_tokens(self) -> bool:
        return bool(self.id_token and self.refresh_token and self.expires_in is not None)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UpdateResponse:
        return cls(
            local_id=data.get("localId"),
            email=data.get("email"),
            email_verified=bool(data.get("emailVerified", False)),
            display_name=data.get("displayName"),
            photo_url=data.get("photoUrl"),
            provider_ids=[
                info["providerId"]
                for info in data.get("providerUserInfo", [])
                if "providerId" in info
            ],
            id_token=data.get("idToken"),
            refresh_token=data.get("refreshToken"),
            expires_in=_optional_int(data.get("expiresIn")),
        )


@dataclass
class ProviderUserInfo:
    """A sign-in method attached to an account."""

    provider_id: str
    federated_id: str | None = None
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderUserInfo:
        return cls(
            provider_id=data["providerId"],
            federated_id=data.get("federatedId"),
            email=data.get("email"),
            display_name=data.get("displayName"),
            photo_url=data.get("photoUrl"),
        )


@dataclass
class UserData:
    """Account details as returned by ``accounts:lookup``."""

    local_id: str
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None
    photo_url: str | None = None
    providers: list[ProviderUserInfo] = field(default_factory=list)
    disabled: bool = False
    custom_auth: bool = False
    created_at: datetime | None = None
    last_login_at: datetime | None = None
    password_updated_at: datetime | None = None

    @property
    def provider_ids(self) -> list[str]:
        return [p.provider_id for p in self.providers]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserData:
        return cls(
            local_id=data["localId"],
            email=data.get("email"),
            email_verified=bool(data.get("emailVerified", False)),
            display_name=data.get("displayName"),
            photo_url=data.get("photoUrl"),
            providers=[ProviderUserInfo.from_dict(p) for p in data.get("providerUserInfo", [])],
            disabled=bool(data.get("disabled", False)),
            custom_auth=bool(data.get("customAuth", False)),
            created_at=_timestamp_ms(data.get("createdAt")),
            last_login_at=_timestamp_ms(data.get("lastLoginAt")),
            # passwordUpdatedAt is a float of milliseconds, not a string
            password_updated_at=_timestamp_ms(
                int(data["passwordUpdatedAt"]) if data.get("passwordUpdatedAt") else None
            ),
        )

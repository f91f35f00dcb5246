"""
Identity provider credentials.

An ``IdpProvider`` wraps whatever the third-party OAuth flow produced
(an ID token, an access token, ...) and renders it as the url-encoded
``postBody`` that ``accounts:signInWithIdp`` expects. Running the OAuth
flow itself is up to the application.
"""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass, field
from enum import Enum


class ProviderId(Enum):
    """Provider ids as reported by ``fetch_providers``."""

    PASSWORD = "password"
    GOOGLE = "google.com"
    FACEBOOK = "facebook.com"
    TWITTER = "twitter.com"
    GITHUB = "github.com"
    APPLE = "apple.com"


@dataclass(frozen=True)
class IdpProvider:
    """Generic identity provider credential.

    ``params`` are the provider specific credential fields, e.g.
    ``{"id_token": "..."}``. Use the subclasses for the common providers.
    """

    provider_id: str
    params: dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def id(self) -> str:
        return self.provider_id

    @property
    def post_body(self) -> str:
        return urllib.parse.urlencode({**self.params, "providerId": self.provider_id})


class GoogleProvider(IdpProvider):
    def __init__(self, id_token: str | None = None, access_token: str | None = None):
        if not id_token and not access_token:
            raise ValueError("GoogleProvider needs an id_token or an access_token")
        params = {"id_token": id_token} if id_token else {"access_token": access_token}
        super().__init__(ProviderId.GOOGLE.value, params)  # type: ignore[arg-type]


class FacebookProvider(IdpProvider):
    def __init__(self, access_token: str):
        super().__init__(ProviderId.FACEBOOK.value, {"access_token": access_token})


class TwitterProvider(IdpProvider):
    def __init__(self, access_token: str, oauth_token_secret: str):
        super().__init__(
            ProviderId.TWITTER.value,
            {"access_token": access_token, "oauth_token_secret": oauth_token_secret},
        )


class GithubProvider(IdpProvider):
    def __init__(self, access_token: str):
        super().__init__(ProviderId.GITHUB.value, {"access_token": access_token})


class AppleProvider(IdpProvider):
    def __init__(self, id_token: str, nonce: str | None = None):
        params = {"id_token": id_token}
        if nonce:
            params["nonce"] = nonce
        super().__init__(ProviderId.APPLE.value, params)

"""
Firebase REST Auth

Async client for Firebase Authentication over its REST API.

Provides:
- Account creation and sign-in (anonymous, password, identity provider, custom token)
- Sign-in method discovery and password reset flows
- Per-account session management with automatic token refresh

Usage:

    >>> import aiohttp
    >>> from firebase_rest_auth import FirebaseAuth
    >>> async with aiohttp.ClientSession() as session:
    ...     auth = FirebaseAuth.from_session(session, api_key)
    ...     async with await auth.sign_up_anonymous() as account:
    ...         await account.link_email("alice@example.com", "s3cret!")

Configuration:

    # From FIREBASE_API_KEY and friends
    config = AuthConfig.from_env()
    auth = FirebaseAuth.from_config(config, session)
"""

from .auth import FirebaseAuth
from .config import DEFAULT_REFRESH_MARGIN, AuthConfig

# Exceptions
from .exceptions import (
    AuthError,
    AuthErrorKind,
    ConfigurationError,
    FirebaseAuthError,
    SessionClosedError,
)
from .logging_utils import configure_structured_logging
from .models import UserData
from .providers import (
    AppleProvider,
    FacebookProvider,
    GithubProvider,
    GoogleProvider,
    IdpProvider,
    ProviderId,
    TwitterProvider,
)
from .rest_api import RestApi
from .session import (
    Credentials,
    FirebaseAccount,
    RefreshState,
    VerificationResult,
)

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "FirebaseAuth",
    "FirebaseAccount",
    "RestApi",
    # Configuration
    "AuthConfig",
    "DEFAULT_REFRESH_MARGIN",
    "configure_structured_logging",
    # Session state
    "Credentials",
    "RefreshState",
    "VerificationResult",
    "UserData",
    # Providers
    "IdpProvider",
    "ProviderId",
    "GoogleProvider",
    "FacebookProvider",
    "TwitterProvider",
    "GithubProvider",
    "AppleProvider",
    # Exceptions
    "FirebaseAuthError",
    "AuthError",
    "AuthErrorKind",
    "SessionClosedError",
    "ConfigurationError",
]

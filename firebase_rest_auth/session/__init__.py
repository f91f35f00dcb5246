"""
Account session management.

Holds an account's credentials, exposes account mutations and keeps
the ID token fresh in the background.
"""

from .account import FirebaseAccount, VerificationResult
from .credentials import Credentials
from .scheduler import RefreshScheduler, RefreshState

__all__ = [
    "FirebaseAccount",
    "VerificationResult",
    "Credentials",
    "RefreshScheduler",
    "RefreshState",
]

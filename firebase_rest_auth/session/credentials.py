"""
The credential pair held by an account session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from ..models import RefreshResponse, SignInResponse, UpdateResponse


@dataclass(frozen=True)
class Credentials:
    """ID token, refresh token and expiry of one account.

    Instances are immutable snapshots. An account replaces its
    credentials wholesale, so a reader always sees a consistent pair.
    """

    local_id: str
    id_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    expires_at: datetime

    @classmethod
    def issued(
        cls,
        local_id: str,
        id_token: str,
        refresh_token: str,
        expires_in: int,
        received_at: datetime | None = None,
    ) -> Credentials:
        """Build credentials from a token issuance received at ``received_at`` (default: now)."""
        received_at = received_at or datetime.now(UTC)
        return cls(
            local_id=local_id,
            id_token=id_token,
            refresh_token=refresh_token,
            expires_at=received_at + timedelta(seconds=expires_in),
        )

    @classmethod
    def from_sign_in(cls, response: SignInResponse) -> Credentials:
        return cls.issued(
            response.local_id, response.id_token, response.refresh_token, response.expires_in
        )

    def refreshed(self, response: RefreshResponse) -> Credentials:
        """Credentials for the same account from a refresh response."""
        return Credentials.issued(
            self.local_id, response.id_token, response.refresh_token, response.expires_in
        )

    def updated(self, response: UpdateResponse) -> Credentials:
        """Credentials from an update response, or ``self`` if it carries no tokens."""
        if not response.has_tokens:
            return self
        return Credentials.issued(
            response.local_id or self.local_id,
            response.id_token,  # type: ignore[arg-type]
            response.refresh_token,  # type: ignore[arg-type]
            response.expires_in,  # type: ignore[arg-type]
        )

    def expires_in(self, now: datetime | None = None) -> float:
        """Seconds until expiry (negative once expired)."""
        now = now or datetime.now(UTC)
        return (self.expires_at - now).total_seconds()

    def is_expired(self, margin: float = 0.0, now: datetime | None = None) -> bool:
        return self.expires_in(now) <= margin

"""Source client Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..records import Item, Profile


class BaseSourceClient(ABC):
    """Fetch profiles and newest-first items for tracked accounts.

    The session is created by ``init`` and reused across passes; its
    lifecycle belongs to whoever constructed the client.
    """

    @abstractmethod
    def init(self) -> None:
        """Open the session; raise ``AuthError`` on rejected credentials."""

    @abstractmethod
    def get_profile(self, source_id: str) -> Profile | None:
        """Return the account profile or ``None`` when it does not exist."""

    @abstractmethod
    def get_items(self, source_id: str) -> Sequence[Item | None]:
        """Return the account's items ordered newest-first."""

    def close(self) -> None:
        """Release the session."""


__all__ = ["BaseSourceClient"]

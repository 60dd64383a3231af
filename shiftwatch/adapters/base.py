"""
Directory service interface.

A directory client turns a chat-platform user id into a profile carrying the
email address agents are registered under, and finds the thread a message
belongs to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class DirectoryProfile:
    """Profile returned by the directory service."""

    external_user_id: str
    email: Optional[str] = None
    username: Optional[str] = None


class BaseDirectoryClient(ABC):
    """Contract for directory lookups. Implementations must use a short timeout."""

    @abstractmethod
    def lookup_user(self, external_user_id: str) -> DirectoryProfile:
        """Return the user's profile. Raise DirectoryLookupError on any failure."""
        ...

    @abstractmethod
    def lookup_thread_ts(self, channel_id: str, message_ts: str) -> Optional[str]:
        """Return the root thread ts for a message, or None if it is not threaded."""
        ...

    @abstractmethod
    def auth_test(self) -> dict[str, Any]:
        """Check credentials against the service. Raise DirectoryLookupError on failure."""
        ...

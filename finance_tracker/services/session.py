"""
Session Resolution

The synchronizer asks "who is signed in?" before loading and before every
remote write. Anything that can answer that question implements
SessionResolver.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.config import SessionSettings, get_settings


class UserIdentity(BaseModel):
    """The authenticated owner of remote transactions."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1, description="Owner id stored in user_id")
    email: Optional[str] = None


class SessionResolver(ABC):
    """Resolves the identity of the current session, if any."""

    @abstractmethod
    async def current_user(self) -> Optional[UserIdentity]:
        """
        Returns:
            The signed-in identity, or None when there is no session
        """
        pass


class StaticSessionResolver(SessionResolver):
    """
    Resolver with a fixed identity (or none).

    Used for a single configured account and in tests.
    """

    def __init__(self, identity: Optional[UserIdentity] = None):
        self._identity = identity

    @classmethod
    def from_settings(
        cls,
        settings: Optional[SessionSettings] = None,
    ) -> "StaticSessionResolver":
        settings = settings or get_settings().session
        if not settings.user_id:
            return cls(None)
        return cls(UserIdentity(id=settings.user_id, email=settings.email))

    def sign_in(self, identity: UserIdentity) -> None:
        self._identity = identity

    def sign_out(self) -> None:
        self._identity = None

    async def current_user(self) -> Optional[UserIdentity]:
        return self._identity

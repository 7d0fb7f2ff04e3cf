"""Session identity injected into every API request"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class AuthSession:
    """Authenticated user identity"""

    user_id: str
    access_token: Optional[str] = None


class SessionProvider(ABC):
    """Source of the current session (sign-in itself happens elsewhere)"""

    @abstractmethod
    async def get_session(self) -> Optional[AuthSession]:
        """Current session, or None when signed out"""


class StaticSessionProvider(SessionProvider):
    """Provider with a fixed identity"""

    def __init__(self, user_id: str = "", access_token: str = ""):
        self._session = AuthSession(user_id, access_token or None) if user_id else None

    async def get_session(self) -> Optional[AuthSession]:
        return self._session


class SessionAuth(httpx.Auth):
    """Adds the bearer token and the user_id query parameter"""

    def __init__(self, provider: SessionProvider):
        self.provider = provider

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        session = await self.provider.get_session()
        if session is not None:
            if session.access_token:
                request.headers["Authorization"] = f"Bearer {session.access_token}"
            if session.user_id:
                request.url = request.url.copy_merge_params({"user_id": session.user_id})
        yield request

#!/usr/bin/env python3
"""Per-connection session state for authenticated portal operations."""

from dataclasses import dataclass, field
from typing import Optional

from .utils.exceptions import AuthenticationRequiredError

AUTH_REQUIRED_MESSAGE = (
    "Error: Authentication required. Call `set_api_key` with your PortalJS "
    "API key (and optionally `api_url`) before using create, update or "
    "membership tools."
)


@dataclass(frozen=True)
class SessionCredential:
    """API key and optional portal URL supplied by the client."""

    api_key: str = field(repr=False)
    api_url: Optional[str] = None


@dataclass
class SessionContext:
    """Credential holder for one client connection.

    The transport creates one context per connection and passes it into
    every tool call. It is never persisted.
    """

    credential: Optional[SessionCredential] = None

    @property
    def is_authenticated(self) -> bool:
        return self.credential is not None

    def set_credential(self, api_key: str, api_url: Optional[str] = None) -> SessionCredential:
        self.credential = SessionCredential(
            api_key=api_key, api_url=api_url.rstrip("/") if api_url else None
        )
        return self.credential

    def require_credential(self, tool: Optional[str] = None) -> SessionCredential:
        if self.credential is None:
            raise AuthenticationRequiredError(AUTH_REQUIRED_MESSAGE, tool=tool)
        return self.credential

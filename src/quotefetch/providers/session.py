"""Cookie + crumb handshake for the Yahoo Finance download endpoint.

The CSV download endpoint only answers requests that carry a session
cookie and a matching anti-scraping "crumb" token. Obtaining them takes
two requests through the same cookie jar:

1. GET the portal home page, which sets the session cookie.
2. GET the crumb endpoint, whose body is a single CSV-encoded token.

There is exactly one attempt; on failure the session stays
unauthenticated and the caller cannot proceed with the data request.
"""

from __future__ import annotations

import csv
import io
import logging
from enum import StrEnum

import httpx

from quotefetch.core.exceptions import AuthError

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


def parse_crumb(body: str) -> str:
    """Return the first CSV field of the first line, or ``""``."""
    reader = csv.reader(io.StringIO(body))
    for row in reader:
        return row[0].strip() if row else ""
    return ""


class PortalSession:
    """Session cookie and crumb for one portal conversation.

    Parameters
    ----------
    client : httpx.AsyncClient
        Client whose cookie jar carries the session. The session does not
        own the client; the provider closes it.
    home_url : str
        Page that sets the session cookie.
    crumb_url : str
        Endpoint that returns the crumb for the current cookie.
    """

    def __init__(self, client: httpx.AsyncClient, home_url: str, crumb_url: str) -> None:
        self._client = client
        self._home_url = home_url
        self._crumb_url = crumb_url
        self.state = SessionState.UNAUTHENTICATED
        self.crumb: str | None = None

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    @property
    def authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    async def authenticate(self) -> str:
        """Run the two-step handshake and return the crumb.

        Raises
        ------
        AuthError
            On a transport error, a non-200 crumb response, or an empty crumb.
        """
        if self.authenticated and self.crumb:
            return self.crumb

        try:
            home = await self._client.get(self._home_url)
            logger.debug("Portal home returned %d", home.status_code)
        except httpx.HTTPError as e:
            raise AuthError(
                f"Session cookie request failed: {e}",
                context={"url": self._home_url, "status_code": None},
            ) from e

        try:
            resp = await self._client.get(self._crumb_url)
        except httpx.HTTPError as e:
            raise AuthError(
                f"Crumb request failed: {e}",
                context={"url": self._crumb_url, "status_code": None},
            ) from e

        if resp.status_code != 200:
            raise AuthError(
                f"Crumb endpoint returned HTTP {resp.status_code}",
                context={"url": self._crumb_url, "status_code": resp.status_code},
            )

        crumb = parse_crumb(resp.text)
        if not crumb:
            raise AuthError(
                "Crumb endpoint returned an empty token",
                context={"url": self._crumb_url, "status_code": resp.status_code},
            )

        self.crumb = crumb
        self.state = SessionState.AUTHENTICATED
        logger.debug("Portal session authenticated")
        return crumb

"""
Async HTTP transport for the device-inventory API.

Wraps an aiohttp ClientSession and turns every failure into one of two
errors the controller knows how to report:

- TransportUnreachable: no response at all (refused, DNS, timeout)
- TransportError: a response arrived but was an HTTP error or not JSON

Usage:
    async with ApiClient("http://provisioner.local:8080") as client:
        devices = await client.get_json("/api/devices")
"""

import asyncio
import codecs
import json
import logging
from typing import Any, Optional
from urllib.parse import urljoin

import aiohttp

from provisioner.errors import TransportError, TransportUnreachable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def _charset(resp: aiohttp.ClientResponse) -> str:
    charset = resp.charset or "utf-8"
    try:
        codecs.lookup(charset)
    except LookupError:
        return "utf-8"
    return charset


def _try_json(text: str) -> Optional[Any]:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


class ApiClient:
    """
    Thin JSON client. Directory templates may be absolute, host-relative
    or protocol-relative ("//host:port/api/..."); all are resolved against
    ``base_url``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def absolute_url(self, url: str) -> str:
        return urljoin(self.base_url, url)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def get_json(self, url: str) -> Any:
        """GET a URL and return the decoded JSON body."""
        return await self._request("GET", url)

    async def post(self, url: str) -> Any:
        """POST to a URL without a request body and return the decoded JSON reply."""
        return await self._request("POST", url)

    async def _request(self, method: str, url: str) -> Any:
        target = self.absolute_url(url)
        logger.debug(f"{method} {target}")
        try:
            async with self._get_session().request(method, target, timeout=self.timeout) as resp:
                raw = await resp.read()
                charset = _charset(resp)
                if resp.status >= 400:
                    text = raw.decode(charset, errors="replace")
                    raise TransportError(
                        "error", resp.reason or "", _try_json(text), http_status=resp.status,
                    )
                if not raw:
                    return None
                try:
                    return json.loads(raw.decode(charset))
                except ValueError as e:  # includes UnicodeDecodeError
                    raise TransportError("parsererror", str(e)) from e
        except asyncio.TimeoutError as e:
            logger.debug(f"{method} {target} timed out")
            raise TransportUnreachable("request timed out", status="timeout") from e
        except aiohttp.ClientConnectionError as e:
            logger.debug(f"{method} {target} unreachable: {e!r}")
            raise TransportUnreachable(str(e)) from e
        except aiohttp.ClientError as e:
            raise TransportError("error", str(e)) from e

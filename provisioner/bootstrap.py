"""
Controller bootstrap.

The server publishes its URL directory at a fixed path (``/api``). The
directory has to be fetched before a Provisioner can exist.

Usage:
    from provisioner.bootstrap import provisioner_session

    async with provisioner_session() as prov:
        prov.subscribe(on_change)
        await asyncio.Event().wait()
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from provisioner.controller import Provisioner
from provisioner.errors import BootstrapError, TransportFailure
from provisioner.settings import ProvisionerSettings, get_settings
from provisioner.transport import ApiClient
from provisioner.urls import UrlDirectory

logger = logging.getLogger(__name__)


async def fetch_directory(client: ApiClient, path: str = "/api") -> UrlDirectory:
    """
    Fetch the endpoint-name -> URL-template directory.

    Raises:
        BootstrapError: the request failed or the body is not a JSON
            object of strings
    """
    try:
        data = await client.get_json(path)
    except TransportFailure as e:
        logger.error(f"Could not fetch URL directory from {path}: {e}")
        raise BootstrapError() from e

    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        logger.error(f"Malformed URL directory from {path}: {data!r}")
        raise BootstrapError()

    logger.info(f"Loaded URL directory with {len(data)} endpoints")
    return UrlDirectory(data)


async def create_provisioner(
    settings: Optional[ProvisionerSettings] = None,
    client: Optional[ApiClient] = None,
) -> Provisioner:
    """
    Fetch the URL directory and construct a Provisioner.

    When no client is given one is created from settings; the caller then
    owns ``provisioner.client`` and must close it.
    """
    settings = settings or get_settings()
    if client is None:
        client = ApiClient(settings.base_url, timeout=settings.request_timeout)
    directory = await fetch_directory(client, settings.directory_path)
    return Provisioner(directory, client, refresh_rate=settings.refresh_rate)


@asynccontextmanager
async def provisioner_session(
    settings: Optional[ProvisionerSettings] = None,
) -> AsyncIterator[Provisioner]:
    """Create a Provisioner with its own client and tear both down on exit."""
    settings = settings or get_settings()
    async with ApiClient(settings.base_url, timeout=settings.request_timeout) as client:
        prov = await create_provisioner(settings, client)
        try:
            yield prov
        finally:
            await prov.close()

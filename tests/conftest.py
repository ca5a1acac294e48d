"""Shared pytest fixtures for Provisioner tests."""
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from provisioner.controller import Provisioner
from provisioner.transport import ApiClient


DIRECTORY = {
    "api_directory": "/api",
    "devices": "/api/devices",
    "device": "/api/devices/{mac}",
    "reboot_device": "/api/devices/{mac}/reboot",
    "provision_device": "/api/devices/{mac}/provision",
    "upgrade_device": "/api/devices/{mac}/upgrade",
}


def make_device(mac, has_config=True, can_upgrade=True, **extra):
    """Device payload as GET /api/devices returns it."""
    return {
        "mac_address": mac,
        "has_config": has_config,
        "can_upgrade": can_upgrade,
        "hostname": f"ubnt-{mac[-2:].lower()}",
        "status": "idle",
        **extra,
    }


@pytest.fixture
def directory():
    return dict(DIRECTORY)


@pytest.fixture
def api():
    """ApiClient stand-in; get_json answers with an empty device list."""
    client = MagicMock(spec=ApiClient)
    client.get_json = AsyncMock(return_value=[])
    client.post = AsyncMock(return_value={"type": "success", "message": "ok"})
    return client


@pytest_asyncio.fixture
async def provisioner(api, directory):
    """A Provisioner whose initial poll has completed."""
    prov = Provisioner(directory, api)
    await prov.wait_idle()
    yield prov
    await prov.close()


@pytest_asyncio.fixture
async def loaded(api, directory):
    """A Provisioner that knows three devices with different capabilities."""
    api.get_json.return_value = [
        make_device("AA:BB", has_config=False, can_upgrade=False),
        make_device("CC:DD", has_config=True, can_upgrade=False),
        make_device("EE:FF", has_config=True, can_upgrade=True),
    ]
    prov = Provisioner(directory, api)
    await prov.wait_idle()
    yield prov
    await prov.close()


@pytest.fixture
def device_payload():
    """Factory for device payloads: device_payload("AA:BB", has_config=False)."""
    return make_device

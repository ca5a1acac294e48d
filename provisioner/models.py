"""
Wire models for the device-inventory API.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, TypeAdapter


class Device(BaseModel):
    """
    A device as reported by GET /api/devices.

    Only the fields the controller acts on are declared; everything else
    the server sends (hostname, firmware, ip_address, status, ...) is
    kept as extra attributes.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    mac_address: str
    has_config: bool = False
    can_upgrade: bool = False


class ActionResult(BaseModel):
    """Server reply to a device action: alert severity plus message."""
    model_config = ConfigDict(extra="ignore")

    type: str
    message: str


DeviceList = TypeAdapter(List[Device])

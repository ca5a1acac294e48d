"""
Provisioner controller package.

Usage:
    from provisioner import Provisioner, UrlDirectory, ApiClient

    async with ApiClient("http://localhost:8080") as client:
        prov = Provisioner({"devices": "/api/devices"}, client)
        await prov.wait_idle()
        print(prov.num_devices)
"""

from provisioner.alerts import Alert, AlertLog, Severity
from provisioner.bootstrap import create_provisioner, fetch_directory, provisioner_session
from provisioner.controller import ACTIONS, REFRESH_DISABLED, Provisioner
from provisioner.errors import ErrorKind, ProvisionerError
from provisioner.models import ActionResult, Device
from provisioner.transport import ApiClient
from provisioner.urls import UrlDirectory

__all__ = [
    # Controller
    "Provisioner",
    "ACTIONS",
    "REFRESH_DISABLED",
    "create_provisioner",
    "fetch_directory",
    "provisioner_session",
    # Models
    "Alert",
    "AlertLog",
    "Severity",
    "Device",
    "ActionResult",
    "UrlDirectory",
    # Transport
    "ApiClient",
    # Errors
    "ErrorKind",
    "ProvisionerError",
]

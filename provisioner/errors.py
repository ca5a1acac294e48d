"""
Error taxonomy for the Provisioner controller.

Error Hierarchy:
- Contract violations (UnknownEndpoint, MissingParameter, InvalidRate,
  BootstrapError): raised synchronously to the caller.
- ActionRejected: a device action failed validation. Absorbed into the
  alert log by Provisioner.perform_action.
- TransportFailure: the HTTP collaborator failed. Absorbed into the alert
  log by the controller.
- ActionFailed: an action request reached the server and failed.

Usage:
    from provisioner.errors import DeviceNotFound, ErrorKind

    try:
        url = directory.resolve("reboot_device", {"mac": mac})
    except UnknownEndpoint:
        ...
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Tagged error kinds."""
    UNKNOWN_ENDPOINT = "unknown_endpoint"
    MISSING_PARAMETER = "missing_parameter"
    INVALID_RATE = "invalid_rate"
    DEVICE_NOT_FOUND = "device_not_found"
    UNKNOWN_ACTION = "unknown_action"
    MISSING_ROUTE = "missing_route"
    PRECONDITION_FAILED = "precondition_failed"
    TRANSPORT_UNREACHABLE = "transport_unreachable"
    TRANSPORT_ERROR = "transport_error"
    ACTION_FAILED = "action_failed"
    BOOTSTRAP_FAILED = "bootstrap_failed"


class ProvisionerError(Exception):
    """
    Base class for all controller errors.

    The message is always user-presentable; it is what ends up in the
    alert log when the error is absorbed.
    """
    kind: ErrorKind = None
    severity = "danger"

    @property
    def message(self) -> str:
        return str(self)


# =============================================================================
# Contract Violations (raised to the caller)
# =============================================================================

class UnknownEndpoint(ProvisionerError):
    """Named URL is not in the directory."""
    kind = ErrorKind.UNKNOWN_ENDPOINT

    def __init__(self, name: str):
        super().__init__(f"Named URL {name} not found.")
        self.name = name


class MissingParameter(ProvisionerError):
    """URL template placeholder has no value."""
    kind = ErrorKind.MISSING_PARAMETER

    def __init__(self, identifier: str):
        super().__init__(f"Missing parameter {identifier}")
        self.identifier = identifier


class InvalidRate(ProvisionerError):
    """Refresh rate is neither disabled nor a number >= 1000 ms."""
    kind = ErrorKind.INVALID_RATE


class BootstrapError(ProvisionerError):
    """URL directory could not be fetched."""
    kind = ErrorKind.BOOTSTRAP_FAILED

    def __init__(self, message: str = "Failed to initialize Provisioner."):
        super().__init__(message)


# =============================================================================
# Action Rejections (absorbed into the alert log)
# =============================================================================

class ActionRejected(ProvisionerError):
    """A device action failed validation before any request was made."""
    pass


class DeviceNotFound(ActionRejected):
    kind = ErrorKind.DEVICE_NOT_FOUND

    def __init__(self, mac: str):
        super().__init__(f"Device {mac} not found.")
        self.mac = mac


class UnknownAction(ActionRejected):
    kind = ErrorKind.UNKNOWN_ACTION

    def __init__(self, action: str):
        super().__init__(f"Unknown action: {action}.")
        self.action = action


class MissingRoute(ActionRejected):
    kind = ErrorKind.MISSING_ROUTE

    def __init__(self, action: str):
        super().__init__(f"Don't know how to perform {action} action: Missing route.")
        self.action = action


class PreconditionFailed(ActionRejected):
    """Device lacks what the action needs (config file, firmware image)."""
    kind = ErrorKind.PRECONDITION_FAILED


# =============================================================================
# Transport Failures (absorbed into the alert log)
# =============================================================================

class TransportFailure(ProvisionerError):
    """Base class for HTTP collaborator failures."""
    pass


class TransportUnreachable(TransportFailure):
    """The request never got a response (refused, DNS, timeout)."""
    kind = ErrorKind.TRANSPORT_UNREACHABLE

    def __init__(self, error: str = "", status: str = "error"):
        super().__init__("Could not connect to server.")
        self.error = error
        self.status = status


class TransportError(TransportFailure):
    """
    The server answered, but not with something usable.

    Attributes:
        status: Textual status, "error" for HTTP errors or "parsererror"
        error: Reason phrase or parser error text
        body: Decoded JSON error body, if the server sent one
        http_status: HTTP status code, when the server sent an error status
    """
    kind = ErrorKind.TRANSPORT_ERROR

    def __init__(
        self,
        status: str,
        error: str = "",
        body: Optional[Any] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(f"{status}: {error}")
        self.status = status
        self.error = error
        self.body = body
        self.http_status = http_status


class ActionFailed(ProvisionerError):
    """An action request failed on the server or in transit."""
    kind = ErrorKind.ACTION_FAILED

    def __init__(self, message: str, severity: str = "danger"):
        super().__init__(message)
        self.severity = severity

"""
Provisioner controller.

Polls the device-inventory API, caches the device list, dispatches device
actions (reboot, provision, upgrade) and keeps a short log of user-facing
alerts. A presentation layer reads the public state and subscribes to
change notifications; it never mutates the controller directly.

All I/O is fire-and-forget from the caller's point of view: refresh() and
perform_action() schedule a task on the running event loop and return.
Failures end up in the alert log, never as exceptions.

Usage:
    from provisioner.controller import Provisioner

    prov = Provisioner(directory, client)          # polls once immediately
    prov.set_refresh_rate(5000)                    # then every 5s
    prov.subscribe(lambda field, p: render(p))
    prov.perform_action("reboot", "00:11:22:33:44:55")
"""

import asyncio
import logging
import math
import numbers
from types import MappingProxyType
from typing import Any, Coroutine, Dict, Mapping, Optional, Set, Union

from pydantic import ValidationError

from provisioner.alerts import Alert, AlertLog, Severity
from provisioner.errors import (
    ActionFailed,
    ActionRejected,
    DeviceNotFound,
    InvalidRate,
    MissingParameter,
    MissingRoute,
    PreconditionFailed,
    TransportError,
    TransportFailure,
    UnknownAction,
    UnknownEndpoint,
)
from provisioner.models import ActionResult, Device, DeviceList
from provisioner.refresh import RefreshTimer
from provisioner.settings import MIN_REFRESH_RATE
from provisioner.state import Observable
from provisioner.transport import ApiClient
from provisioner.urls import UrlDirectory

logger = logging.getLogger(__name__)

ACTIONS = ("reboot", "provision", "upgrade")
REFRESH_DISABLED = None


class Provisioner(Observable):
    """
    Controller for the device list and device actions.

    Must be constructed inside a running event loop: construction
    schedules the first device poll.

    Args:
        url_directory: Endpoint name -> URL template (must contain "devices")
        client: Transport used for every request
        refresh_rate: Initial polling interval in ms, or None for off
        scheduler: Optional APScheduler instance for the refresh job

    Raises:
        UnknownEndpoint: the directory has no "devices" endpoint
        InvalidRate: refresh_rate is not None and not a number >= 1000
    """

    def __init__(
        self,
        url_directory: Union[UrlDirectory, Mapping[str, str]],
        client: ApiClient,
        refresh_rate: Optional[float] = REFRESH_DISABLED,
        scheduler=None,
    ):
        super().__init__()
        if not isinstance(url_directory, UrlDirectory):
            url_directory = UrlDirectory(url_directory)
        self.urls = url_directory
        self.client = client

        self._devices: Dict[str, Device] = {}
        self._alerts = AlertLog()
        self._refresh_rate: Optional[float] = REFRESH_DISABLED
        self._timer = RefreshTimer(self._on_refresh_tick, scheduler=scheduler)
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

        self.urls.resolve("devices")
        self.set_refresh_rate(refresh_rate)
        self.refresh()

    # =========================================================================
    # Public State
    # =========================================================================

    @property
    def devices(self) -> Mapping[str, Device]:
        """Read-only view of the device collection, in ascending MAC order."""
        return MappingProxyType(self._devices)

    @property
    def num_devices(self) -> int:
        return len(self._devices)

    @property
    def alerts(self) -> tuple:
        """Most recent alerts, newest first."""
        return self._alerts.snapshot()

    @property
    def refresh_rate(self) -> Optional[float]:
        return self._refresh_rate

    @refresh_rate.setter
    def refresh_rate(self, value: Optional[float]) -> None:
        self.set_refresh_rate(value)

    @property
    def refreshing(self) -> bool:
        """True while a refresh job is scheduled."""
        return self._timer.active

    def refresh_human(self) -> str:
        """Refresh rate for display: "off", "5 sec", "2 min"."""
        if self._refresh_rate is REFRESH_DISABLED:
            return "off"
        seconds = float(self._refresh_rate) / 1000
        if seconds < 60:
            text = repr(seconds)
            if text.endswith(".0"):
                text = text[:-2]
            return f"{text} sec"
        return f"{math.floor(seconds / 60 + 0.5)} min"

    # =========================================================================
    # Polling Lifecycle
    # =========================================================================

    def set_refresh_rate(self, value: Optional[float]) -> None:
        """
        Turn periodic polling off (None) or on (interval in ms, >= 1000).

        Raises:
            InvalidRate: value is not None and not a finite number >= 1000.
                The current schedule is left untouched.
        """
        if value is REFRESH_DISABLED:
            self._timer.cancel()
            self._refresh_rate = REFRESH_DISABLED
            self._notify("refresh_rate")
            return

        if (
            isinstance(value, bool)
            or not isinstance(value, numbers.Real)
            or not math.isfinite(value)
            or value <= 0
        ):
            raise InvalidRate("refresh rate must be None or a positive number")
        if value < MIN_REFRESH_RATE:
            raise InvalidRate(f"refresh rate must be at least {MIN_REFRESH_RATE}ms")

        self._timer.schedule(value)
        self._refresh_rate = value
        self._notify("refresh_rate")

    async def _on_refresh_tick(self) -> None:
        self.refresh()

    # =========================================================================
    # Device Poll
    # =========================================================================

    def refresh(self) -> asyncio.Task:
        """Start a device poll in the background and return its task."""
        return self._spawn(self.poll_devices(), name="poll-devices")

    async def poll_devices(self) -> bool:
        """
        Fetch the device list and replace the collection with it.

        Overlapping polls are allowed; whichever response arrives last
        wins.

        Returns:
            True if the collection was replaced, False if the poll failed
        """
        url = self.urls.resolve("devices")
        try:
            data = await self.client.get_json(url)
            try:
                devices = DeviceList.validate_python(data)
            except ValidationError as e:
                raise TransportError(
                    "parsererror", f"invalid device list ({e.error_count()} errors)"
                ) from e
        except TransportFailure as e:
            logger.debug(f"Device poll failed: {e!r}")
            self.log_alert(Severity.DANGER, e.message)
            return False

        devices.sort(key=lambda d: d.mac_address)
        self._devices = {d.mac_address: d for d in devices}
        logger.debug(f"Device poll returned {len(devices)} devices")
        self._notify("devices")
        return True

    # =========================================================================
    # Device Actions
    # =========================================================================

    def perform_action(self, action: str, mac: str) -> Optional[asyncio.Task]:
        """
        Validate and dispatch a device action.

        A rejected action logs a danger alert and returns None without any
        request. Otherwise the POST runs in the background and its task is
        returned.
        """
        try:
            url = self._validate_action(action, mac)
        except ActionRejected as e:
            self.log_alert(e.severity, e.message)
            return None
        return self._spawn(self.execute_action(action, mac, url), name=f"{action}-{mac}")

    def _validate_action(self, action: str, mac: str) -> str:
        device = self._devices.get(mac)
        if device is None:
            raise DeviceNotFound(mac)
        if action not in ACTIONS:
            raise UnknownAction(action)
        try:
            url = self.urls.resolve(f"{action}_device", {"mac": mac})
        except (UnknownEndpoint, MissingParameter) as e:
            raise MissingRoute(action) from e
        if action == "provision" and not device.has_config:
            raise PreconditionFailed(f"No configuration found for device {mac}.")
        if action == "upgrade" and not device.can_upgrade:
            raise PreconditionFailed(f"No firmware upgrade found for device {mac}.")
        return url

    async def execute_action(self, action: str, mac: str, url: str) -> Alert:
        """POST an already-validated action and log the outcome."""
        logger.info(f"Executing {action} for device {mac}")
        try:
            data = await self.client.post(url)
            try:
                result = ActionResult.model_validate(data)
            except ValidationError as e:
                raise TransportError("parsererror", str(e)) from e
        except TransportFailure as e:
            failure = self._action_failure(action, mac, e)
            return self.log_alert(failure.severity, failure.message)
        return self.log_alert(result.type, result.message)

    @staticmethod
    def _action_failure(action: str, mac: str, err: TransportFailure) -> ActionFailed:
        body = getattr(err, "body", None)
        if isinstance(body, dict) and "type" in body and "message" in body:
            return ActionFailed(str(body["message"]), severity=str(body["type"]))
        detail = getattr(err, "status", None) or getattr(err, "error", "")
        return ActionFailed(f"Executing {action} for device {mac} failed ({detail})")

    # =========================================================================
    # Alerts
    # =========================================================================

    def log_alert(self, severity: str, message: str) -> Alert:
        """Add a user-facing alert and notify subscribers."""
        alert = self._alerts.log(severity, message)
        level = logging.WARNING if severity == Severity.DANGER else logging.INFO
        logger.log(level, f"[{severity}] {message}")
        self._notify("alerts")
        return alert

    # =========================================================================
    # Task Bookkeeping
    # =========================================================================

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str = None) -> asyncio.Task:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise
        task = loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} failed", exc_info=exc)

    async def wait_idle(self) -> None:
        """Wait until no poll or action is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Stop polling and cancel outstanding requests. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._timer.shutdown()
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

"""Tests for device action validation and dispatch."""

import asyncio

import pytest

from provisioner.controller import Provisioner
from provisioner.errors import TransportError, TransportUnreachable


def messages(prov):
    return [(a.severity, a.message) for a in prov.alerts]


class TestValidation:
    """Rejected actions log one danger alert and make no request."""

    @pytest.mark.asyncio
    async def test_unknown_device(self, loaded, api):
        result = loaded.perform_action("reboot", "unknown-mac")

        assert result is None
        assert messages(loaded) == [("danger", "Device unknown-mac not found.")]
        api.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_action(self, loaded, api):
        loaded.perform_action("explode", "EE:FF")

        assert messages(loaded) == [("danger", "Unknown action: explode.")]
        api.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_device_checked_before_action(self, loaded):
        loaded.perform_action("explode", "00:00")
        assert messages(loaded) == [("danger", "Device 00:00 not found.")]

    @pytest.mark.asyncio
    async def test_missing_route(self, api, directory, device_payload):
        del directory["upgrade_device"]
        api.get_json.return_value = [device_payload("EE:FF")]
        prov = Provisioner(directory, api)
        await prov.wait_idle()

        prov.perform_action("upgrade", "EE:FF")

        assert messages(prov) == [
            ("danger", "Don't know how to perform upgrade action: Missing route."),
        ]
        api.post.assert_not_called()
        await prov.close()

    @pytest.mark.asyncio
    async def test_route_without_mac_placeholder_param(self, api, directory, device_payload):
        directory["reboot_device"] = "/api/devices/{id}/reboot"
        api.get_json.return_value = [device_payload("EE:FF")]
        prov = Provisioner(directory, api)
        await prov.wait_idle()

        prov.perform_action("reboot", "EE:FF")

        assert messages(prov) == [
            ("danger", "Don't know how to perform reboot action: Missing route."),
        ]
        await prov.close()

    @pytest.mark.asyncio
    async def test_provision_without_config(self, loaded, api):
        loaded.perform_action("provision", "AA:BB")

        assert messages(loaded) == [("danger", "No configuration found for device AA:BB.")]
        api.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_upgrade_without_firmware(self, loaded, api):
        loaded.perform_action("upgrade", "CC:DD")

        assert messages(loaded) == [("danger", "No firmware upgrade found for device CC:DD.")]
        api.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_reboot_has_no_precondition(self, loaded, api):
        task = loaded.perform_action("reboot", "AA:BB")
        await task
        api.post.assert_awaited_once_with("/api/devices/AA:BB/reboot")


class TestDispatch:
    """Validated actions POST to the resolved URL and log the outcome."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", ["reboot", "provision", "upgrade"])
    async def test_posts_to_action_url(self, loaded, api, action):
        task = loaded.perform_action(action, "EE:FF")

        assert isinstance(task, asyncio.Task)
        await task
        api.post.assert_awaited_once_with(f"/api/devices/EE:FF/{action}")

    @pytest.mark.asyncio
    async def test_server_message_logged_verbatim(self, loaded, api):
        api.post.return_value = {"type": "success", "message": "Rebooting device EE:FF."}

        alert = await loaded.perform_action("reboot", "EE:FF")

        assert alert.severity == "success"
        assert messages(loaded) == [("success", "Rebooting device EE:FF.")]

    @pytest.mark.asyncio
    async def test_server_controls_severity(self, loaded, api):
        api.post.return_value = {"type": "warning", "message": "Already up to date."}
        await loaded.perform_action("upgrade", "EE:FF")
        assert messages(loaded) == [("warning", "Already up to date.")]

    @pytest.mark.asyncio
    async def test_error_body_with_type_and_message(self, loaded, api):
        api.post.side_effect = TransportError(
            "error", "Unprocessable Entity", http_status=422,
            body={"type": "danger", "message": "Device is busy (upgrading)"},
        )
        await loaded.perform_action("provision", "EE:FF")
        assert messages(loaded) == [("danger", "Device is busy (upgrading)")]

    @pytest.mark.asyncio
    async def test_error_body_incomplete(self, loaded, api):
        api.post.side_effect = TransportError(
            "error", "Internal Server Error", body={"message": "boom"}, http_status=500,
        )
        await loaded.perform_action("reboot", "EE:FF")
        assert messages(loaded) == [
            ("danger", "Executing reboot for device EE:FF failed (error)"),
        ]

    @pytest.mark.asyncio
    async def test_error_body_with_empty_message(self, loaded, api):
        api.post.side_effect = TransportError(
            "error", "Conflict", body={"type": "warning", "message": ""}, http_status=409,
        )
        await loaded.perform_action("reboot", "EE:FF")
        assert messages(loaded) == [("warning", "")]

    @pytest.mark.asyncio
    async def test_error_without_body(self, loaded, api):
        api.post.side_effect = TransportError("error", "Not Found", http_status=404)
        await loaded.perform_action("upgrade", "EE:FF")
        assert messages(loaded) == [
            ("danger", "Executing upgrade for device EE:FF failed (error)"),
        ]

    @pytest.mark.asyncio
    async def test_unreachable(self, loaded, api):
        api.post.side_effect = TransportUnreachable("Connection refused")
        await loaded.perform_action("reboot", "EE:FF")
        assert messages(loaded) == [
            ("danger", "Executing reboot for device EE:FF failed (error)"),
        ]

    @pytest.mark.asyncio
    async def test_timeout(self, loaded, api):
        api.post.side_effect = TransportUnreachable("request timed out", status="timeout")
        await loaded.perform_action("reboot", "EE:FF")
        assert messages(loaded) == [
            ("danger", "Executing reboot for device EE:FF failed (timeout)"),
        ]

    @pytest.mark.asyncio
    async def test_malformed_success_body(self, loaded, api):
        api.post.return_value = {"status": "ok"}
        await loaded.perform_action("reboot", "EE:FF")
        assert messages(loaded) == [
            ("danger", "Executing reboot for device EE:FF failed (parsererror)"),
        ]

    @pytest.mark.asyncio
    async def test_concurrent_actions_on_same_device(self, loaded, api):
        api.post.side_effect = [
            {"type": "success", "message": "first"},
            {"type": "success", "message": "second"},
        ]

        t1 = loaded.perform_action("reboot", "EE:FF")
        t2 = loaded.perform_action("upgrade", "EE:FF")
        await asyncio.gather(t1, t2)

        assert api.post.await_count == 2
        assert len(loaded.alerts) == 2

    @pytest.mark.asyncio
    async def test_usable_after_failure(self, loaded, api):
        api.post.side_effect = TransportError("error", "Internal Server Error", http_status=500)
        await loaded.perform_action("reboot", "EE:FF")

        api.post.side_effect = None
        api.post.return_value = {"type": "success", "message": "ok"}
        await loaded.perform_action("reboot", "EE:FF")

        assert messages(loaded)[0] == ("success", "ok")

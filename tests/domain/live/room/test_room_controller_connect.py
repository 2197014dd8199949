"""Tests for RoomController connect actions (start_as_host, join_as_viewer)."""

import pytest

from live_room.domain.live.room import RoomController
from live_room.schemas import RoomStep
from live_room.services.integrations.devices import DeviceKind
from live_room.utils.app_errors import AppError, AppErrorCode, RemoteSessionError
from tests.fixtures.room_fixtures import RTC_TOKEN, WS_URL, settle


class TestGoLive:
    async def test_go_live_starts_preview(self, controller: RoomController, devices):
        await controller.go_live()

        assert controller.step == RoomStep.STREAMER_PREPARE
        assert devices.preview_calls == ["start"]
        assert devices.preview_active is True

    async def test_preview_failure_does_not_block_step(self, controller: RoomController, devices):
        devices.fail_preview = True

        await controller.go_live()

        assert controller.step == RoomStep.STREAMER_PREPARE

    async def test_back_to_welcome_stops_preview(self, controller: RoomController, devices):
        await controller.go_live()
        await controller.back_to_welcome()

        assert controller.step == RoomStep.WELCOME
        assert devices.preview_calls == ["start", "stop"]

    async def test_invalid_transition_raises(self, controller: RoomController):
        with pytest.raises(AppError) as exc_info:
            await controller.set_step(RoomStep.STREAM)

        assert exc_info.value.errcode == AppErrorCode.E_INVALID_STEP_TRANSITION.value
        assert controller.step == RoomStep.WELCOME


class TestStartAsHost:
    async def test_success_creates_connects_publishes(self, controller: RoomController, api, transport):
        controller.set_identity("  ana ")
        controller.set_enable_chat(False)
        await controller.go_live()

        await controller.start_as_host()

        request = api.create_stream.await_args.args[0]
        assert request.metadata.creator_identity == "ana"
        assert request.metadata.enable_chat is False
        assert request.metadata.allow_participation is True
        assert transport.connect_calls == [(WS_URL, RTC_TOKEN)]
        assert len(transport.published_tracks) == 1
        assert transport.microphone_calls == [True]
        assert controller.camera_publication == transport.published_tracks[0]
        assert controller.step == RoomStep.STREAM
        assert controller.snapshot.connect_busy is False
        assert controller.snapshot.last_error is None

    async def test_success_from_welcome_passes_through_prepare(self, controller: RoomController):
        steps: list[RoomStep] = []
        controller.subscribe(lambda snap: steps.append(snap.step))
        controller.set_identity("ana")

        await controller.start_as_host()

        assert controller.step == RoomStep.STREAM
        assert RoomStep.STREAMER_PREPARE in steps

    async def test_participation_toggle_is_sent_in_metadata(self, controller: RoomController, api):
        controller.set_identity("ana")
        controller.set_room_name("my-room")
        controller.set_viewers_can_request_to_join(False)

        await controller.start_as_host()

        request = api.create_stream.await_args.args[0]
        assert request.room_name == "my-room"
        assert request.metadata.allow_participation is False

    async def test_busy_flag_set_while_in_flight(self, controller: RoomController, api):
        seen: list[bool] = []

        async def create_stream(request):
            seen.append(controller.snapshot.connect_busy)
            return api.create_stream.return_value

        api.create_stream.side_effect = create_stream
        controller.set_identity("ana")

        await controller.start_as_host()

        assert seen == [True]
        assert controller.snapshot.connect_busy is False

    async def test_permission_denied_before_any_remote_call(
        self, controller: RoomController, api, devices
    ):
        devices._granted = {DeviceKind.AUDIO}
        controller.set_identity("ana")
        await controller.go_live()

        await controller.start_as_host()

        api.create_stream.assert_not_awaited()
        assert controller.last_error is not None
        assert controller.last_error.errcode == AppErrorCode.E_PERMISSION_DENIED.value
        assert controller.step == RoomStep.STREAMER_PREPARE
        assert controller.snapshot.connect_busy is False

    async def test_empty_identity_rejected_locally(self, controller: RoomController, api):
        controller.set_identity("   ")

        await controller.start_as_host()

        api.create_stream.assert_not_awaited()
        assert controller.snapshot.last_error == AppErrorCode.E_INVALID_REQUEST.value

    async def test_api_failure_skips_connect_and_stops_preview(
        self, controller: RoomController, api, transport, devices
    ):
        api.create_stream.side_effect = RemoteSessionError(errmesg="boom")
        controller.set_identity("ana")
        await controller.go_live()

        await controller.start_as_host()

        assert transport.connect_calls == []
        assert controller.step == RoomStep.WELCOME
        assert devices.preview_calls[-1] == "stop"
        assert controller.snapshot.connect_busy is False
        assert controller.snapshot.last_error == AppErrorCode.E_REMOTE_SESSION.value

    async def test_connect_failure_returns_to_welcome(
        self, controller: RoomController, api, transport, devices
    ):
        transport.connect_error = RuntimeError("ice failed")
        controller.set_identity("ana")
        await controller.go_live()

        await controller.start_as_host()

        assert controller.step == RoomStep.WELCOME
        assert controller.snapshot.connect_busy is False
        assert devices.preview_active is False
        assert devices.preview_calls[-1] == "stop"
        assert controller.snapshot.last_error == AppErrorCode.E_TRANSPORT_CONNECT.value
        # The remote stream stays allocated
        api.stop_stream.assert_not_awaited()
        assert transport.published_tracks == []

    async def test_cleanup_disconnect_failure_is_swallowed(self, controller: RoomController, transport):
        transport.connect_error = RuntimeError("ice failed")
        transport.disconnect_error = RuntimeError("already closed")
        controller.set_identity("ana")

        await controller.start_as_host()

        assert controller.snapshot.last_error == AppErrorCode.E_TRANSPORT_CONNECT.value
        assert controller.snapshot.connect_busy is False

    async def test_publish_failure_disconnects_and_does_not_stream(
        self, controller: RoomController, transport
    ):
        transport.publish_track_error = RuntimeError("no encoder")
        controller.set_identity("ana")
        await controller.go_live()

        await controller.start_as_host()
        await settle(controller)

        assert transport.disconnect_calls == 1
        assert controller.step == RoomStep.WELCOME
        assert controller.camera_publication is None
        assert controller.snapshot.last_error == AppErrorCode.E_PUBLISH.value

    async def test_rejected_while_streaming(self, controller: RoomController, api):
        controller.set_identity("ana")
        await controller.start_as_host()
        api.create_stream.reset_mock()

        await controller.start_as_host()

        api.create_stream.assert_not_awaited()
        assert controller.step == RoomStep.STREAM
        assert controller.snapshot.last_error == AppErrorCode.E_INVALID_REQUEST.value


class TestJoinAsViewer:
    async def test_success_connects_without_publishing(self, controller: RoomController, api, transport):
        controller.set_identity("bo")
        controller.set_room_name(" room-1 ")
        await controller.prepare_to_join()

        await controller.join_as_viewer()

        request = api.join_stream.await_args.args[0]
        assert request.room_name == "room-1"
        assert request.identity == "bo"
        assert transport.connect_calls == [(WS_URL, RTC_TOKEN)]
        assert transport.published_tracks == []
        assert transport.microphone_calls == []
        assert controller.step == RoomStep.STREAM
        assert controller.snapshot.connect_busy is False

    async def test_empty_room_name_rejected_before_remote_call(
        self, controller: RoomController, api, transport
    ):
        controller.set_identity("bo")
        controller.set_room_name("")

        await controller.join_as_viewer()

        api.join_stream.assert_not_awaited()
        assert transport.connect_calls == []
        assert controller.step == RoomStep.WELCOME
        assert controller.snapshot.connect_busy is False
        assert controller.snapshot.last_error == AppErrorCode.E_INVALID_REQUEST.value

    async def test_empty_identity_rejected_before_remote_call(self, controller: RoomController, api):
        controller.set_identity(" ")
        controller.set_room_name("room-1")

        await controller.join_as_viewer()

        api.join_stream.assert_not_awaited()

    async def test_api_failure_never_streams(self, controller: RoomController, api, transport):
        api.join_stream.side_effect = RemoteSessionError(errmesg="room not found")
        controller.set_identity("bo")
        controller.set_room_name("room-1")

        await controller.join_as_viewer()

        assert transport.connect_calls == []
        assert controller.step == RoomStep.WELCOME
        assert controller.snapshot.connect_busy is False

    async def test_connect_failure_never_streams(self, controller: RoomController, transport):
        transport.connect_error = RuntimeError("timeout")
        controller.set_identity("bo")
        controller.set_room_name("room-1")
        await controller.prepare_to_join()

        await controller.join_as_viewer()

        assert controller.step == RoomStep.WELCOME
        assert controller.snapshot.connect_busy is False

    async def test_new_action_clears_previous_error(self, controller: RoomController, api):
        api.join_stream.side_effect = [RemoteSessionError(errmesg="nope"), api.join_stream.return_value]
        controller.set_identity("bo")
        controller.set_room_name("room-1")

        await controller.join_as_viewer()
        assert controller.snapshot.last_error is not None

        await controller.join_as_viewer()
        assert controller.snapshot.last_error is None
        assert controller.last_error is None
        assert controller.step == RoomStep.STREAM


class TestComputed:
    def test_can_go_live_requires_identity(self, api, transport, devices, codec):
        room = RoomController(api=api, transport=transport, devices=devices, codec=codec)
        assert room.can_go_live is False
        room.set_identity("ana")
        assert room.can_go_live is True

    def test_can_join_live_requires_identity_and_room(self, api, transport, devices, codec):
        room = RoomController(api=api, transport=transport, devices=devices, codec=codec)
        room.set_identity("ana")
        assert room.can_join_live is False
        room.set_room_name("room-1")
        assert room.can_join_live is True

    def test_is_stream_owner_uses_room_metadata(self, api, transport, devices, codec):
        room = RoomController(api=api, transport=transport, devices=devices, codec=codec)
        assert room.is_stream_owner is False

        transport.set_owner("someone-else")
        assert room.is_stream_owner is False

        transport.set_owner("ana")
        assert room.is_stream_owner is True
        assert room.room_metadata.creator_identity == "ana"

    def test_unreadable_metadata_is_not_owner(self, api, transport, devices, codec):
        transport._metadata = "{not json"
        room = RoomController(api=api, transport=transport, devices=devices, codec=codec)

        assert room.room_metadata is None
        assert room.is_stream_owner is False

    def test_is_stream_host_follows_publish_permission(self, api, transport, devices, codec):
        room = RoomController(api=api, transport=transport, devices=devices, codec=codec)
        assert room.is_stream_host is True
        transport._can_publish = False
        assert room.is_stream_host is False

"""Tests for the headless player controller."""

import httpx
import pytest

from navisight.core.player import (
    ENGINE_ERROR,
    HLS_LOAD_FAILED_MESSAGE,
    HLS_PLAY_FAILED_MESSAGE,
    MANIFEST_PARSED,
    PREVIEW_FAILED_MESSAGE,
    UNSUPPORTED_MESSAGE,
    ElementKind,
    EngineError,
    PlaybackFailed,
    PlayerController,
    PlayerSession,
)
from navisight.core.stream_types import StreamType

HLS_CAMERA = {"id": "cam-1", "streamUrl": "https://cam.local/live/index.m3u8", "status": "ONLINE"}
MJPEG_CAMERA = {"id": "cam-2", "streamUrl": "http://cam.local/axis-cgi/mjpg/video.cgi", "status": "ONLINE"}
FRAME_CAMERA = {"id": "cam-3", "streamUrl": "https://viewer.example.com/embed/bridge", "status": "ONLINE"}


class FakeElement:
    def __init__(self, native_hls=False, play_error=None):
        self.src = None
        self.native_hls = native_hls
        self.play_error = play_error
        self.play_calls = 0
        self.cleared = 0

    def can_play_type(self, mime_type):
        return "probably" if self.native_hls else ""

    def play(self):
        self.play_calls += 1
        if self.play_error:
            raise PlaybackFailed(self.play_error)

    def clear_source(self):
        self.cleared += 1
        self.src = None


class FakeEngine:
    def __init__(self):
        self.handlers = {}
        self.attached = None
        self.loaded = []
        self.start_load_calls = 0
        self.recover_calls = 0
        self.destroyed = False

    def on(self, event, callback):
        self.handlers[event] = callback

    def emit(self, event, *args):
        self.handlers[event](*args)

    def attach_media(self, element):
        self.attached = element

    def load_source(self, url):
        self.loaded.append(url)

    def start_load(self):
        self.start_load_calls += 1

    def recover_media_error(self):
        self.recover_calls += 1

    def destroy(self):
        self.destroyed = True


class FakeFactory:
    def __init__(self, supported=True):
        self.supported = supported
        self.engines = []

    def is_supported(self):
        return self.supported

    def create(self):
        engine = FakeEngine()
        self.engines.append(engine)
        return engine


def _controller(camera, **kwargs):
    kwargs.setdefault("clock", lambda: 1700000000.0)
    return PlayerController(camera, kwargs.pop("element", FakeElement()), **kwargs)


@pytest.mark.unit
class TestHlsPlayback:
    def test_engine_plays_through_proxy(self):
        element = FakeElement()
        factory = FakeFactory()
        controller = _controller(HLS_CAMERA, element=element, engine_factory=factory)

        state = controller.mount()
        engine = factory.engines[0]

        assert state.stream_type == StreamType.HLS
        assert state.element == ElementKind.VIDEO
        assert engine.attached is element
        assert engine.loaded == ["/api/cctv/cam-1/stream"]
        assert state.loading

        engine.emit(MANIFEST_PARSED)
        assert element.play_calls == 1
        assert not controller.state.loading

    def test_play_rejection_sets_error(self):
        element = FakeElement(play_error="autoplay blocked")
        factory = FakeFactory()
        controller = _controller(HLS_CAMERA, element=element, engine_factory=factory)

        controller.mount()
        factory.engines[0].emit(MANIFEST_PARSED)

        assert controller.state.error == HLS_PLAY_FAILED_MESSAGE

    def test_native_playback_without_engine(self):
        element = FakeElement(native_hls=True)
        controller = _controller(HLS_CAMERA, element=element, engine_factory=FakeFactory(supported=False))

        state = controller.mount()

        assert element.src == "/api/cctv/cam-1/stream"
        assert element.play_calls == 1
        assert state.error is None

    def test_unsupported_platform(self):
        controller = _controller(HLS_CAMERA)

        state = controller.mount()

        assert state.error == UNSUPPORTED_MESSAGE
        assert state.needs_manual_reload
        assert not state.loading

    def test_fatal_network_error_restarts_loading(self):
        factory = FakeFactory()
        controller = _controller(HLS_CAMERA, engine_factory=factory)
        controller.mount()
        engine = factory.engines[0]

        engine.emit(ENGINE_ERROR, EngineError(type="networkError", fatal=True))

        assert engine.start_load_calls == 1
        assert controller.state.error == HLS_LOAD_FAILED_MESSAGE
        assert not engine.destroyed

    def test_fatal_media_error_recovers(self):
        factory = FakeFactory()
        controller = _controller(HLS_CAMERA, engine_factory=factory)
        controller.mount()
        engine = factory.engines[0]

        engine.emit(ENGINE_ERROR, EngineError(type="mediaError", fatal=True))

        assert engine.recover_calls == 1

    def test_other_fatal_error_requires_manual_reload(self):
        element = FakeElement()
        factory = FakeFactory()
        controller = _controller(HLS_CAMERA, element=element, engine_factory=factory)
        controller.mount()
        engine = factory.engines[0]

        engine.emit(ENGINE_ERROR, EngineError(type="otherError", fatal=True, details="bufferAppendError"))

        assert engine.destroyed
        assert element.cleared == 1
        assert controller.session is None
        assert controller.state.needs_manual_reload

    def test_non_fatal_error_is_ignored(self):
        factory = FakeFactory()
        controller = _controller(HLS_CAMERA, engine_factory=factory)
        controller.mount()
        engine = factory.engines[0]

        engine.emit(ENGINE_ERROR, EngineError(type="networkError", fatal=False))

        assert engine.start_load_calls == 0
        assert controller.state.error is None

    def test_refresh_rebuilds_session_with_cache_buster(self):
        factory = FakeFactory()
        controller = _controller(HLS_CAMERA, engine_factory=factory)
        controller.mount()
        first = factory.engines[0]

        controller.refresh()

        assert first.destroyed
        assert len(factory.engines) == 2
        assert factory.engines[1].loaded == ["/api/cctv/cam-1/stream?t=1700000000000"]
        assert controller.reload_count == 1

    def test_events_from_disposed_session_are_ignored(self):
        element = FakeElement()
        factory = FakeFactory()
        controller = _controller(HLS_CAMERA, element=element, engine_factory=factory)
        controller.mount()
        stale = factory.engines[0]

        controller.refresh()
        stale.emit(MANIFEST_PARSED)
        stale.emit(ENGINE_ERROR, EngineError(type="otherError", fatal=True))

        assert element.play_calls == 0
        assert controller.session is not None
        assert not controller.state.needs_manual_reload

    def test_unmount_destroys_engine(self):
        factory = FakeFactory()
        controller = _controller(HLS_CAMERA, engine_factory=factory)
        controller.mount()

        controller.unmount()

        assert factory.engines[0].destroyed
        assert controller.session is None


@pytest.mark.unit
class TestOtherSources:
    def test_mjpeg_uses_raw_url(self):
        state = _controller(MJPEG_CAMERA).mount()

        assert state.element == ElementKind.IMAGE
        assert state.src == MJPEG_CAMERA["streamUrl"]

    def test_compact_mjpeg_uses_snapshot(self):
        controller = _controller(MJPEG_CAMERA, compact=True, snapshot_url="http://cam.local/snapshot.jpg")

        state = controller.mount()

        assert state.src == "http://cam.local/snapshot.jpg?t=1700000000000"

    def test_mjpeg_refresh_adds_cache_buster(self):
        controller = _controller(MJPEG_CAMERA)
        controller.mount()
        controller.on_media_error()

        state = controller.refresh()

        assert state.src == MJPEG_CAMERA["streamUrl"] + "?t=1700000000000"
        assert state.error is None
        assert state.loading

    def test_mjpeg_error_mentions_mixed_content(self):
        controller = _controller(MJPEG_CAMERA, page_scheme="https")
        controller.mount()

        controller.on_media_error()

        assert controller.state.error.startswith("Failed to load MJPEG stream.")
        assert "mixed content" in controller.state.error

    def test_compact_preview_error(self):
        controller = _controller(MJPEG_CAMERA, compact=True)
        controller.mount()

        controller.on_media_error()

        assert controller.state.error == PREVIEW_FAILED_MESSAGE

    def test_iframe_and_pop_out(self):
        opened = []
        controller = _controller(FRAME_CAMERA, opener=opened.append)

        state = controller.mount()

        assert state.element == ElementKind.FRAME
        assert state.src == FRAME_CAMERA["streamUrl"]
        assert controller.pop_out()
        assert opened == [FRAME_CAMERA["streamUrl"]]

    def test_pop_out_only_for_iframes(self):
        opened = []
        controller = _controller(MJPEG_CAMERA, opener=opened.append)
        controller.mount()

        assert not controller.pop_out()
        assert opened == []

    def test_on_loaded_clears_spinner(self):
        controller = _controller(FRAME_CAMERA)
        controller.mount()

        controller.on_loaded()

        assert not controller.state.loading
        assert controller.state.error is None


@pytest.mark.unit
class TestPlaceholders:
    def test_missing_url(self):
        state = _controller({"id": "cam-9", "streamUrl": None}).mount()

        assert state.element == ElementKind.PLACEHOLDER
        assert state.placeholder == "Stream URL not configured"

    def test_compact_offline_camera(self):
        camera = {**HLS_CAMERA, "status": "MAINTENANCE"}
        factory = FakeFactory()

        state = _controller(camera, compact=True, engine_factory=factory).mount()

        assert state.placeholder == "Camera maintenance"
        assert factory.engines == []

    def test_update_camera_remounts_only_on_change(self):
        factory = FakeFactory()
        controller = _controller(HLS_CAMERA, engine_factory=factory)
        controller.mount()

        controller.update_camera(dict(HLS_CAMERA))
        assert len(factory.engines) == 1

        controller.update_stream_url(MJPEG_CAMERA["streamUrl"])
        assert factory.engines[0].destroyed
        assert controller.state.element == ElementKind.IMAGE


@pytest.mark.unit
def test_session_dispose_is_idempotent():
    element = FakeElement()
    engine = FakeEngine()
    session = PlayerSession(element, engine)

    session.dispose()
    session.dispose()

    assert engine.destroyed
    assert element.cleared == 1


@pytest.mark.unit
class TestDiagnose:
    def _client(self, handler):
        return httpx.Client(transport=httpx.MockTransport(handler), base_url="http://testserver")

    def test_reachable(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, headers={"X-Upstream-Status": "200"})

        controller = _controller(HLS_CAMERA)

        assert controller.diagnose(self._client(handler)) == "Connection OK. Try Retry."
        assert seen[0].method == "HEAD"
        assert seen[0].url.path == "/api/cctv/cam-1/stream"

    def test_unreachable(self):
        controller = _controller(HLS_CAMERA)
        client = self._client(lambda request: httpx.Response(502, headers={"X-Upstream-Status": "504"}))

        message = controller.diagnose(client)

        assert message == "Stream unreachable. Proxy status 502 (camera status 504)"
        assert controller.state.error == message

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        controller = _controller(HLS_CAMERA)

        assert controller.diagnose(self._client(handler)) == "Network error while diagnosing stream."

"""
Client Player Controller - drive live playback of one camera

The controller is UI-agnostic. The host (browser bridge, desktop widget,
kiosk) hands it a media element and, when available, an adaptive-streaming
engine factory with an hls.js-like surface. The controller decides what to
render, owns the engine through an explicit PlayerSession and reacts to
playback events reported back by the host.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Protocol
from urllib.parse import urlsplit

import httpx

from .. import config
from .http_utils import add_cache_buster
from .stream_types import StreamType, detect_stream_type

logger = logging.getLogger(__name__)

HLS_MIME_TYPES = ("application/vnd.apple.mpegurl", "application/x-mpegurl")

MANIFEST_PARSED = "manifestParsed"
ENGINE_ERROR = "error"

UNSUPPORTED_MESSAGE = "HLS is not supported on this platform."
HLS_PLAY_FAILED_MESSAGE = "Unable to play HLS stream."
HLS_LOAD_FAILED_MESSAGE = "Failed to load HLS stream."
MJPEG_FAILED_MESSAGE = "Failed to load MJPEG stream."
FRAME_FAILED_MESSAGE = "Failed to load stream."
PREVIEW_FAILED_MESSAGE = "Preview unavailable"
MIXED_CONTENT_NOTE = (
    " Note: HTTP stream on an HTTPS page may be blocked by your browser (mixed content)."
)


class PlaybackErrorType(str, Enum):
    NETWORK = "networkError"
    MEDIA = "mediaError"
    OTHER = "otherError"


class ElementKind(str, Enum):
    PLACEHOLDER = "placeholder"
    VIDEO = "video"
    IMAGE = "img"
    FRAME = "iframe"


class PlaybackFailed(Exception):
    """Raised by MediaElement.play() when playback cannot start"""


@dataclass
class EngineError:
    type: str
    fatal: bool
    details: Optional[str] = None


class MediaElement(Protocol):
    src: Optional[str]

    def can_play_type(self, mime_type: str) -> str:
        """Return "probably", "maybe" or "" like HTMLMediaElement.canPlayType"""

    def play(self) -> None: ...

    def clear_source(self) -> None:
        """Drop the current source and reset the element"""


class AdaptiveEngine(Protocol):
    def attach_media(self, element: MediaElement) -> None: ...

    def load_source(self, url: str) -> None: ...

    def start_load(self) -> None: ...

    def recover_media_error(self) -> None: ...

    def destroy(self) -> None: ...

    def on(self, event: str, callback: Callable[..., None]) -> None: ...


class EngineFactory(Protocol):
    def is_supported(self) -> bool: ...

    def create(self) -> AdaptiveEngine: ...


def classify_engine_error(error_type: Optional[str]) -> PlaybackErrorType:
    if error_type == PlaybackErrorType.NETWORK.value:
        return PlaybackErrorType.NETWORK
    if error_type == PlaybackErrorType.MEDIA.value:
        return PlaybackErrorType.MEDIA
    return PlaybackErrorType.OTHER


@dataclass
class PlayerState:
    stream_type: StreamType = StreamType.IFRAME
    element: ElementKind = ElementKind.PLACEHOLDER
    src: Optional[str] = None
    loading: bool = True
    error: Optional[str] = None
    needs_manual_reload: bool = False
    placeholder: Optional[str] = None


class PlayerSession:
    """
    One attachment of a media element (and optionally an engine).

    dispose() must run before another session is created for the same
    element so no decoder or network activity is left behind.
    """

    def __init__(self, media_element: MediaElement, engine: Optional[AdaptiveEngine] = None):
        self.media_element = media_element
        self.engine = engine
        self.disposed = False

    def dispose(self):
        if self.disposed:
            return
        self.disposed = True
        if self.engine is not None:
            self.engine.destroy()
            self.engine = None
        self.media_element.clear_source()


class PlayerController:
    """
    Args:
        camera: camera mapping as returned by the API (id, streamUrl, status)
        media_element: element used for HLS playback
        engine_factory: adaptive-streaming engine factory, None when absent
        compact: card preview mode (placeholder for non-ONLINE cameras)
        snapshot_url: image endpoint used for MJPEG previews in compact mode
        page_scheme: scheme of the hosting page, for mixed-content hints
        opener: callback opening a URL in a new top-level window
        clock: time source for cache-busting parameters
    """

    def __init__(self, camera: Mapping[str, Any], media_element: MediaElement,
                 engine_factory: Optional[EngineFactory] = None, compact: bool = False,
                 snapshot_url: Optional[str] = None, page_scheme: Optional[str] = None,
                 opener: Optional[Callable[[str], None]] = None,
                 clock: Callable[[], float] = time.time):
        self.camera_id = str(camera["id"])
        self.stream_url = camera.get("streamUrl")
        self.status = camera.get("status") or "OFFLINE"
        self.media_element = media_element
        self.engine_factory = engine_factory
        self.compact = compact
        self.snapshot_url = snapshot_url
        self.page_scheme = page_scheme
        self.opener = opener
        self.clock = clock

        self.session: Optional[PlayerSession] = None
        self.state = PlayerState()
        self.reload_count = 0

    # Lifecycle

    @property
    def proxy_url(self) -> str:
        return config.STREAM_PROXY_PATH.format(camera_id=self.camera_id)

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _dispose_session(self):
        if self.session is not None:
            self.session.dispose()
            self.session = None

    def mount(self, cache_bust: bool = False) -> PlayerState:
        """Classify the current URL and (re)build the playback pipeline"""
        self._dispose_session()

        stream_type = detect_stream_type(self.stream_url)
        self.state = PlayerState(stream_type=stream_type)

        if not self.stream_url:
            return self._show_placeholder("Stream URL not configured")
        if self.compact and self.status != "ONLINE":
            return self._show_placeholder(f"Camera {self.status.lower()}")

        if stream_type == StreamType.HLS:
            self._mount_hls(cache_bust)
        elif stream_type == StreamType.MJPEG:
            self._mount_mjpeg()
        else:
            self.state.element = ElementKind.FRAME
            self.state.src = self.stream_url

        logger.debug(f"[Player] Camera {self.camera_id}: mounted {stream_type.value} ({self.state.src})")
        return self.state

    def unmount(self):
        self._dispose_session()

    def update_camera(self, camera: Mapping[str, Any]) -> PlayerState:
        """Remount only when the stream URL or status changed"""
        stream_url = camera.get("streamUrl")
        status = camera.get("status") or "OFFLINE"
        if stream_url == self.stream_url and status == self.status:
            return self.state

        self.stream_url = stream_url
        self.status = status
        return self.mount()

    def update_stream_url(self, stream_url: Optional[str]) -> PlayerState:
        return self.update_camera({"streamUrl": stream_url, "status": self.status})

    def _show_placeholder(self, message: str) -> PlayerState:
        self.state.element = ElementKind.PLACEHOLDER
        self.state.loading = False
        self.state.placeholder = message
        return self.state

    # HLS

    def _native_hls_support(self) -> bool:
        return any(self.media_element.can_play_type(mime) == "probably" for mime in HLS_MIME_TYPES)

    def _mount_hls(self, cache_bust: bool):
        src = add_cache_buster(self.proxy_url, self._now_ms()) if cache_bust else self.proxy_url
        self.state.element = ElementKind.VIDEO
        self.state.src = src

        if self.engine_factory is not None and self.engine_factory.is_supported():
            engine = self.engine_factory.create()
            session = PlayerSession(self.media_element, engine)
            self.session = session
            engine.on(MANIFEST_PARSED, lambda *args: self._on_manifest_parsed(session))
            engine.on(ENGINE_ERROR, lambda error, *args: self._on_engine_error(session, error))
            engine.attach_media(self.media_element)
            engine.load_source(src)
            return

        if self._native_hls_support():
            self.session = PlayerSession(self.media_element)
            self.media_element.src = src
            self._start_playback()
            return

        self.state.loading = False
        self.state.error = UNSUPPORTED_MESSAGE
        self.state.needs_manual_reload = True

    def _start_playback(self):
        try:
            self.media_element.play()
        except PlaybackFailed as e:
            logger.warning(f"[Player] Camera {self.camera_id}: play() failed: {e}")
            self.state.loading = False
            self.state.error = HLS_PLAY_FAILED_MESSAGE
            return
        self.state.loading = False
        self.state.error = None

    def _on_manifest_parsed(self, session: PlayerSession):
        if session is not self.session:
            return
        self._start_playback()

    def _on_engine_error(self, session: PlayerSession, error: EngineError):
        # Late events from an engine that was already torn down
        if session is not self.session:
            return
        self.on_engine_error(error)

    def on_engine_error(self, error: EngineError):
        """React to an error reported by the adaptive-streaming engine"""
        if not error.fatal:
            # The engine retries non-fatal errors on its own
            self.state.error = None
            return

        engine = self.session.engine if self.session else None
        error_type = classify_engine_error(error.type)
        logger.warning(f"[Player] Camera {self.camera_id}: fatal {error_type.value} ({error.details})")

        if engine is not None and error_type == PlaybackErrorType.NETWORK:
            self.state.error = HLS_LOAD_FAILED_MESSAGE
            engine.start_load()
        elif engine is not None and error_type == PlaybackErrorType.MEDIA:
            self.state.error = HLS_LOAD_FAILED_MESSAGE
            engine.recover_media_error()
        else:
            self._dispose_session()
            self.state.loading = False
            self.state.error = HLS_LOAD_FAILED_MESSAGE
            self.state.needs_manual_reload = True

    # MJPEG

    def _mount_mjpeg(self):
        self.state.element = ElementKind.IMAGE
        if self.compact:
            self.state.src = add_cache_buster(self.snapshot_url or self.stream_url, self._now_ms())
        else:
            self.state.src = self.stream_url

    def _mixed_content_blocked(self) -> bool:
        if self.page_scheme != "https" or not self.stream_url:
            return False
        return urlsplit(self.stream_url).scheme.lower() == "http"

    # Element events

    def on_loaded(self):
        """First frame decoded, image loaded or frame document loaded"""
        if self.state.needs_manual_reload:
            return
        self.state.loading = False
        self.state.error = None

    def on_media_error(self, message: Optional[str] = None):
        """The rendered element failed to load"""
        self.state.loading = False

        if message is None:
            if self.compact and self.state.stream_type != StreamType.HLS:
                message = PREVIEW_FAILED_MESSAGE
            elif self.state.stream_type == StreamType.HLS:
                message = HLS_PLAY_FAILED_MESSAGE
            elif self.state.stream_type == StreamType.MJPEG:
                message = MJPEG_FAILED_MESSAGE
                if self._mixed_content_blocked():
                    message += MIXED_CONTENT_NOTE
            else:
                message = FRAME_FAILED_MESSAGE

        self.state.error = message

    # Actions

    def refresh(self) -> PlayerState:
        """Manual retry from the error overlay or the refresh button"""
        if self.state.element == ElementKind.PLACEHOLDER:
            return self.mount()

        if self.state.stream_type == StreamType.HLS:
            self.reload_count += 1
            return self.mount(cache_bust=True)

        base_src = self.stream_url
        if self.state.stream_type == StreamType.MJPEG and self.compact and self.snapshot_url:
            base_src = self.snapshot_url

        self.state.loading = True
        self.state.error = None
        self.state.src = add_cache_buster(base_src, self._now_ms())
        return self.state

    def pop_out(self) -> bool:
        """Open an iframe source in its own window instead of going fullscreen"""
        if self.state.element != ElementKind.FRAME or not self.stream_url or self.opener is None:
            return False
        self.opener(self.stream_url)
        return True

    def diagnose(self, client: httpx.Client) -> str:
        """
        Quick connectivity check through the proxy (HEAD request).

        Args:
            client: httpx client whose base_url points at this service

        Returns:
            Message shown in the player overlay
        """
        self.state.loading = True
        try:
            response = client.head(self.proxy_url, headers={"Cache-Control": "no-store"})
        except httpx.HTTPError as e:
            logger.warning(f"[Player] Camera {self.camera_id}: diagnose failed: {e}")
            self.state.loading = False
            self.state.error = "Network error while diagnosing stream."
            return self.state.error

        self.state.loading = False
        if not response.is_success:
            upstream = response.headers.get("X-Upstream-Status")
            message = f"Stream unreachable. Proxy status {response.status_code}"
            if upstream:
                message += f" (camera status {upstream})"
            self.state.error = message
            return message

        return "Connection OK. Try Retry."

"""
Stream type detection - decide how a camera URL should be rendered
"""
import re
from enum import Enum
from typing import Optional


class StreamType(str, Enum):
    HLS = "hls"
    MJPEG = "mjpeg"
    IFRAME = "iframe"


HLS_MARKERS = (".m3u8", "/hls/", "/hls-", "m3u8")

MJPEG_MARKERS = (
    "mjpg",
    "mjpeg",
    "/mjpeg/",
    "axis-cgi/mjpg",
    "cgi-bin/faststream.jpg",
    "mjpegstream.cgi",
    "mjpg/video.cgi",
    "video.cgi",
    "action=stream",
)

# Our own proxy endpoint, so an already-proxied URL stays HLS
PROXY_PATH_PATTERN = re.compile(r"/api/cctv/[^/?#]+/stream")


def detect_stream_type(url: Optional[str]) -> StreamType:
    """
    Classify a camera URL by vendor URL patterns.

    HLS is checked before MJPEG, so a URL carrying both markers is HLS.
    Anything unrecognised (vendor web viewers, RTSP gateways) falls back to
    an iframe embed.
    """
    if not url:
        return StreamType.IFRAME

    lower = url.lower()

    if any(marker in lower for marker in HLS_MARKERS) or PROXY_PATH_PATTERN.search(lower):
        return StreamType.HLS

    if any(marker in lower for marker in MJPEG_MARKERS):
        return StreamType.MJPEG

    return StreamType.IFRAME

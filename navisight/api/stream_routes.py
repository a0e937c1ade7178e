"""
CCTV stream proxy endpoint

Only HLS cameras are proxied; MJPEG and iframe sources are embedded directly
by the client.
"""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from ..auth import get_authenticated_user
from ..core.errors import NotConfigured, ProxyFailure, StreamProxyError, Unauthorized, UnsupportedStreamType
from ..core.hls_proxy import HlsProxy, proxy_headers
from ..core.stream_types import StreamType, detect_stream_type

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cctv", tags=["cctv-stream"])

# Global dependencies (injected from app.py)
_database = None
_hls_proxy = None


def set_dependencies(database, hls_proxy: HlsProxy):
    """Inject dependencies"""
    global _database, _hls_proxy
    _database = database
    _hls_proxy = hls_proxy


def _error_response(error: StreamProxyError) -> JSONResponse:
    return JSONResponse(
        {"message": error.message},
        status_code=error.status_code,
        headers=proxy_headers(),
    )


async def _handle_request(request: Request, camera_id: str, method: str) -> Response:
    try:
        if _database is None or _hls_proxy is None:
            raise RuntimeError("Stream proxy dependencies not initialized")

        if get_authenticated_user(request) is None:
            raise Unauthorized()

        stream_url = _database.get_camera_stream_url(camera_id)
        if not stream_url:
            raise NotConfigured()

        if detect_stream_type(stream_url) != StreamType.HLS:
            raise UnsupportedStreamType()

        return await _hls_proxy.relay(request, camera_id, stream_url, method)

    except StreamProxyError as e:
        logger.warning(f"[Proxy] Camera {camera_id}: {method} rejected ({e.status_code} {e.message})")
        return _error_response(e)
    except Exception as e:
        logger.error(f"[Proxy] Error proxying CCTV stream for camera {camera_id}: {e!r}")
        return _error_response(ProxyFailure())


@router.api_route("/{camera_id}/stream", methods=["GET", "HEAD"])
async def proxy_camera_stream(camera_id: str, request: Request):
    """
    Proxy the camera's HLS stream

    Query:
        resource: absolute URL of a playlist/segment/key taken from a
            rewritten playlist; must share the camera stream's origin
    """
    return await _handle_request(request, camera_id, request.method)

"""
HLS Proxy Relay - fetch camera playlists/segments and serve them same-origin

The relay is stateless: every call opens its own upstream connection, nothing
is cached or shared between viewers.
"""
import logging
from typing import Dict, Optional
from urllib.parse import urlsplit

import httpx
from fastapi import Request
from fastapi.responses import Response, StreamingResponse

from .. import config
from .errors import InvalidResource, OriginMismatch
from .http_utils import origin_string, parse_absolute_url, resolve_public_origin, url_origin
from .playlist import rewrite_playlist

logger = logging.getLogger(__name__)

HLS_MIME = "application/vnd.apple.mpegurl"
HLS_ACCEPT = "application/vnd.apple.mpegurl,application/x-mpegurl,*/*;q=0.1"
MANIFEST_PREVIEW_CHARS = 200


def proxy_headers(upstream_status: Optional[int] = None) -> Dict[str, str]:
    """Headers present on every proxy response"""
    headers = {
        "Access-Control-Allow-Origin": "*",
        "Cache-Control": "no-store",
    }
    if upstream_status is not None:
        headers["X-Upstream-Status"] = str(upstream_status)
    return headers


def select_target_url(stream_url: str, resource: Optional[str]) -> str:
    """
    Pick the upstream URL for this call.

    `resource` (a URL taken from a rewritten playlist) must live on the same
    origin as the camera's stream URL, otherwise the proxy would be an open
    relay.
    """
    base_url = parse_absolute_url(stream_url)
    if not resource:
        return base_url

    try:
        target_url = parse_absolute_url(resource)
        target_origin = url_origin(target_url)
    except ValueError as err:
        raise InvalidResource() from err

    if target_origin != url_origin(base_url):
        raise OriginMismatch()

    return target_url


def is_manifest_path(url: str) -> bool:
    return urlsplit(url).path.lower().endswith(".m3u8")


def has_extm3u_header(playlist: str) -> bool:
    return playlist.lstrip().lstrip("\ufeff").lstrip().upper().startswith("#EXTM3U")


def build_upstream_headers(target_url: str, stream_url: str) -> Dict[str, str]:
    base_origin = origin_string(stream_url)
    return {
        "User-Agent": config.PROXY_USER_AGENT,
        "Accept": HLS_ACCEPT if is_manifest_path(target_url) else "*/*",
        # Many camera backends only answer same-origin looking requests
        "Referer": f"{base_origin}/",
        "Origin": base_origin,
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }


class HlsProxy:
    """Relay GET/HEAD requests for one camera's HLS stream"""

    def __init__(self, timeout: Optional[float] = config.UPSTREAM_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            follow_redirects=True,
        )

    async def relay(self, request: Request, camera_id: str, stream_url: str,
                    method: str = "GET") -> Response:
        """
        Proxy one request to the camera.

        Raises InvalidResource / OriginMismatch before any upstream traffic;
        network errors from httpx propagate to the caller.
        """
        target_url = select_target_url(stream_url, request.query_params.get("resource"))
        headers = build_upstream_headers(target_url, stream_url)

        client = self._new_client()
        upstream = None
        streaming = False
        try:
            upstream_request = client.build_request(method, target_url, headers=headers)
            upstream = await client.send(upstream_request, stream=True)
            response_headers = proxy_headers(upstream.status_code)

            if method == "HEAD":
                return Response(status_code=upstream.status_code, headers=response_headers)

            if not upstream.is_success:
                try:
                    body = await upstream.aread()
                except httpx.HTTPError:
                    body = b"Upstream error"
                logger.info(f"[Proxy] Camera {camera_id}: upstream returned {upstream.status_code} for {target_url}")
                return Response(
                    content=body,
                    status_code=upstream.status_code,
                    headers=response_headers,
                    media_type="text/plain",
                )

            content_type = upstream.headers.get("content-type") or "application/octet-stream"
            if is_manifest_path(target_url) or "mpegurl" in content_type.lower():
                await upstream.aread()
                return self._manifest_response(request, camera_id, target_url, upstream, response_headers)

            streaming = True
            return StreamingResponse(
                self._stream_body(client, upstream),
                status_code=upstream.status_code,
                headers=response_headers,
                media_type=content_type,
            )
        finally:
            if not streaming:
                await self._close(client, upstream)

    def _manifest_response(self, request: Request, camera_id: str, target_url: str,
                           upstream: httpx.Response, headers: Dict[str, str]) -> Response:
        playlist = upstream.text

        if not has_extm3u_header(playlist):
            preview = playlist[:MANIFEST_PREVIEW_CHARS]
            logger.warning(f"[Proxy] Camera {camera_id}: invalid HLS manifest from {target_url}")
            return Response(
                content=(
                    "Upstream returned invalid HLS manifest (missing #EXTM3U).\n"
                    f"Status: {upstream.status_code}\n"
                    f"Body (first {MANIFEST_PREVIEW_CHARS} chars): {preview}"
                ),
                status_code=502,
                headers=headers,
                media_type="text/plain",
            )

        proxy_base_url = resolve_public_origin(request) + config.STREAM_PROXY_PATH.format(camera_id=camera_id)
        rewritten = rewrite_playlist(playlist, target_url, proxy_base_url)
        return Response(content=rewritten, status_code=200, headers=headers, media_type=HLS_MIME)

    async def _stream_body(self, client: httpx.AsyncClient, upstream: httpx.Response):
        """Relay the upstream body, closing the connection however the relay ends"""
        try:
            async for chunk in upstream.aiter_bytes():
                yield chunk
        finally:
            await self._close(client, upstream)

    @staticmethod
    async def _close(client: httpx.AsyncClient, upstream: Optional[httpx.Response]):
        if upstream is not None:
            await upstream.aclose()
        await client.aclose()

"""
Stream proxy error taxonomy

Each error knows the HTTP status and message it is reported with. Upstream
failures (non-2xx, invalid manifests) are relayed as responses instead of
being raised.
"""


class StreamProxyError(Exception):
    status_code = 500
    message = "Stream proxy error"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class Unauthorized(StreamProxyError):
    status_code = 401
    message = "Unauthorized"


class NotConfigured(StreamProxyError):
    status_code = 404
    message = "Stream URL not configured"


class UnsupportedStreamType(StreamProxyError):
    status_code = 400
    message = "Stream proxy is only available for HLS sources."


class InvalidResource(StreamProxyError):
    status_code = 400
    message = "Invalid resource parameter"


class OriginMismatch(StreamProxyError):
    status_code = 400
    message = "Resource host mismatch"


class ProxyFailure(StreamProxyError):
    status_code = 502
    message = "Unable to proxy CCTV stream"

"""
NAVISIGHT CCTV Server - camera management API and HLS stream proxy
"""
import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import auth, config
from .api import camera_routes, stream_routes
from .core.config import seed_cameras
from .core.hls_proxy import HlsProxy
from .core.stream_types import PROXY_PATH_PATTERN
from .database import CameraDatabase

logger = logging.getLogger(__name__)


class ApiCORSMiddleware(CORSMiddleware):
    """CORS for the dashboard API; the stream proxy sets its own headers"""

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and PROXY_PATH_PATTERN.fullmatch(scope["path"]):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


def cors_options(origins) -> dict:
    # Session cookies must never be sent cross-site to a wildcard origin
    return {
        "allow_origins": origins,
        "allow_credentials": "*" not in origins,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
        "expose_headers": ["X-Upstream-Status"],
    }


# FastAPI App
app = FastAPI(title="NAVISIGHT CCTV API")

app.add_middleware(ApiCORSMiddleware, **cors_options(config.CORS_ORIGINS))

# Global Instances
database = None
hls_proxy = None


def init_services(db: CameraDatabase = None, proxy: HlsProxy = None):
    """Create (or accept) the shared instances and inject them into the routers"""
    global database, hls_proxy

    database = db or CameraDatabase(config.DB_FILE)
    hls_proxy = proxy or HlsProxy()

    auth.set_database(database)
    camera_routes.set_dependencies(database)
    stream_routes.set_dependencies(database, hls_proxy)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Error bodies follow {"message": ...} like the dashboard expects
    content = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
    return JSONResponse(content, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"path": [str(p) for p in err.get("loc", ())[1:]], "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse({"message": "Validation error", "errors": errors}, status_code=400)


@app.on_event("startup")
async def startup():
    if database is None:
        init_services()

    try:
        seed_cameras(database, config.CAMERAS_FILE)
    except Exception as e:
        logger.error(f"[Startup] Failed to load camera seed {config.CAMERAS_FILE}: {e}")


@app.get("/api/health")
async def health():
    """Basic health check"""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


app.include_router(camera_routes.router)
app.include_router(stream_routes.router)


def main():
    logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(message)s")
    uvicorn.run(app, host=config.SERVER_HOST, port=config.SERVER_PORT, log_level="info")


if __name__ == "__main__":
    main()

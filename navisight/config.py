"""
NAVISIGHT Server Configuration
"""
import os

# SERVER
SERVER_HOST = os.getenv("NAVISIGHT_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("NAVISIGHT_PORT", "8000"))

# CORS - origins allowed to call the dashboard API (comma separated, "*" = all)
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("NAVISIGHT_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# DATABASE
# SQLite file holding cameras and dashboard sessions
DB_FILE = os.getenv("NAVISIGHT_DB_FILE", "data/navisight.db")

# CAMERA SEED
# Optional YAML file (streams + metadata) loaded into the database at startup
CAMERAS_FILE = os.getenv("NAVISIGHT_CAMERAS_FILE", "cameras.yaml")

# SESSIONS
# Cookie written by the dashboard login service
SESSION_COOKIE_NAME = os.getenv("NAVISIGHT_SESSION_COOKIE", "navisight_session")
ADMIN_ROLE = "ADMINISTRATOR"

# STREAM PROXY
PROXY_USER_AGENT = os.getenv("NAVISIGHT_PROXY_USER_AGENT", "Navisight-CCTV-Proxy/1.0")

# Upstream timeout in seconds, 0 = wait for the camera indefinitely
UPSTREAM_TIMEOUT = float(os.getenv("NAVISIGHT_UPSTREAM_TIMEOUT", "0")) or None

# Scheme used for rewritten playlist URLs when no X-Forwarded-Proto is present
DEFAULT_PUBLIC_SCHEME = os.getenv("NAVISIGHT_PUBLIC_SCHEME", "https")

# Path of the per-camera proxy endpoint, relative to the public origin
STREAM_PROXY_PATH = "/api/cctv/{camera_id}/stream"

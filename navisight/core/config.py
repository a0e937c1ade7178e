"""
Camera seed file - YAML with `streams` and `metadata` sections

    streams:
      harbor-gate: https://cam.local/live/index.m3u8
    metadata:
      harbor-gate:
        name: Harbor Gate
        project_id: kmp-bahari-1
        status: ONLINE
"""
import logging
from pathlib import Path
from typing import Union

import yaml

from ..database import CAMERA_STATUSES

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_ID = "default"


def load_camera_config(path: Union[str, Path]) -> dict:
    """Load the seed file, empty sections when the file does not exist"""
    path = Path(path)
    if not path.exists():
        return {"streams": {}, "metadata": {}}

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    data.setdefault("streams", {})
    data.setdefault("metadata", {})
    return data


def seed_cameras(database, path: Union[str, Path]) -> int:
    """
    Upsert every camera of the seed file into the database.

    Returns:
        Number of cameras written
    """
    cfg = load_camera_config(path)
    metadata = cfg.get("metadata") or {}
    count = 0

    for cam_id, url in (cfg.get("streams") or {}).items():
        cam_id = str(cam_id)
        if cam_id.startswith("#"):
            continue

        meta = metadata.get(cam_id) or {}
        status = str(meta.get("status", "OFFLINE")).upper()
        if status not in CAMERA_STATUSES:
            logger.warning(f"[Seed] Camera {cam_id}: unknown status {status!r}, using OFFLINE")
            status = "OFFLINE"

        database.upsert_camera(
            camera_id=cam_id,
            name=meta.get("name") or cam_id.replace("_", " ").title(),
            stream_url=str(url) if url else None,
            project_id=str(meta.get("project_id") or DEFAULT_PROJECT_ID),
            status=status,
            description=meta.get("description"),
            location=meta.get("location"),
        )
        count += 1

    if count:
        logger.info(f"[Seed] Loaded {count} camera(s) from {path}")
    return count

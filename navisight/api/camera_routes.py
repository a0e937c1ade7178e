"""
CCTV camera endpoints - list, view, create, edit, delete, reorder
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..auth import UserIdentity, require_admin, require_user
from ..core.http_utils import parse_absolute_url
from .models import CameraCreate, CameraOut, CameraReorder, CameraUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cctv", tags=["cctv"])

# Global dependencies (injected from app.py)
_database = None


def set_dependencies(database):
    """Inject dependencies"""
    global _database
    _database = database


def _get_database():
    if _database is None:
        raise HTTPException(status_code=500, detail="Dependencies not initialized")
    return _database


def _validate_stream_url(url: str):
    try:
        parse_absolute_url(url)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Validation error",
                "errors": [{"path": ["streamUrl"], "message": "Please enter a valid URL"}],
            },
        )


def _get_existing_camera(database, camera_id: str):
    camera = database.get_camera(camera_id)
    if camera is None:
        raise HTTPException(status_code=404, detail="Camera not found")
    return camera


@router.get("", response_model=List[CameraOut])
async def list_cameras(user: UserIdentity = Depends(require_user)):
    """Get all CCTV cameras"""
    database = _get_database()
    return [CameraOut.from_record(c) for c in database.get_cameras()]


@router.post("", response_model=CameraOut, status_code=201)
async def create_camera(camera: CameraCreate, user: UserIdentity = Depends(require_user)):
    """Create new CCTV camera"""
    database = _get_database()
    _validate_stream_url(camera.streamUrl)

    created = database.create_camera(
        name=camera.name,
        stream_url=camera.streamUrl,
        project_id=camera.projectId,
        status=camera.status,
        description=camera.description,
        location=camera.location,
    )
    logger.info(f"[CCTV] {user.email} created camera {created['id']}")
    return CameraOut.from_record(created)


@router.patch("/reorder")
async def reorder_cameras(payload: CameraReorder, user: UserIdentity = Depends(require_admin)):
    """Reorder CCTV cameras within a project (admin only)"""
    database = _get_database()
    ordered_ids = payload.orderedIds

    if len(set(ordered_ids)) != len(ordered_ids):
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Validation error",
                "errors": [{"path": ["orderedIds"], "message": "Duplicate camera ids"}],
            },
        )

    if len(ordered_ids) != database.count_project_cameras(payload.projectId):
        raise HTTPException(status_code=400, detail="Order list must include all cameras in the project")

    matching = database.get_project_camera_ids(payload.projectId, ordered_ids)
    if len(matching) != len(ordered_ids):
        raise HTTPException(status_code=400, detail="Invalid camera ids for this project")

    database.reorder_cameras(ordered_ids)
    return {"message": "Camera order updated"}


@router.get("/{camera_id}", response_model=CameraOut)
async def get_camera(camera_id: str, user: UserIdentity = Depends(require_user)):
    """Get single CCTV camera"""
    database = _get_database()
    return CameraOut.from_record(_get_existing_camera(database, camera_id))


@router.patch("/{camera_id}", response_model=CameraOut)
async def update_camera(camera_id: str, camera: CameraUpdate, user: UserIdentity = Depends(require_user)):
    """Update CCTV camera"""
    database = _get_database()
    _get_existing_camera(database, camera_id)

    changes = camera.model_dump(exclude_unset=True)
    if changes.get("streamUrl") is not None:
        _validate_stream_url(changes["streamUrl"])

    # Explicit nulls only make sense for the free-text fields
    fields = {}
    mapping = {
        "name": "name",
        "description": "description",
        "location": "location",
        "streamUrl": "stream_url",
        "status": "status",
        "projectId": "project_id",
    }
    for key, column in mapping.items():
        if key not in changes:
            continue
        if changes[key] is None and key not in ("description", "location"):
            continue
        fields[column] = changes[key]

    updated = database.update_camera(camera_id, fields)
    return CameraOut.from_record(updated)


@router.delete("/{camera_id}")
async def delete_camera(camera_id: str, user: UserIdentity = Depends(require_user)):
    """Delete CCTV camera"""
    database = _get_database()
    _get_existing_camera(database, camera_id)

    database.delete_camera(camera_id)
    logger.info(f"[CCTV] {user.email} deleted camera {camera_id}")
    return {"message": "Camera deleted successfully"}

"""
API Models - Pydantic models for FastAPI
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

CameraStatus = Literal["ONLINE", "OFFLINE", "MAINTENANCE"]


class CameraCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    projectId: str = Field(..., min_length=1)
    streamUrl: str
    status: CameraStatus = "OFFLINE"


class CameraUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    projectId: Optional[str] = None
    streamUrl: Optional[str] = None
    status: Optional[CameraStatus] = None


class CameraOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    projectId: str
    streamUrl: Optional[str] = None
    status: CameraStatus
    sortOrder: int = 0
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @classmethod
    def from_record(cls, camera: Dict[str, Any]) -> "CameraOut":
        return cls(
            id=camera["id"],
            name=camera.get("name") or "Unnamed Camera",
            description=camera.get("description"),
            location=camera.get("location"),
            projectId=camera["project_id"],
            streamUrl=camera.get("stream_url"),
            status=camera.get("status") or "OFFLINE",
            sortOrder=camera.get("sort_order") or 0,
            createdAt=camera.get("created_at"),
            updatedAt=camera.get("updated_at"),
        )


class CameraReorder(BaseModel):
    projectId: str = Field(..., min_length=1)
    orderedIds: List[str] = Field(..., min_length=1)

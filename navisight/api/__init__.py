"""
API module - FastAPI routers and models
"""
from .models import CameraCreate, CameraOut, CameraReorder, CameraUpdate

__all__ = [
    "CameraCreate",
    "CameraOut",
    "CameraReorder",
    "CameraUpdate",
]

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class LocationModel(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    address: Optional[str] = None


class ImagePayload(BaseModel):
    image_path: Optional[str] = Field(default=None, description="Path readable by the server")
    image_base64: Optional[str] = Field(default=None, description="Base64 encoded image")

    @model_validator(mode="after")
    def _require_one_source(self) -> "ImagePayload":
        if bool(self.image_path) == bool(self.image_base64):
            raise ValueError("Provide exactly one of image_path or image_base64")
        return self


class ClassifyRequest(ImagePayload):
    location: Optional[LocationModel] = None


class ThresholdUpdate(BaseModel):
    threshold: float


class NotesUpdate(BaseModel):
    notes: Optional[str] = None


class SettingsUpdate(BaseModel):
    auto_save: Optional[bool] = None
    location_tracking: Optional[bool] = None
    notifications: Optional[bool] = None
    model_version: Optional[str] = None
    confidence_threshold: Optional[float] = None


class FavoriteResponse(BaseModel):
    id: str
    is_favorite: bool


__all__ = [
    "ClassifyRequest",
    "FavoriteResponse",
    "ImagePayload",
    "LocationModel",
    "NotesUpdate",
    "SettingsUpdate",
    "ThresholdUpdate",
]

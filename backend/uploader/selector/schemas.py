"""Pydantic schemas for the selector HTTP surface.

The internal state keeps raw image bytes; these views expose everything a
front end needs to render the widget without them. Image bytes are served
separately through the preview and crop-result URLs.
"""
import math
from typing import List, Optional

from pydantic import BaseModel, Field

from .dropzone import Rejection
from .errors import InvalidCrop
from .state import CropRect, ImageStatus, SelectorState, UploadResult


def preview_url(session_id: str, image_id: str) -> str:
    return f"/selector/{session_id}/images/{image_id}/preview"


def crop_result_url(session_id: str) -> str:
    return f"/selector/{session_id}/crop/result"


class CropRectBody(BaseModel):
    """Crop rectangle as sent by the crop widget, in pixels."""
    x: float = Field(default=0, description="Left edge")
    y: float = Field(default=0, description="Top edge")
    width: float = Field(..., description="Crop width")
    height: float = Field(..., description="Crop height")

    def to_rect(self) -> CropRect:
        """Round to whole pixels.

        Raises:
            InvalidCrop: If any coordinate is NaN or infinite.
        """
        if not all(math.isfinite(v) for v in (self.x, self.y, self.width, self.height)):
            raise InvalidCrop("Crop rectangle must use finite numbers")
        return CropRect(
            x=round(self.x), y=round(self.y), width=round(self.width), height=round(self.height)
        )

    @classmethod
    def from_rect(cls, rect: CropRect) -> "CropRectBody":
        return cls(x=rect.x, y=rect.y, width=rect.width, height=rect.height)


class PendingImageView(BaseModel):
    id: str
    filename: str
    content_type: str
    size_bytes: int
    preview_url: str
    status: ImageStatus
    selected: bool
    progress: Optional[float] = Field(None, description="Upload progress, absent before the first tick")


class CropView(BaseModel):
    image_id: str
    rect: Optional[CropRectBody] = None
    result_url: Optional[str] = None


class SelectorView(BaseModel):
    """Everything the widget renders for one session."""
    session_id: str
    images: List[PendingImageView]
    selected: List[str]
    crop: Optional[CropView] = None
    error: str = ""
    max_images: int
    max_selected: int

    @classmethod
    def build(
        cls, session_id: str, state: SelectorState, max_images: int, max_selected: int
    ) -> "SelectorView":
        images = [
            PendingImageView(
                id=image.id,
                filename=image.filename,
                content_type=image.content_type,
                size_bytes=image.size,
                preview_url=preview_url(session_id, image.id),
                status=image.status,
                selected=state.is_selected(image.id),
                progress=state.progress.get(image.id),
            )
            for image in state.images
        ]

        crop = None
        if state.crop is not None:
            crop = CropView(
                image_id=state.crop.image_id,
                rect=CropRectBody.from_rect(state.crop.rect) if state.crop.rect else None,
                result_url=crop_result_url(session_id) if state.crop.cropped else None,
            )

        return cls(
            session_id=session_id,
            images=images,
            selected=list(state.selected),
            crop=crop,
            error=state.error,
            max_images=max_images,
            max_selected=max_selected,
        )


class DropRejectionView(BaseModel):
    filename: str
    code: str
    message: str

    @classmethod
    def from_rejection(cls, rejection: Rejection) -> "DropRejectionView":
        return cls(filename=rejection.file.filename, code=rejection.code, message=rejection.message)


class AddImagesResponse(BaseModel):
    state: SelectorView
    rejected: List[DropRejectionView] = Field(default_factory=list)


class UploadResultView(BaseModel):
    image_id: str
    filename: str
    ok: bool
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: UploadResult) -> "UploadResultView":
        return cls(image_id=result.image_id, filename=result.filename, ok=result.ok, error=result.error)


class UploadResponse(BaseModel):
    results: List[UploadResultView]
    state: SelectorView

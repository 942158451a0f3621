"""Immutable selector state and its transitions.

State is a frozen ``SelectorState`` snapshot. Each transition function takes
a snapshot and returns a new one; none of them mutate their input.
Rejected transitions raise and leave the caller's snapshot untouched.

Images are identified by an opaque id assigned when they are added, so
selection, progress and crop entries stay attached to the right image when
another one is deleted.
"""
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .dropzone import DroppedFile
from .errors import CapacityExceeded, ImageNotFound, InvalidCrop

# =============================================================================
# Messages
# =============================================================================

ADD_LIMIT_MESSAGE = "You can only upload up to {limit} images."
SELECT_LIMIT_MESSAGE = "You have reached the limit of {limit} images."
UPLOAD_FAILED_MESSAGE = "Upload failed. Please try again."


# =============================================================================
# Data Models
# =============================================================================


class ImageStatus(str, Enum):
    """Upload status of a pending image.

    A failed transfer leaves the image at PENDING so it can be selected and
    uploaded again.
    """
    PENDING = "pending"
    UPLOADED = "uploaded"


@dataclass(frozen=True)
class PendingImage:
    id: str
    filename: str
    content_type: str
    data: bytes = field(repr=False)
    status: ImageStatus = ImageStatus.PENDING

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class CropRect:
    """Crop rectangle in source-image pixels."""
    x: int
    y: int
    width: int
    height: int

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass(frozen=True)
class CropWorkspace:
    image_id: str
    rect: Optional[CropRect] = None
    cropped: Optional[bytes] = field(default=None, repr=False)


@dataclass(frozen=True)
class UploadResult:
    """Outcome of one transfer started by an upload."""
    image_id: str
    filename: str
    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class SelectorState:
    images: Tuple[PendingImage, ...] = ()
    selected: Tuple[str, ...] = ()
    # image id -> percentage; replaced, never mutated
    progress: Mapping[str, float] = field(default_factory=dict)
    crop: Optional[CropWorkspace] = None
    error: str = ""

    def find(self, image_id: str) -> Optional[PendingImage]:
        for image in self.images:
            if image.id == image_id:
                return image
        return None

    def get(self, image_id: str) -> PendingImage:
        image = self.find(image_id)
        if image is None:
            raise ImageNotFound(image_id)
        return image

    def is_selected(self, image_id: str) -> bool:
        return image_id in self.selected


# =============================================================================
# Transitions
# =============================================================================


def new_image_id() -> str:
    return uuid.uuid4().hex


def add_images(state: SelectorState, files: Sequence[DroppedFile], limit: int) -> SelectorState:
    """Append *files* as pending images, all or nothing.

    Raises:
        CapacityExceeded: If the list would grow past *limit*.
    """
    if not files:
        return state
    if len(state.images) + len(files) > limit:
        raise CapacityExceeded(ADD_LIMIT_MESSAGE.format(limit=limit))

    added = tuple(
        PendingImage(
            id=new_image_id(),
            filename=f.filename,
            content_type=f.content_type,
            data=f.data,
        )
        for f in files
    )
    return replace(state, images=state.images + added)


def toggle_select(state: SelectorState, image_id: str, limit: int) -> SelectorState:
    """Select or unselect an image; clears the error banner on success.

    Raises:
        ImageNotFound: If *image_id* is not a pending image.
        CapacityExceeded: If selecting would go past *limit*.
    """
    state.get(image_id)

    if state.is_selected(image_id):
        selected = tuple(i for i in state.selected if i != image_id)
        return replace(state, selected=selected, error="")

    if len(state.selected) >= limit:
        raise CapacityExceeded(SELECT_LIMIT_MESSAGE.format(limit=limit))
    return replace(state, selected=state.selected + (image_id,), error="")


def delete_image(state: SelectorState, image_id: str) -> SelectorState:
    """Remove an image together with its selection, progress and crop entries."""
    state.get(image_id)

    progress = {k: v for k, v in state.progress.items() if k != image_id}
    crop = state.crop
    if crop is not None and crop.image_id == image_id:
        crop = None

    return replace(
        state,
        images=tuple(i for i in state.images if i.id != image_id),
        selected=tuple(i for i in state.selected if i != image_id),
        progress=progress,
        crop=crop,
    )


def cancel(state: SelectorState) -> SelectorState:
    """Clear the selection; images, status and progress are kept."""
    return replace(state, selected=())


def set_error(state: SelectorState, message: str) -> SelectorState:
    return replace(state, error=message)


def dismiss_error(state: SelectorState) -> SelectorState:
    return replace(state, error="")


def set_progress(state: SelectorState, image_id: str, percent: float) -> SelectorState:
    """Record transfer progress for an image.

    The value is clamped to [0, 100] and never moves backwards. Updates for
    an image that was deleted mid-transfer are dropped.
    """
    if state.find(image_id) is None:
        return state

    percent = min(max(percent, 0.0), 100.0)
    previous = state.progress.get(image_id)
    if previous is not None and previous >= percent:
        return state

    progress: Dict[str, float] = dict(state.progress)
    progress[image_id] = percent
    return replace(state, progress=progress)


def mark_uploaded(state: SelectorState, image_id: str) -> SelectorState:
    """Force progress to 100 and flip the image to UPLOADED."""
    if state.find(image_id) is None:
        return state

    images = tuple(
        replace(i, status=ImageStatus.UPLOADED) if i.id == image_id else i
        for i in state.images
    )
    progress: Dict[str, float] = dict(state.progress)
    progress[image_id] = 100.0
    return replace(state, images=images, progress=progress)


def begin_crop(state: SelectorState, image_id: str) -> SelectorState:
    """Make *image_id* the crop target, discarding any previous result."""
    state.get(image_id)
    return replace(state, crop=CropWorkspace(image_id=image_id))


def _require_crop(state: SelectorState) -> CropWorkspace:
    if state.crop is None:
        raise InvalidCrop("No image is being cropped")
    return state.crop


def update_crop(state: SelectorState, rect: CropRect) -> SelectorState:
    crop = _require_crop(state)
    return replace(state, crop=replace(crop, rect=rect))


def set_crop_result(state: SelectorState, rect: CropRect, cropped: bytes) -> SelectorState:
    crop = _require_crop(state)
    return replace(state, crop=replace(crop, rect=rect, cropped=cropped))


def end_crop(state: SelectorState) -> SelectorState:
    return replace(state, crop=None)

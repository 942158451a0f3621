"""FastAPI router exposing the image selector per session.

A browser front end drives the widget through these endpoints; every call
returns the resulting ``SelectorView`` so the UI can re-render from it.
"""
import logging
from typing import List

from fastapi import APIRouter, File, HTTPException, Response, UploadFile

from .controller import ImageSelectorController
from .crop import CROP_MIME_TYPE
from .dropzone import DroppedFile
from .errors import CapacityExceeded, ImageNotFound, InvalidCrop, SelectorError
from .manager import manager
from .schemas import (
    AddImagesResponse,
    CropRectBody,
    DropRejectionView,
    SelectorView,
    UploadResponse,
    UploadResultView,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/selector", tags=["selector"])


def _http_error(exc: SelectorError) -> HTTPException:
    if isinstance(exc, CapacityExceeded):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ImageNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidCrop):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _session(session_id: str) -> ImageSelectorController:
    """Look up a live session; only loading or dropping files starts one."""
    controller = manager.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return controller


def _view(session_id: str, controller: ImageSelectorController) -> SelectorView:
    return SelectorView.build(
        session_id,
        controller.state,
        max_images=controller.settings.max_images,
        max_selected=controller.settings.max_selected,
    )


@router.get("/{session_id}", response_model=SelectorView)
async def get_session(session_id: str):
    """Return the current widget state, creating an empty session if needed."""
    return _view(session_id, manager.get_or_create(session_id))


@router.delete("/{session_id}")
async def end_session(session_id: str):
    """Drop every image and all state of a session."""
    if not manager.end_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"session_id": session_id, "ended": True}


@router.post("/{session_id}/images", response_model=AddImagesResponse)
async def add_images(session_id: str, files: List[UploadFile] = File(...)):
    """Drop files onto the widget.

    Files the drop-zone refuses (type or size) are reported in ``rejected``
    and never added. The remaining files are added all or nothing.

    Raises:
        HTTPException 409: If the pending list would exceed its capacity.
    """
    controller = manager.get_or_create(session_id)

    dropped = []
    for upload in files:
        dropped.append(
            DroppedFile(
                filename=upload.filename or "unnamed",
                content_type=upload.content_type or "application/octet-stream",
                data=await upload.read(),
            )
        )

    try:
        _, rejected = controller.drop(dropped)
    except SelectorError as exc:
        raise _http_error(exc)

    return AddImagesResponse(
        state=_view(session_id, controller),
        rejected=[DropRejectionView.from_rejection(r) for r in rejected],
    )


@router.get("/{session_id}/images/{image_id}/preview")
async def preview_image(session_id: str, image_id: str):
    """Serve the original bytes of a pending image."""
    controller = manager.get(session_id)
    image = controller.state.find(image_id) if controller else None
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return Response(content=image.data, media_type=image.content_type)


@router.delete("/{session_id}/images/{image_id}", response_model=SelectorView)
async def delete_image(session_id: str, image_id: str):
    controller = _session(session_id)
    try:
        controller.delete_image(image_id)
    except SelectorError as exc:
        raise _http_error(exc)
    return _view(session_id, controller)


@router.post("/{session_id}/images/{image_id}/toggle", response_model=SelectorView)
async def toggle_select(session_id: str, image_id: str):
    """Select or unselect an image.

    Raises:
        HTTPException 404: Unknown image.
        HTTPException 409: Selection is already full.
    """
    controller = _session(session_id)
    try:
        controller.toggle_select(image_id)
    except SelectorError as exc:
        raise _http_error(exc)
    return _view(session_id, controller)


@router.post("/{session_id}/cancel", response_model=SelectorView)
async def cancel_selection(session_id: str):
    controller = _session(session_id)
    controller.cancel()
    return _view(session_id, controller)


@router.post("/{session_id}/error/dismiss", response_model=SelectorView)
async def dismiss_error(session_id: str):
    controller = _session(session_id)
    controller.dismiss_error()
    return _view(session_id, controller)


@router.post("/{session_id}/upload", response_model=UploadResponse)
async def upload_selected(session_id: str):
    """Upload every selected image to the receiver and wait for all results.

    Always answers 200; failed transfers are reported per image in
    ``results`` and summarised in the state's error banner.
    """
    controller = _session(session_id)
    results = await controller.upload()
    return UploadResponse(
        results=[UploadResultView.from_result(r) for r in results],
        state=_view(session_id, controller),
    )


# ---------------------------------------------------------------------------
# Crop workspace
# ---------------------------------------------------------------------------


@router.post("/{session_id}/images/{image_id}/crop", response_model=SelectorView)
async def begin_crop(session_id: str, image_id: str):
    """Open the crop workspace on an image."""
    controller = _session(session_id)
    try:
        controller.begin_crop(image_id)
    except SelectorError as exc:
        raise _http_error(exc)
    return _view(session_id, controller)


@router.put("/{session_id}/crop", response_model=SelectorView)
async def update_crop(session_id: str, body: CropRectBody):
    controller = _session(session_id)
    try:
        controller.update_crop(body.to_rect())
    except SelectorError as exc:
        raise _http_error(exc)
    return _view(session_id, controller)


@router.post("/{session_id}/crop", response_model=SelectorView)
async def complete_crop(session_id: str, body: CropRectBody):
    """Rasterize the crop rectangle into a PNG preview.

    The preview is served from ``crop.result_url``; it does not replace the
    image that gets uploaded.
    """
    controller = _session(session_id)
    try:
        controller.complete_crop(body.to_rect())
    except SelectorError as exc:
        raise _http_error(exc)
    return _view(session_id, controller)


@router.get("/{session_id}/crop/result")
async def crop_result(session_id: str):
    controller = manager.get(session_id)
    crop = controller.state.crop if controller else None
    if crop is None or crop.cropped is None:
        raise HTTPException(status_code=404, detail="No crop result")
    return Response(content=crop.cropped, media_type=CROP_MIME_TYPE)


@router.delete("/{session_id}/crop", response_model=SelectorView)
async def end_crop(session_id: str):
    controller = _session(session_id)
    controller.end_crop()
    return _view(session_id, controller)

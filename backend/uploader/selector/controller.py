"""Image selector controller.

Holds the current ``SelectorState`` snapshot and applies the widget's
operations to it. User-facing rejections (capacity) are written to the
error banner and raised so callers can react.

Uploads run one asyncio task per selected image and are joined with
asyncio.gather(); each task reports its own ``UploadResult``, so a partial
failure is attributed to the right images. There are no retries and no
cancellation.

Thread Safety:
    Designed for a single event loop. Progress callbacks from concurrent
    transfers replace the snapshot one at a time, never concurrently.
"""
import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import httpx

from uploader.config import SelectorSettings

from . import state as transitions
from .crop import rasterize_crop
from .dropzone import DroppedFile, Rejection, filter_drop, total_size
from .errors import CapacityExceeded, SelectorError
from .state import CropRect, PendingImage, SelectorState, UploadResult
from .transfer import post_image

logger = logging.getLogger(__name__)


class ImageSelectorController:
    """Owns the selector state for one widget instance.

    Args:
        upload_url: Receiver endpoint each selected image is posted to.
        settings: Limits and drop-zone rules. Defaults match the widget:
            five images, JPEG/PNG only, 5 MiB per file.
        timeout_seconds: httpx timeout per transfer; None disables it.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        upload_url: str,
        settings: Optional[SelectorSettings] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.upload_url = upload_url
        self.settings = settings or SelectorSettings()
        self._timeout = timeout_seconds
        self._transport = transport
        self._state = SelectorState()

    @property
    def state(self) -> SelectorState:
        return self._state

    def _reject(self, exc: SelectorError) -> None:
        self._state = transitions.set_error(self._state, str(exc))
        logger.info("[Selector] Rejected: %s", exc)

    # -----------------------------------------------------------------------
    # Image list & selection
    # -----------------------------------------------------------------------

    def drop(self, files: Iterable[DroppedFile]) -> Tuple[SelectorState, List[Rejection]]:
        """Run dropped files through the drop-zone filter, then add the rest."""
        accepted, rejected = filter_drop(files, self.settings)
        for rejection in rejected:
            logger.info(
                "[Selector] Drop-zone refused %s: %s", rejection.file.filename, rejection.code
            )
        return self.add_images(accepted), rejected

    def add_images(self, files: Sequence[DroppedFile]) -> SelectorState:
        """Append files as pending images, all or nothing.

        Raises:
            CapacityExceeded: If the list would exceed ``max_images``.
        """
        try:
            self._state = transitions.add_images(self._state, files, self.settings.max_images)
        except CapacityExceeded as exc:
            self._reject(exc)
            raise
        if files:
            logger.info(
                f"[Selector] Added {len(files)} image(s) ({total_size(files)} bytes), "
                f"{len(self._state.images)} pending"
            )
        return self._state

    def toggle_select(self, image_id: str) -> SelectorState:
        """Select or unselect an image.

        Raises:
            ImageNotFound: If the id is unknown.
            CapacityExceeded: If ``max_selected`` images are already selected.
        """
        try:
            self._state = transitions.toggle_select(
                self._state, image_id, self.settings.max_selected
            )
        except CapacityExceeded as exc:
            self._reject(exc)
            raise
        return self._state

    def delete_image(self, image_id: str) -> SelectorState:
        self._state = transitions.delete_image(self._state, image_id)
        logger.debug("[Selector] Deleted image %s", image_id)
        return self._state

    def cancel(self) -> SelectorState:
        self._state = transitions.cancel(self._state)
        logger.debug("[Selector] Selection cleared")
        return self._state

    def dismiss_error(self) -> SelectorState:
        self._state = transitions.dismiss_error(self._state)
        logger.debug("[Selector] Error dismissed")
        return self._state

    # -----------------------------------------------------------------------
    # Upload
    # -----------------------------------------------------------------------

    def _on_progress(self, image_id: str, sent: int, total: int) -> None:
        percent = sent / total * 100 if total else 100.0
        self._state = transitions.set_progress(self._state, image_id, percent)

    async def _upload_one(self, client: httpx.AsyncClient, image: PendingImage) -> UploadResult:
        try:
            await post_image(
                client,
                self.upload_url,
                image,
                lambda sent, total: self._on_progress(image.id, sent, total),
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(f"[Selector] Upload of {image.filename} ({image.id}) failed: {exc}")
            return UploadResult(image_id=image.id, filename=image.filename, ok=False, error=str(exc))

        self._state = transitions.mark_uploaded(self._state, image.id)
        logger.info(f"[Selector] Uploaded {image.filename} ({image.id})")
        return UploadResult(image_id=image.id, filename=image.filename, ok=True)

    async def upload(self) -> List[UploadResult]:
        """Upload every selected image concurrently and wait for all of them.

        Successful images become UPLOADED with progress 100. Failed ones stay
        PENDING and are named in the error banner. Nothing is rolled back.

        Returns:
            One UploadResult per selected image, in selection order.
        """
        targets = [self._state.get(image_id) for image_id in self._state.selected]
        if not targets:
            return []

        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            results = await asyncio.gather(
                *[self._upload_one(client, image) for image in targets]
            )

        failed = [r for r in results if not r.ok]
        if failed:
            names = ", ".join(r.filename for r in failed)
            self._state = transitions.set_error(
                self._state, f"{transitions.UPLOAD_FAILED_MESSAGE} Failed: {names}"
            )
        logger.info(
            "[Selector] Upload finished: %d ok, %d failed", len(results) - len(failed), len(failed)
        )
        return list(results)

    # -----------------------------------------------------------------------
    # Crop workspace
    # -----------------------------------------------------------------------

    def begin_crop(self, image_id: str) -> SelectorState:
        self._state = transitions.begin_crop(self._state, image_id)
        logger.debug("[Selector] Cropping image %s", image_id)
        return self._state

    def update_crop(self, rect: CropRect) -> SelectorState:
        self._state = transitions.update_crop(self._state, rect)
        logger.debug("[Selector] Crop rect set to %s", rect)
        return self._state

    def complete_crop(self, rect: CropRect) -> bytes:
        """Rasterize *rect* of the crop target and keep it as the preview.

        The result is never used as upload payload.

        Raises:
            InvalidCrop: If no crop is in progress or the region is unusable.
        """
        workspace = transitions.update_crop(self._state, rect).crop
        source = self._state.get(workspace.image_id)
        cropped = rasterize_crop(source.data, rect, max_pixels=self.settings.max_crop_pixels)
        self._state = transitions.set_crop_result(self._state, rect, cropped)
        logger.debug(
            "[Selector] Crop of %s completed (%d bytes)", workspace.image_id, len(cropped)
        )
        return cropped

    def end_crop(self) -> SelectorState:
        self._state = transitions.end_crop(self._state)
        logger.debug("[Selector] Crop workspace closed")
        return self._state

"""HTTP transfer of a single image to the upload receiver."""
import io
import logging
from typing import Callable

import httpx

from uploader.receiver.schemas import IMAGE_FIELD

from .state import PendingImage

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class ProgressReader(io.BytesIO):
    """In-memory file that reports ``(bytes_read, total)`` on every read.

    httpx pulls multipart file content in chunks, so each chunk handed to
    the transport produces one progress tick.
    """

    def __init__(self, data: bytes, on_progress: ProgressCallback) -> None:
        super().__init__(data)
        self._total = len(data)
        self._on_progress = on_progress

    def read(self, size: int = -1) -> bytes:
        chunk = super().read(size)
        if chunk:
            self._on_progress(self.tell(), self._total)
        return chunk


async def post_image(
    client: httpx.AsyncClient,
    url: str,
    image: PendingImage,
    on_progress: ProgressCallback,
) -> httpx.Response:
    """POST *image* as the ``image`` multipart field.

    Raises:
        httpx.HTTPError: On transport failure or a non-2xx response.
    """
    reader = ProgressReader(image.data, on_progress)
    response = await client.post(
        url,
        files={IMAGE_FIELD: (image.filename, reader, image.content_type)},
    )
    response.raise_for_status()
    logger.debug("Upload of %s answered %s", image.filename, response.status_code)
    return response

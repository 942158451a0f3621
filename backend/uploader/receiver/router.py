"""FastAPI router for the upload receiver endpoint."""
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from uploader.config import get_config

from .schemas import IMAGE_FIELD, NO_FILE_MESSAGE, UploadAck, UploadError
from .service import UploadStorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


def _service() -> UploadStorageService:
    receiver = get_config().receiver
    return UploadStorageService.get_instance(
        upload_dir=receiver.upload_dir, naming=receiver.naming
    )


@router.post("/upload")
async def receive_upload(request: Request) -> JSONResponse:
    """Store the file sent in the ``image`` multipart field.

    The form is parsed by hand rather than through an ``UploadFile``
    parameter so that malformed bodies end up in the same opaque 500 as
    every other fault instead of a 422.

    Returns:
        200 ``{"message": "File uploaded successfully"}`` once written.
        400 ``{"error": "No file provided"}`` when the field is absent and
        ``receiver.reject_missing_file`` is enabled.
        500 ``{"error": "Upload failed"}`` on any exception.
    """
    form = None
    try:
        form = await request.form()
        image = form.get(IMAGE_FIELD)

        # A plain text field under the same name counts as no file.
        if image is None or isinstance(image, str):
            if get_config().receiver.reject_missing_file:
                logger.warning("Upload rejected: no '%s' file field", IMAGE_FIELD)
                return JSONResponse({"error": NO_FILE_MESSAGE}, status_code=400)
            logger.warning("Upload request without '%s' file field, nothing stored", IMAGE_FIELD)
            return JSONResponse(UploadAck().model_dump(), status_code=200)

        stored = _service().save(
            filename=image.filename or "",
            stream=image.file,
            content_type=image.content_type,
        )
        logger.info(
            f"File uploaded: {stored.original_filename} -> {stored.filename} "
            f"({stored.size_bytes} bytes, {stored.content_type})"
        )
        return JSONResponse(UploadAck().model_dump(), status_code=200)

    except Exception:
        logger.exception("Error uploading file")
        return JSONResponse(UploadError().model_dump(), status_code=500)

    finally:
        if form is not None:
            await form.close()

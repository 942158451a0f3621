"""Pydantic schemas for the upload receiver.

- UploadAck: body returned on success
- UploadError: body returned when handling fails
- StoredFile: what was written to disk (server-side only, used for logging)
"""
import time

from pydantic import BaseModel, Field


UPLOAD_SUCCESS_MESSAGE = "File uploaded successfully"
UPLOAD_FAILED_MESSAGE = "Upload failed"
NO_FILE_MESSAGE = "No file provided"

IMAGE_FIELD = "image"


class UploadAck(BaseModel):
    """Fixed acknowledgment for a successful upload."""
    message: str = UPLOAD_SUCCESS_MESSAGE


class UploadError(BaseModel):
    """Opaque error body; carries no detail about the fault."""
    error: str = UPLOAD_FAILED_MESSAGE


class StoredFile(BaseModel):
    """A file written by the receiver.

    The stored filename has no relation to the uploaded one beyond the
    extension, which is carried over verbatim.
    """
    filename: str = Field(..., description="Generated filename on disk")
    path: str = Field(..., description="Full path the bytes were written to")
    original_filename: str = Field(..., description="Filename sent by the client")
    content_type: str = Field(default="application/octet-stream", description="Declared MIME type")
    size_bytes: int = Field(..., description="Number of bytes written")
    stored_at: float = Field(default_factory=time.time, description="Write timestamp")

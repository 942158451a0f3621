"""Client-side drop-zone filter.

Mirrors what the browser drop-zone does before handing files to the
selector: anything that is not a JPEG or PNG, or is larger than 5 MiB, is
set aside with a reason code. The filter is advisory only; nothing
downstream checks again.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from uploader.config import SelectorSettings

FILE_INVALID_TYPE = "file-invalid-type"
FILE_TOO_LARGE = "file-too-large"


@dataclass(frozen=True)
class DroppedFile:
    """A file handed to the drop-zone by drag-and-drop or the file picker."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Rejection:
    file: DroppedFile
    code: str
    message: str


def check_file(file: DroppedFile, settings: SelectorSettings) -> Optional[Rejection]:
    """Return why *file* is refused, or None if the drop-zone accepts it."""
    # MIME types are case-insensitive
    accepted = {t.lower() for t in settings.accepted_types}
    if file.content_type.lower() not in accepted:
        return Rejection(
            file=file,
            code=FILE_INVALID_TYPE,
            message=f"File type must be one of {', '.join(settings.accepted_types)}",
        )
    if file.size > settings.max_file_size_bytes:
        return Rejection(
            file=file,
            code=FILE_TOO_LARGE,
            message=f"File is larger than {settings.max_file_size_bytes} bytes",
        )
    return None


def filter_drop(
    files: Iterable[DroppedFile], settings: SelectorSettings
) -> Tuple[List[DroppedFile], List[Rejection]]:
    """Split dropped files into accepted and rejected, keeping drop order."""
    accepted: List[DroppedFile] = []
    rejected: List[Rejection] = []
    for file in files:
        rejection = check_file(file, settings)
        if rejection is None:
            accepted.append(file)
        else:
            rejected.append(rejection)
    return accepted, rejected


def total_size(files: Sequence[DroppedFile]) -> int:
    return sum(f.size for f in files)

"""Exceptions raised by the image selector."""


class SelectorError(Exception):
    """Base class for selector errors."""


class CapacityExceeded(SelectorError):
    """Adding or selecting would go past the five-image cap.

    The message is user facing and is also shown in the error banner.
    """


class ImageNotFound(SelectorError):
    """No pending image with the given id."""

    def __init__(self, image_id: str):
        self.image_id = image_id
        super().__init__(f"Image {image_id} not found")


class InvalidCrop(SelectorError):
    """The crop request cannot be rasterized."""

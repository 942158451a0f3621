"""Tests for the selector controller: banner handling and upload orchestration.

Uploads go either to the real receiver app through httpx.ASGITransport or
to an httpx.MockTransport that fails on demand.
"""
import logging

import httpx
import pytest

from uploader.main import app
from uploader.selector.controller import ImageSelectorController
from uploader.selector.dropzone import DroppedFile
from uploader.selector.errors import CapacityExceeded, ImageNotFound
from uploader.selector.state import ImageStatus
from uploader.selector.transfer import ProgressReader

RECEIVER_URL = "http://testserver/api/upload"


def dropped(*names: str) -> list:
    return [DroppedFile(name, "image/png", b"\x89PNG" + name.encode()) for name in names]


def make_controller(transport: httpx.AsyncBaseTransport = None) -> ImageSelectorController:
    return ImageSelectorController(
        upload_url=RECEIVER_URL,
        transport=transport or httpx.ASGITransport(app=app),
    )


def failing_for(*filenames: str) -> httpx.MockTransport:
    """Mock receiver answering 500 for the given filenames, 200 otherwise."""
    def handler(request: httpx.Request) -> httpx.Response:
        for name in filenames:
            if f'filename="{name}"'.encode() in request.content:
                return httpx.Response(500, json={"error": "Upload failed"})
        return httpx.Response(200, json={"message": "File uploaded successfully"})

    return httpx.MockTransport(handler)


class TestBanner:
    def test_add_over_capacity_sets_error(self):
        controller = make_controller()
        controller.add_images(dropped("a.png", "b.png", "c.png"))

        with pytest.raises(CapacityExceeded):
            controller.add_images(dropped("d.png", "e.png", "f.png"))

        assert controller.state.error == "You can only upload up to 5 images."
        assert len(controller.state.images) == 3

    def test_select_over_capacity_sets_error(self):
        controller = make_controller()
        controller.settings.max_images = 6
        controller.add_images(dropped(*[f"{i}.png" for i in range(6)]))
        ids = [i.id for i in controller.state.images]
        for image_id in ids[:5]:
            controller.toggle_select(image_id)

        with pytest.raises(CapacityExceeded):
            controller.toggle_select(ids[5])

        assert controller.state.error == "You have reached the limit of 5 images."
        assert controller.state.selected == tuple(ids[:5])

    def test_dismiss_error(self):
        controller = make_controller()
        controller.add_images(dropped(*[f"{i}.png" for i in range(5)]))
        with pytest.raises(CapacityExceeded):
            controller.add_images(dropped("x.png"))

        assert controller.dismiss_error().error == ""

    def test_drop_filters_then_adds(self):
        controller = make_controller()
        state, rejected = controller.drop(
            [
                DroppedFile("ok.jpg", "image/jpeg", b"jpg"),
                DroppedFile("doc.pdf", "application/pdf", b"%PDF"),
            ]
        )
        assert [i.filename for i in state.images] == ["ok.jpg"]
        assert [r.file.filename for r in rejected] == ["doc.pdf"]

    def test_unknown_image(self):
        with pytest.raises(ImageNotFound):
            make_controller().delete_image("nope")

    def test_transitions_logged(self, caplog):
        controller = make_controller()
        controller.add_images(dropped("a.png"))
        image_id = controller.state.images[0].id

        with caplog.at_level(logging.DEBUG, logger="uploader.selector.controller"):
            controller.cancel()
            controller.dismiss_error()
            controller.begin_crop(image_id)
            controller.end_crop()

        messages = [r.getMessage() for r in caplog.records]
        assert "[Selector] Selection cleared" in messages
        assert "[Selector] Error dismissed" in messages
        assert f"[Selector] Cropping image {image_id}" in messages
        assert "[Selector] Crop workspace closed" in messages


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_selected_to_receiver(self, upload_dir):
        controller = make_controller()
        controller.add_images(dropped("a.png", "b.png", "c.png"))
        a, b, c = (i.id for i in controller.state.images)
        controller.toggle_select(a)
        controller.toggle_select(c)

        results = await controller.upload()

        assert [r.image_id for r in results] == [a, c]
        assert all(r.ok for r in results)
        state = controller.state
        assert state.get(a).status == ImageStatus.UPLOADED
        assert state.get(c).status == ImageStatus.UPLOADED
        assert state.get(b).status == ImageStatus.PENDING
        assert state.progress == {a: 100.0, c: 100.0}
        assert state.error == ""
        assert len(list(upload_dir.iterdir())) == 2

    @pytest.mark.asyncio
    async def test_upload_keeps_selection(self, upload_dir):
        controller = make_controller()
        controller.add_images(dropped("a.png"))
        controller.toggle_select(controller.state.images[0].id)

        await controller.upload()
        assert len(controller.state.selected) == 1

    @pytest.mark.asyncio
    async def test_empty_selection_is_noop(self):
        controller = make_controller(failing_for())
        controller.add_images(dropped("a.png"))
        assert await controller.upload() == []

    @pytest.mark.asyncio
    async def test_partial_failure_attributed_per_image(self):
        controller = make_controller(failing_for("bad.png"))
        controller.add_images(dropped("good.png", "bad.png"))
        good, bad = (i.id for i in controller.state.images)
        controller.toggle_select(good)
        controller.toggle_select(bad)

        results = {r.image_id: r for r in await controller.upload()}

        assert results[good].ok
        assert not results[bad].ok
        assert "500" in results[bad].error
        assert controller.state.get(good).status == ImageStatus.UPLOADED
        assert controller.state.get(bad).status == ImageStatus.PENDING
        assert controller.state.error.startswith("Upload failed. Please try again.")
        assert "bad.png" in controller.state.error
        assert "good.png" not in controller.state.error

    @pytest.mark.asyncio
    async def test_transport_error_is_a_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        controller = make_controller(httpx.MockTransport(handler))
        controller.add_images(dropped("a.png"))
        image_id = controller.state.images[0].id
        controller.toggle_select(image_id)

        (result,) = await controller.upload()

        assert not result.ok
        assert "connection refused" in result.error
        assert controller.state.get(image_id).status == ImageStatus.PENDING

    @pytest.mark.asyncio
    async def test_invalid_url_is_a_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        controller = make_controller(httpx.MockTransport(handler))
        controller.add_images(dropped("a.png", "b.png"))
        for image in controller.state.images:
            controller.toggle_select(image.id)

        results = await controller.upload()

        assert len(results) == 2
        assert not any(r.ok for r in results)
        assert all(i.status == ImageStatus.PENDING for i in controller.state.images)
        assert "a.png, b.png" in controller.state.error

    @pytest.mark.asyncio
    async def test_failed_image_can_be_retried(self):
        outcomes = iter([500, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(next(outcomes))

        controller = make_controller(httpx.MockTransport(handler))
        controller.add_images(dropped("a.png"))
        image_id = controller.state.images[0].id
        controller.toggle_select(image_id)

        (first,) = await controller.upload()
        (second,) = await controller.upload()

        assert not first.ok
        assert second.ok
        assert controller.state.get(image_id).status == ImageStatus.UPLOADED

    @pytest.mark.asyncio
    async def test_request_carries_image_field(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        controller = make_controller(httpx.MockTransport(handler))
        controller.add_images([DroppedFile("cat.jpg", "image/jpeg", b"JPEGDATA")])
        controller.toggle_select(controller.state.images[0].id)
        await controller.upload()

        (request,) = seen
        assert request.method == "POST"
        assert str(request.url) == RECEIVER_URL
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'name="image"; filename="cat.jpg"' in request.content
        assert b"JPEGDATA" in request.content

    @pytest.mark.asyncio
    async def test_progress_recorded_before_response(self):
        observed = {}

        controller = None

        def handler(request: httpx.Request) -> httpx.Response:
            # the body has been streamed by the time the handler runs
            observed.update(controller.state.progress)
            return httpx.Response(500)

        controller = make_controller(httpx.MockTransport(handler))
        controller.add_images([DroppedFile("big.png", "image/png", b"x" * 200_000)])
        image_id = controller.state.images[0].id
        controller.toggle_select(image_id)

        await controller.upload()

        assert observed[image_id] == 100.0
        assert controller.state.get(image_id).status == ImageStatus.PENDING


class TestProgressReader:
    def test_reports_each_chunk(self):
        ticks = []
        reader = ProgressReader(b"x" * 250, lambda sent, total: ticks.append((sent, total)))

        while reader.read(100):
            pass

        assert ticks == [(100, 250), (200, 250), (250, 250)]

    def test_empty_payload_reports_nothing(self):
        ticks = []
        reader = ProgressReader(b"", lambda sent, total: ticks.append(sent))
        assert reader.read() == b""
        assert ticks == []

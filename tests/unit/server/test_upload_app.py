"""Tests for the HTTP application."""

import asyncio
import os
import time
import warnings
from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio
from aiohttp import FormData

from cliprelay import __version__
from cliprelay.exceptions import PublishError
from cliprelay.server import ServerLifecycle, create_app
from cliprelay.server.app import REQUEST_ID_HEADER
from cliprelay.server.middleware import CORS_HEADERS
from cliprelay.workflow import RequestOrchestrator

DESTINATION = "https://storage.example.com/upload/abc123?signature=xyz"


def upload_form(video: bytes | None = b"original video", **fields: str) -> FormData:
    data = FormData()
    for name, value in fields.items():
        data.add_field(name, value)
    if video is not None:
        data.add_field(
            "video", video, filename="../My Clip.mp4", content_type="video/mp4"
        )
    return data


@pytest.fixture
def lifecycle() -> ServerLifecycle:
    return ServerLifecycle(shutdown_timeout=5.0)


@pytest_asyncio.fixture
async def client(aiohttp_client, config, orchestrator, lifecycle):
    app = create_app(config, orchestrator=orchestrator, lifecycle=lifecycle)
    return await aiohttp_client(app)


class TestBasicRoutes:
    async def test_root(self, client):
        resp = await client.get("/")

        assert resp.status == 200
        assert await resp.json() == {"status": "ok"}
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    async def test_health(self, client):
        resp = await client.get("/health")

        assert resp.status == 200
        body = await resp.json()
        assert body["status"] == "healthy"
        assert body["version"] == __version__
        assert body["shutting_down"] is False
        assert body["uptime_seconds"] >= 0

    async def test_health_while_shutting_down(self, client, lifecycle):
        lifecycle.initiate_shutdown()

        resp = await client.get("/health")

        assert resp.status == 503
        assert (await resp.json())["status"] == "unhealthy"


class TestCors:
    @pytest.mark.parametrize("path", ["/process-upload", "/", "/anything"])
    async def test_preflight_is_no_content(self, client, path):
        resp = await client.options(path)

        assert resp.status == 204
        for name, value in CORS_HEADERS.items():
            assert resp.headers[name] == value

    async def test_not_found_carries_cors_headers(self, client):
        resp = await client.get("/missing")

        assert resp.status == 404
        assert resp.headers["Access-Control-Allow-Origin"] == "*"


class TestProcessUpload:
    async def test_success(self, client, parts, scratch_dir):
        resp = await client.post(
            "/process-upload", data=upload_form(destinationUploadUrl=DESTINATION)
        )

        assert resp.status == 200
        assert await resp.json() == {"status": "success", "asset_id": "abc123"}
        assert len(resp.headers[REQUEST_ID_HEADER]) == 8
        [(path, body, url)] = parts.publisher.published
        assert body == b"original video"
        assert path.name.endswith("-My_Clip.mp4")
        assert url == DESTINATION
        assert list(scratch_dir.iterdir()) == []

    async def test_percent_encoded_filename_is_decoded(self, client, parts):
        boundary = "cliprelayboundary"
        body = (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="destinationUploadUrl"\r\n\r\n'
            f"{DESTINATION}\r\n"
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="video"; '
            'filename="..%2F..%2Fetc%2FMy%20Clip.mp4"\r\n'
            "Content-Type: video/mp4\r\n\r\n"
            "clip bytes\r\n"
            f"--{boundary}--\r\n"
        ).encode()

        resp = await client.post(
            "/process-upload",
            data=body,
            headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
        )

        assert resp.status == 200
        [(path, content, _)] = parts.publisher.published
        assert content == b"clip bytes"
        assert path.name.endswith("-My_Clip.mp4")
        assert "%" not in path.name

    async def test_upload_is_written_in_worker_threads(self, client, parts):
        with patch(
            "cliprelay.server.uploads.asyncio.to_thread", wraps=asyncio.to_thread
        ) as to_thread:
            resp = await client.post(
                "/process-upload", data=upload_form(destinationUploadUrl=DESTINATION)
            )

        assert resp.status == 200
        offloaded = [
            getattr(call.args[0], "__name__", "") for call in to_thread.call_args_list
        ]
        assert "write" in offloaded
        assert "close" in offloaded

    async def test_fields_after_file_part(self, client, parts):
        data = FormData()
        data.add_field("video", b"v", filename="clip.mp4", content_type="video/mp4")
        data.add_field("facingMode", "user")
        data.add_field("destinationUploadUrl", DESTINATION)

        resp = await client.post("/process-upload", data=data)

        assert resp.status == 200
        [plan] = parts.executor.plans
        assert plan.kind.value == "mirror_only"

    async def test_legacy_destination_field(self, client):
        resp = await client.post(
            "/process-upload", data=upload_form(muxUploadUrl=DESTINATION)
        )

        assert resp.status == 200

    async def test_missing_video(self, client):
        resp = await client.post(
            "/process-upload",
            data=upload_form(video=None, destinationUploadUrl=DESTINATION),
        )

        assert resp.status == 400
        assert await resp.json() == {
            "error": "missing video",
            "code": "MISSING_PARAMETER",
            "details": {"parameter": "video"},
        }
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    async def test_non_multipart_body(self, client):
        resp = await client.post("/process-upload", json={"video": "nope"})

        assert resp.status == 400
        assert (await resp.json())["error"] == "missing video"

    async def test_missing_destination(self, client, scratch_dir):
        resp = await client.post("/process-upload", data=upload_form())

        assert resp.status == 400
        assert (await resp.json())["error"] == "missing destinationUploadUrl"
        assert list(scratch_dir.iterdir()) == []

    async def test_invalid_audio_mode(self, client):
        resp = await client.post(
            "/process-upload",
            data=upload_form(audioMode="loud", destinationUploadUrl=DESTINATION),
        )

        assert resp.status == 400
        assert await resp.json() == {
            "error": "invalid audioMode",
            "code": "INVALID_PARAMETER",
            "details": {"parameter": "audioMode"},
        }

    async def test_music_mode_without_url(self, client, parts):
        resp = await client.post(
            "/process-upload",
            data=upload_form(audioMode="music", destinationUploadUrl=DESTINATION),
        )

        assert resp.status == 400
        assert (await resp.json())["error"] == "missing musicUrl"
        assert parts.fetcher.urls == []

    async def test_publish_failure_is_500(self, client, parts, scratch_dir):
        parts.publisher.error = PublishError("Upload failed: 403", 403)

        resp = await client.post(
            "/process-upload", data=upload_form(destinationUploadUrl=DESTINATION)
        )

        assert resp.status == 500
        assert await resp.json() == {
            "error": "Upload failed: 403",
            "code": "PUBLISH_FAILED",
        }
        assert list(scratch_dir.iterdir()) == []

    async def test_unexpected_error_is_500(self, client, parts):
        parts.executor.error = RuntimeError("worker died")

        resp = await client.post(
            "/process-upload",
            data=upload_form(facingMode="user", destinationUploadUrl=DESTINATION),
        )

        assert resp.status == 500
        assert (await resp.json())["code"] == "INTERNAL_ERROR"

    async def test_rejected_while_shutting_down(self, client, lifecycle):
        lifecycle.initiate_shutdown()

        resp = await client.post(
            "/process-upload", data=upload_form(destinationUploadUrl=DESTINATION)
        )

        assert resp.status == 503
        assert (await resp.json())["code"] == "SHUTTING_DOWN"


class TestUploadLimit:
    @pytest_asyncio.fixture
    async def small_client(self, aiohttp_client, config, orchestrator):
        small = replace(config, server=replace(config.server, max_upload_bytes=128))
        return await aiohttp_client(create_app(small, orchestrator=orchestrator))

    async def test_oversized_video(self, small_client, parts, scratch_dir):
        resp = await small_client.post(
            "/process-upload",
            data=upload_form(video=b"x" * 512, destinationUploadUrl=DESTINATION),
        )

        assert resp.status == 413
        body = await resp.json()
        assert body["code"] == "PAYLOAD_TOO_LARGE"
        assert body["details"] == {"parameter": "video"}
        assert parts.publisher.published == []
        assert list(scratch_dir.iterdir()) == []

    async def test_oversized_text_field(self, small_client, parts, scratch_dir):
        long_url = DESTINATION + "&pad=" + "p" * 300

        resp = await small_client.post(
            "/process-upload",
            data=upload_form(video=b"tiny clip!", destinationUploadUrl=long_url),
        )

        assert resp.status == 413
        body = await resp.json()
        assert body["code"] == "PAYLOAD_TOO_LARGE"
        assert body["details"] == {"parameter": "destinationUploadUrl"}
        assert parts.publisher.published == []
        assert list(scratch_dir.iterdir()) == []


class TestStartup:
    async def test_default_orchestrator_and_client(self, aiohttp_client, config):
        app = create_app(config)
        await aiohttp_client(app)

        assert isinstance(app["orchestrator"], RequestOrchestrator)
        assert isinstance(app["http_client"], httpx.AsyncClient)

    async def test_cleanup_closes_client_without_mutating_app(
        self, aiohttp_client, config
    ):
        app = create_app(config)
        client = await aiohttp_client(app)

        with warnings.catch_warnings():
            warnings.filterwarnings(
                "error", message="Changing state", category=DeprecationWarning
            )
            await client.close()

        assert app["http_client"].is_closed

    async def test_orphaned_scratch_files_are_swept(
        self, aiohttp_client, config, orchestrator, scratch_dir: Path
    ):
        scratch_dir.mkdir(parents=True)
        stale = scratch_dir / "upload-1-abcd-clip.mp4"
        stale.write_bytes(b"old")
        two_hours_ago = time.time() - 7200
        os.utime(stale, (two_hours_ago, two_hours_ago))
        fresh = scratch_dir / "output-2-ef01.mp4"
        fresh.write_bytes(b"new")

        await aiohttp_client(create_app(config, orchestrator=orchestrator))

        assert not stale.exists()
        assert fresh.exists()

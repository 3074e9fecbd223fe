"""
HTTP tests for the frame endpoints.

The app runs against fake ffmpeg/ffprobe binaries through dependency
overrides; nothing here needs a real ffmpeg installation.
"""

import base64
import os

import pytest
from fastapi.testclient import TestClient

from video_thumbnail.api import dependencies
from video_thumbnail.api.dependencies import reset_frame_engine
from video_thumbnail.config.settings import Settings, get_settings
from video_thumbnail.core.frames.models import BinaryNotFoundError, ExtractedFrame
from video_thumbnail.main import create_app

pytestmark = pytest.mark.skipif(os.name != "posix", reason="fake binaries are shebang scripts")


@pytest.fixture
def fake_ffmpeg(make_fake_ffmpeg):
    return make_fake_ffmpeg(duration=10.0)


@pytest.fixture
def settings(fake_ffmpeg, video_file, frames_dir):
    return Settings(
        ffmpeg_path=str(fake_ffmpeg.path),
        media_root=str(video_file.parent),
        temp_dir=str(frames_dir),
        poll_interval=0.01,
        frames_count=5,
        default_frame_percent=10.0,
    )


@pytest.fixture
def client(settings):
    reset_frame_engine()
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    reset_frame_engine()


# ---------------------------------------------------------------------------
# Health Tests
# ---------------------------------------------------------------------------

class TestHealth:
    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["details"]["ffmpeg_configured"] is True

    def test_ready_with_working_ffmpeg(self, client, fake_ffmpeg):
        response = client.get("/health/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["checks"][0]["name"] == "ffmpeg"
        assert str(fake_ffmpeg.path) in body["checks"][0]["detail"]

    def test_ready_reports_ffprobe_companion(self, client, make_fake_ffprobe):
        ffprobe = make_fake_ffprobe()

        checks = client.get("/health/ready").json()["checks"]

        assert checks[1] == {
            "name": "ffprobe",
            "status": "ok",
            "detail": str(ffprobe.path),
            "error": None,
        }


# ---------------------------------------------------------------------------
# Frame Endpoint Tests
# ---------------------------------------------------------------------------

class TestDuration:
    def test_duration_from_banner(self, client):
        response = client.get("/api/v1/frames/duration", params={"video_path": "clip.mp4"})

        assert response.status_code == 200
        assert response.json() == {
            "duration_seconds": 10.0,
            "duration_formatted": "00:00:10.000",
        }

    def test_non_video_is_unprocessable(self, make_fake_ffmpeg, settings, client):
        make_fake_ffmpeg(is_video=False)

        response = client.get("/api/v1/frames/duration", params={"video_path": "clip.mp4"})

        assert response.status_code == 422

    def test_paths_outside_media_root_are_not_found(self, client, tmp_path):
        (tmp_path / "secret.mp4").write_bytes(b"\x00" * 10)

        for path in ("../secret.mp4", str(tmp_path / "secret.mp4"), "missing.mp4"):
            response = client.get("/api/v1/frames/duration", params={"video_path": path})
            assert response.status_code == 404, path

    def test_missing_ffmpeg_is_service_unavailable(self, client, monkeypatch):
        def no_ffmpeg(settings):
            raise BinaryNotFoundError("No working ffmpeg executable found.")

        reset_frame_engine()
        monkeypatch.setattr(dependencies, "create_frame_engine", no_ffmpeg)

        response = client.get("/api/v1/frames/duration", params={"video_path": "clip.mp4"})

        assert response.status_code == 503


class TestSample:
    def test_returns_inlined_frames(self, client, frames_dir):
        response = client.get(
            "/api/v1/frames/sample", params={"video_path": "clip.mp4", "count": 3}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["requested"] == 3
        assert [f["time_formatted"] for f in body["frames"]] == [
            "00:00:00.100", "00:00:05.000", "00:00:09.900",
        ]
        image = body["frames"][0]["image"]
        assert image.startswith("data:image/jpeg;base64,")
        assert base64.b64decode(image.split(",", 1)[1])[:2] == b"\xff\xd8"
        assert os.listdir(frames_dir) == []

    def test_count_is_clamped(self, client):
        body = client.get(
            "/api/v1/frames/sample", params={"video_path": "clip.mp4", "count": 50}
        ).json()

        assert body["requested"] == 20
        assert len(body["frames"]) == 20

    def test_default_count_from_settings(self, client):
        body = client.get("/api/v1/frames/sample", params={"video_path": "clip.mp4"}).json()

        assert body["requested"] == 5

    def test_unreadable_frame_leaves_no_temp_files(self, client, frames_dir, monkeypatch):
        """If inlining one frame fails, the rest of the batch is still deleted."""
        original_read = ExtractedFrame.read_bytes

        def flaky_read(frame):
            if frame.time > 4:
                raise OSError("read error")
            return original_read(frame)

        monkeypatch.setattr(ExtractedFrame, "read_bytes", flaky_read)
        failing_client = TestClient(client.app, raise_server_exceptions=False)

        response = failing_client.get(
            "/api/v1/frames/sample", params={"video_path": "clip.mp4", "count": 5}
        )

        assert response.status_code == 500
        assert os.listdir(frames_dir) == []


class TestExtract:
    def test_returns_jpeg(self, client, frames_dir):
        response = client.get(
            "/api/v1/frames/extract", params={"video_path": "clip.mp4", "position": 2}
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["x-frame-time"] == "00:00:02.000"
        assert response.content[:2] == b"\xff\xd8"
        assert os.listdir(frames_dir) == []

    def test_position_past_end_is_unprocessable(self, client, frames_dir):
        response = client.get(
            "/api/v1/frames/extract", params={"video_path": "clip.mp4", "position": 100}
        )

        assert response.status_code == 422
        assert os.listdir(frames_dir) == []

    def test_negative_position_is_rejected(self, client):
        response = client.get(
            "/api/v1/frames/extract", params={"video_path": "clip.mp4", "position": -1}
        )

        assert response.status_code == 422


class TestThumbnail:
    def test_default_percent(self, client):
        body = client.get("/api/v1/frames/thumbnail", params={"video_path": "clip.mp4"}).json()

        assert body["video_duration"] == 10.0
        assert body["thumbnail_frame_time"] == pytest.approx(1.0)
        assert body["thumbnail_frame_percentage"] == pytest.approx(10.0)
        assert body["frame"]["image"].startswith("data:image/jpeg;base64,")

    def test_explicit_percent(self, client):
        body = client.get(
            "/api/v1/frames/thumbnail", params={"video_path": "clip.mp4", "percent": 50}
        ).json()

        assert body["thumbnail_frame_time"] == pytest.approx(5.0)

    def test_percent_out_of_range(self, client):
        response = client.get(
            "/api/v1/frames/thumbnail", params={"video_path": "clip.mp4", "percent": 101}
        )

        assert response.status_code == 422

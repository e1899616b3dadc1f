"""
Tests for live streams: viewing, admin lifecycle, compilations and status transitions.
"""

import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from throwback.models.user import User
from throwback.models.livestream import LiveStream, CompilationVideo
from throwback.models.enums import StreamStatus, CompilationType
from throwback.services.livestream_service import (
    StreamStatusTasks,
    compilation_progress,
    normalize_duration
)


def future(**delta) -> str:
    return (datetime.utcnow() + timedelta(**delta)).isoformat()


def compilation_stream(durations, loop=True, started_ago=0) -> LiveStream:
    start = datetime.utcnow() - timedelta(seconds=started_ago)
    stream = LiveStream(
        title="Compilation",
        scheduled_start=start,
        scheduled_end=start + timedelta(hours=2),
        actual_start=start,
        status=StreamStatus.LIVE.value,
        compilation_type=CompilationType.VIDEO_COLLECTION.value,
        loop=loop
    )
    stream.compilation_videos = [
        CompilationVideo(source_id=f"v{i}", source_type="YOUTUBE", title=f"Video {i}", duration=duration, position=i)
        for i, duration in enumerate(durations)
    ]
    return stream


@pytest.mark.unit
@pytest.mark.livestream
class TestCompilationPlayback:
    """Test compilation position and duration helpers."""

    def test_progress_within_first_pass(self):
        """Test the playing video and offset are found from elapsed time."""
        stream = compilation_stream([60, 120, 30])
        now = stream.actual_start + timedelta(seconds=90)

        progress = compilation_progress(stream, now)

        assert progress["index"] == 1
        assert progress["offset"] == 30
        assert progress["remaining"] == 90
        assert progress["loop_count"] == 0

    def test_progress_wraps_when_looping(self):
        """Test looping compilations restart from the first video."""
        stream = compilation_stream([60, 120, 30])
        now = stream.actual_start + timedelta(seconds=250)

        progress = compilation_progress(stream, now)

        assert progress["index"] == 0
        assert progress["offset"] == 40
        assert progress["loop_count"] == 1

    def test_progress_stays_on_last_video_without_loop(self):
        """Test non-looping compilations stop on the last video."""
        stream = compilation_stream([60, 120, 30], loop=False)
        now = stream.actual_start + timedelta(seconds=1000)

        progress = compilation_progress(stream, now)

        assert progress["index"] == 2
        assert progress["remaining"] == 0

    def test_missing_duration_uses_slot(self):
        """Test videos without a duration take a default slot."""
        stream = compilation_stream([None, 60])
        now = stream.actual_start + timedelta(seconds=250)

        assert compilation_progress(stream, now)["index"] == 1

    def test_progress_without_videos(self):
        """Test empty compilations have no progress."""
        assert compilation_progress(compilation_stream([])) is None

    def test_normalize_duration(self):
        """Test durations are parsed and short ones replaced by the source fallback."""
        assert normalize_duration("3:30", "YOUTUBE") == 210
        assert normalize_duration("1:00:00", "VIMEO") == 3600
        assert normalize_duration(10, "YOUTUBE") == 240
        assert normalize_duration(None, "VIMEO") == 300
        assert normalize_duration("abc", "DAILYMOTION") == 180


@pytest.mark.unit
@pytest.mark.livestream
class TestStreamStatusTransitions:
    """Test automatic start and end of streams."""

    def _stream(self, db: Session, **fields) -> LiveStream:
        stream = LiveStream(title=fields.pop("title", "Stream"), **fields)
        db.add(stream)
        db.commit()
        db.refresh(stream)
        return stream

    def test_due_stream_goes_live(self, test_db: Session):
        """Test scheduled streams start once their start time passes."""
        now = datetime.utcnow()
        stream = self._stream(
            test_db,
            scheduled_start=now - timedelta(minutes=1),
            scheduled_end=now + timedelta(hours=1),
            status=StreamStatus.SCHEDULED.value
        )
        tasks = StreamStatusTasks()

        result = tasks.run_transitions(test_db, now)

        assert result == {"started": 1, "ended": 0}
        test_db.refresh(stream)
        assert stream.status == StreamStatus.LIVE.value
        assert stream.actual_start == now

    def test_overdue_stream_completed_after_grace(self, test_db: Session):
        """Test live streams end once the grace period is over and get a recording id."""
        now = datetime.utcnow()
        stream = self._stream(
            test_db,
            scheduled_start=now - timedelta(hours=1),
            scheduled_end=now - timedelta(minutes=5),
            actual_start=now - timedelta(hours=1),
            status=StreamStatus.LIVE.value
        )
        tasks = StreamStatusTasks()

        result = tasks.run_transitions(test_db, now)

        assert result["ended"] == 1
        test_db.refresh(stream)
        assert stream.status == StreamStatus.COMPLETED.value
        assert stream.recorded_video_id.startswith("rec_")

    def test_within_grace_keeps_running(self, test_db: Session):
        """Test streams just past their end are left live."""
        now = datetime.utcnow()
        self._stream(
            test_db,
            scheduled_start=now - timedelta(hours=1),
            scheduled_end=now - timedelta(seconds=30),
            status=StreamStatus.LIVE.value
        )

        assert StreamStatusTasks().run_transitions(test_db, now)["ended"] == 0

    def test_looping_compilation_force_ended_later(self, test_db: Session):
        """Test looping compilations run until the force-end delay."""
        now = datetime.utcnow()
        stream = self._stream(
            test_db,
            scheduled_start=now - timedelta(hours=2),
            scheduled_end=now - timedelta(minutes=10),
            status=StreamStatus.LIVE.value,
            compilation_type=CompilationType.VIDEO_COLLECTION.value,
            loop=True
        )
        tasks = StreamStatusTasks()

        assert tasks.run_transitions(test_db, now)["ended"] == 0
        assert tasks.run_transitions(test_db, now + timedelta(hours=1))["ended"] == 1
        test_db.refresh(stream)
        assert stream.status == StreamStatus.COMPLETED.value

    def test_overdue_scheduled_stream_untouched(self, test_db: Session):
        """Test scheduled streams whose window has passed keep their status."""
        now = datetime.utcnow()
        stream = self._stream(
            test_db,
            scheduled_start=now - timedelta(hours=3),
            scheduled_end=now - timedelta(hours=1),
            status=StreamStatus.SCHEDULED.value
        )

        StreamStatusTasks().run_transitions(test_db, now)

        test_db.refresh(stream)
        assert stream.status == StreamStatus.SCHEDULED.value

    def test_status_counters(self, test_db: Session):
        """Test run statistics are tracked."""
        tasks = StreamStatusTasks()
        tasks.run_transitions(test_db)

        status = tasks.get_status()

        assert status["runs"] == 1
        assert status["is_running"] is False
        assert status["last_run"] is not None
        assert status["grace_seconds"] == 120


@pytest.mark.unit
@pytest.mark.livestream
class TestStreamViewing:
    """Test the viewer endpoints."""

    def test_active_streams(self, client: TestClient, live_stream: LiveStream, scheduled_stream: LiveStream):
        """Test only live streams are listed as active."""
        response = client.get("/api/livestreams")

        assert response.status_code == 200
        assert [item["title"] for item in response.json()] == ["Friday Night Disco"]

    def test_viewer_response_hides_stream_key(self, client: TestClient, live_stream: LiveStream):
        """Test viewers never see broadcast settings."""
        data = client.get(f"/api/livestreams/{live_stream.id}").json()

        assert "stream_key" not in data
        assert data["status"] == "LIVE"

    def test_scheduled_streams(self, client: TestClient, scheduled_stream: LiveStream):
        """Test upcoming streams are listed."""
        response = client.get("/api/livestreams/scheduled")

        assert [item["title"] for item in response.json()] == ["Synthwave Sunday"]

    def test_due_stream_started_on_listing(self, client: TestClient, test_db: Session, admin_user: User):
        """Test listings apply due transitions first."""
        now = datetime.utcnow()
        test_db.add(LiveStream(
            title="Late Start",
            scheduled_start=now - timedelta(minutes=2),
            scheduled_end=now + timedelta(hours=1),
            status=StreamStatus.SCHEDULED.value,
            author_id=admin_user.id
        ))
        test_db.commit()

        response = client.get("/api/livestreams")

        assert [item["title"] for item in response.json()] == ["Late Start"]

    def test_private_stream_hidden(
        self, client: TestClient, test_db: Session, live_stream: LiveStream,
        auth_headers: dict, admin_headers: dict
    ):
        """Test private streams are only visible to their author and admins."""
        live_stream.is_public = False
        test_db.commit()

        assert client.get(f"/api/livestreams/{live_stream.id}", headers=auth_headers).status_code == 403
        assert client.get(f"/api/livestreams/{live_stream.id}", headers=admin_headers).status_code == 200
        assert client.get("/api/livestreams").json() == []

    def test_unique_viewers(self, client: TestClient, live_stream: LiveStream, auth_headers: dict):
        """Test signed-in viewers are counted once."""
        client.get(f"/api/livestreams/{live_stream.id}", headers=auth_headers)
        response = client.get(f"/api/livestreams/{live_stream.id}", headers=auth_headers)

        assert response.json()["unique_viewers"] == 1

    def test_unknown_stream(self, client: TestClient):
        """Test unknown streams return 404."""
        response = client.get("/api/livestreams/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404

    def test_like_toggle(self, client: TestClient, live_stream: LiveStream, auth_headers: dict):
        """Test likes toggle per user."""
        response = client.post(f"/api/livestreams/{live_stream.id}/like", headers=auth_headers)
        assert response.json()["active"] is True
        assert response.json()["likes"] == 1

        data = client.get(f"/api/livestreams/{live_stream.id}", headers=auth_headers).json()
        assert data["liked"] is True

        response = client.post(f"/api/livestreams/{live_stream.id}/like", headers=auth_headers)
        assert response.json()["likes"] == 0

    def test_like_requires_live(self, client: TestClient, scheduled_stream: LiveStream, auth_headers: dict):
        """Test only live streams can be liked."""
        response = client.post(f"/api/livestreams/{scheduled_stream.id}/like", headers=auth_headers)

        assert response.status_code == 400


@pytest.mark.unit
@pytest.mark.livestream
@pytest.mark.admin
class TestStreamAdmin:
    """Test stream management by admins."""

    def test_create_scheduled(self, client: TestClient, admin_headers: dict):
        """Test a future stream is scheduled with an ingest URL."""
        response = client.post(
            "/api/admin/livestreams",
            headers=admin_headers,
            json={
                "title": "Eighties Night",
                "scheduled_start": future(days=1),
                "scheduled_end": future(days=1, hours=2),
                "tags": ["80s", " 80s ", ""]
            }
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "SCHEDULED"
        assert data["stream_key"].startswith("live_")
        assert data["stream_url"] == f"rtmp://a.rtmp.youtube.com/live2/{data['stream_key']}"
        assert data["tags"] == ["80s"]
        assert data["scheduled_duration"] == 120

    def test_create_start_now_with_compilation(self, client: TestClient, admin_headers: dict):
        """Test compilations started immediately report their progress."""
        response = client.post(
            "/api/admin/livestreams",
            headers=admin_headers,
            json={
                "title": "Nonstop Hits",
                "scheduled_start": future(hours=1),
                "scheduled_end": future(hours=3),
                "start_now": True,
                "compilation_type": "VIDEO_COLLECTION",
                "compilation_videos": [
                    {"source_id": "abc", "source_type": "youtube", "title": "Take On Me", "duration": "3:45"},
                    {"source_id": "def", "source_type": "VIMEO", "title": "Running Up That Hill"}
                ]
            }
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "LIVE"
        assert [video["duration"] for video in data["compilation_videos"]] == [225, 300]
        assert data["total_compilation_duration"] == 525
        assert data["progress"]["index"] == 0
        assert data["progress"]["video"]["title"] == "Take On Me"

    def test_create_rejects_end_before_start(self, client: TestClient, admin_headers: dict):
        """Test the end must follow the start."""
        response = client.post(
            "/api/admin/livestreams",
            headers=admin_headers,
            json={"title": "Backwards", "scheduled_start": future(days=2), "scheduled_end": future(days=1)}
        )

        assert response.status_code == 400

    def test_create_recurring_needs_pattern(self, client: TestClient, admin_headers: dict):
        """Test recurring streams need a recurrence pattern."""
        response = client.post(
            "/api/admin/livestreams",
            headers=admin_headers,
            json={
                "title": "Weekly",
                "scheduled_start": future(days=1),
                "scheduled_end": future(days=1, hours=1),
                "is_recurring": True
            }
        )

        assert response.status_code == 422

    def test_create_requires_admin(self, client: TestClient, auth_headers: dict):
        """Test regular users cannot create streams."""
        response = client.post(
            "/api/admin/livestreams",
            headers=auth_headers,
            json={"title": "Mine", "scheduled_start": future(days=1), "scheduled_end": future(days=1, hours=1)}
        )

        assert response.status_code == 403

    def test_start_end_lifecycle(self, client: TestClient, scheduled_stream: LiveStream, admin_headers: dict):
        """Test starting then ending a stream."""
        response = client.put(f"/api/admin/livestreams/{scheduled_stream.id}/start", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "LIVE"
        assert response.json()["actual_start"] is not None

        response = client.put(f"/api/admin/livestreams/{scheduled_stream.id}/end", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert response.json()["recorded_video_id"].startswith("rec_")

    def test_cancel(self, client: TestClient, scheduled_stream: LiveStream, admin_headers: dict):
        """Test cancelling a scheduled stream."""
        response = client.put(f"/api/admin/livestreams/{scheduled_stream.id}/cancel", headers=admin_headers)

        assert response.json()["status"] == "CANCELLED"

    def test_update(self, client: TestClient, scheduled_stream: LiveStream, admin_headers: dict):
        """Test partial updates keep the schedule consistent."""
        response = client.put(
            f"/api/admin/livestreams/{scheduled_stream.id}",
            headers=admin_headers,
            json={"title": "Synthwave Saturday", "provider": "VIMEO"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Synthwave Saturday"
        assert data["stream_url"].startswith("rtmp://live.vimeo.com/app/")

    def test_update_rejects_inverted_schedule(self, client: TestClient, scheduled_stream: LiveStream, admin_headers: dict):
        """Test updates cannot move the end before the start."""
        response = client.put(
            f"/api/admin/livestreams/{scheduled_stream.id}",
            headers=admin_headers,
            json={"scheduled_end": future(hours=1)}
        )

        assert response.status_code == 400

    def test_delete(self, client: TestClient, scheduled_stream: LiveStream, admin_headers: dict, test_db: Session):
        """Test deleting a stream."""
        response = client.delete(f"/api/admin/livestreams/{scheduled_stream.id}", headers=admin_headers)

        assert response.status_code == 200
        assert test_db.query(LiveStream).count() == 0

    def test_admin_list_filters(
        self, client: TestClient, live_stream: LiveStream, scheduled_stream: LiveStream, admin_headers: dict
    ):
        """Test the admin list filters by status."""
        response = client.get("/api/admin/livestreams?status=SCHEDULED", headers=admin_headers)

        assert response.status_code == 200
        assert [item["title"] for item in response.json()["items"]] == ["Synthwave Sunday"]

    def test_stats(self, client: TestClient, live_stream: LiveStream, scheduled_stream: LiveStream, admin_headers: dict):
        """Test stream statistics."""
        data = client.get("/api/admin/livestreams/stats", headers=admin_headers).json()

        assert data["total"] == 2
        assert data["by_status"] == {"LIVE": 1, "SCHEDULED": 1}
        assert [stream["title"] for stream in data["upcoming"]] == ["Synthwave Sunday"]
        assert data["duration_stats"]["total_streams"] == 0

    def test_ban_and_unban(
        self, client: TestClient, live_stream: LiveStream, other_user: User, admin_headers: dict
    ):
        """Test banning is unique per stream and can be lifted."""
        url = f"/api/admin/livestreams/{live_stream.id}"
        body = {"user_id": str(other_user.id), "reason": "Spam"}

        assert client.post(f"{url}/ban-user", headers=admin_headers, json=body).status_code == 200
        assert client.post(f"{url}/ban-user", headers=admin_headers, json=body).status_code == 409

        response = client.post(f"{url}/unban-user", headers=admin_headers, json={"user_id": str(other_user.id)})
        assert response.status_code == 200

        response = client.post(f"{url}/unban-user", headers=admin_headers, json={"user_id": str(other_user.id)})
        assert response.status_code == 404

    def test_cannot_ban_self(self, client: TestClient, live_stream: LiveStream, admin_user: User, admin_headers: dict):
        """Test admins cannot ban themselves."""
        response = client.post(
            f"/api/admin/livestreams/{live_stream.id}/ban-user",
            headers=admin_headers,
            json={"user_id": str(admin_user.id)}
        )

        assert response.status_code == 400

    def test_task_status_and_cleanup(self, client: TestClient, admin_headers: dict):
        """Test the status task endpoints."""
        response = client.post("/api/admin/stream-tasks/cleanup", headers=admin_headers)

        assert response.status_code == 200
        assert set(response.json()) >= {"started", "ended", "status"}

        response = client.get("/api/admin/stream-tasks/status", headers=admin_headers)
        assert response.json()["runs"] >= 1

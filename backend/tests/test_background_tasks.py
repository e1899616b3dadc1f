"""
Tests for playlist analytics maintenance and the job scheduler.
"""

import pytest
from datetime import datetime
from unittest.mock import MagicMock, patch
from sqlalchemy.orm import Session

from throwback.models.user import User
from throwback.models.playlist import Playlist, PlaylistAnalytics
from throwback.models.activity import ActionType, LogAction
from throwback.models.enums import PlaylistVisibility
from throwback.services.playlist_analytics_service import (
    PlaylistAnalyticsTasks,
    compute_trending_score,
    window_starts,
)
from throwback.services import scheduler_service
from throwback.services.logging_service import app_metrics


def log_view(db: Session, playlist: Playlist, user_id=None):
    db.add(LogAction(
        action_type=ActionType.PLAYLIST_VIEWED,
        description="Viewed playlist",
        user_id=user_id,
        entity_type="playlist",
        entity_id=playlist.id
    ))
    db.commit()


@pytest.fixture
def tasks() -> PlaylistAnalyticsTasks:
    return PlaylistAnalyticsTasks()


@pytest.mark.unit
@pytest.mark.content
class TestPlaylistAnalytics:
    """Test analytics synchronisation, trending and resets."""

    def test_window_starts(self):
        """Test windows open at midnight, on Monday and on the first."""
        starts = window_starts(datetime(2024, 5, 16, 15, 30))

        assert starts["daily"] == datetime(2024, 5, 16)
        assert starts["weekly"] == datetime(2024, 5, 13)
        assert starts["monthly"] == datetime(2024, 5, 1)

    def test_trending_score(self):
        """Test the weighted trending score."""
        analytics = PlaylistAnalytics(views_total=10, views_daily=5, favorites_total=2, favorites_daily=1)

        assert compute_trending_score(analytics) == 6.0

    def test_sync_creates_analytics(self, tasks, test_db: Session, test_playlist: Playlist):
        """Test the first sync seeds every window with the counters."""
        test_playlist.play_count = 10
        test_playlist.favorite_count = 2
        test_db.commit()

        tasks.sync_playlist(test_db, test_playlist)
        test_db.commit()

        analytics = test_playlist.analytics
        assert analytics.views_total == 10
        assert analytics.views_daily == 10
        assert analytics.views_monthly == 10
        assert analytics.favorites_weekly == 2

    def test_sync_adds_growth(self, tasks, test_db: Session, test_playlist: Playlist):
        """Test growth since the previous sync lands in every window."""
        test_playlist.play_count = 10
        tasks.sync_playlist(test_db, test_playlist)
        test_db.commit()
        tasks.reset_window(test_db, "daily")
        test_db.refresh(test_playlist.analytics)

        test_playlist.play_count = 13
        tasks.sync_playlist(test_db, test_playlist)
        test_db.commit()

        analytics = test_playlist.analytics
        assert analytics.views_total == 13
        assert analytics.views_daily == 3
        assert analytics.views_weekly == 13

    def test_unique_viewers(
        self, tasks, test_db: Session, test_playlist: Playlist, test_user: User, other_user: User
    ):
        """Test unique viewers count signed-in users once."""
        log_view(test_db, test_playlist, test_user.id)
        log_view(test_db, test_playlist, test_user.id)
        log_view(test_db, test_playlist, other_user.id)
        log_view(test_db, test_playlist)

        analytics = tasks.sync_playlist(test_db, test_playlist)

        assert analytics.unique_viewers_total == 2
        assert analytics.unique_viewers_daily == 2

    def test_sync_analytics_status(self, tasks, test_db: Session, test_playlist: Playlist):
        """Test a full sync is reflected in the task status."""
        assert tasks.sync_analytics(test_db) == 1

        status = tasks.get_status()
        assert status["is_running"] is False
        assert status["playlists_synced"] == 1
        assert status["last_sync"] is not None
        assert status["recent_errors"] == []

    def test_trending_public_only(self, tasks, test_db: Session, test_playlist: Playlist, test_user: User):
        """Test private playlists keep no trending score."""
        hidden = Playlist(name="Secret", owner_id=test_user.id, visibility=PlaylistVisibility.PRIVATE.value)
        test_db.add(hidden)
        test_playlist.play_count = 10
        hidden.play_count = 10
        test_db.commit()
        tasks.sync_analytics(test_db)

        assert tasks.update_trending_scores(test_db) == 1

        test_db.refresh(test_playlist.analytics)
        test_db.refresh(hidden.analytics)
        assert test_playlist.analytics.trending_score == 7.0
        assert hidden.analytics.trending_score == 0.0
        assert tasks.get_status()["last_trending_update"] is not None

    def test_reset_window(self, tasks, test_db: Session, test_playlist: Playlist):
        """Test a reset only zeroes its own window."""
        test_playlist.play_count = 4
        tasks.sync_playlist(test_db, test_playlist)
        test_db.commit()

        assert tasks.reset_window(test_db, "weekly") == 1

        test_db.refresh(test_playlist.analytics)
        assert test_playlist.analytics.views_weekly == 0
        assert test_playlist.analytics.views_daily == 4
        assert tasks.get_status()["last_resets"]["weekly"] is not None

    def test_reset_unknown_window(self, tasks, test_db: Session):
        """Test unknown windows are refused."""
        with pytest.raises(ValueError):
            tasks.reset_window(test_db, "yearly")


@pytest.mark.unit
class TestScheduler:
    """Test job registration and execution."""

    def test_registered_jobs(self):
        """Test every recurring job is declared."""
        assert [job["id"] for job in scheduler_service.JOBS] == [
            "stream_status",
            "playlist_sync",
            "playlist_trending",
            "playlist_reset_daily",
            "playlist_reset_weekly",
            "playlist_reset_monthly",
            "cleanup",
        ]

    def test_status_when_stopped(self):
        """Test the status of a scheduler that never started."""
        assert scheduler_service.get_jobs_status() == {"running": False, "jobs": []}

    @patch("throwback.services.scheduler_service.SessionLocal")
    def test_run_job_success(self, mock_session_local):
        """Test a successful run returns its result and is counted."""
        before = app_metrics.get_metrics()["background_jobs"]["successful_runs"]

        result = scheduler_service._run_job("unit_ok", lambda db: "done")

        assert result == "done"
        assert app_metrics.get_metrics()["background_jobs"]["successful_runs"] == before + 1
        assert app_metrics.get_metrics()["background_jobs"]["by_job"]["unit_ok"]["success"] == 1
        mock_session_local.return_value.close.assert_called_once()

    @patch("throwback.services.scheduler_service.error_tracker")
    @patch("throwback.services.scheduler_service.SessionLocal")
    def test_run_job_failure(self, mock_session_local, mock_tracker):
        """Test a failing run is rolled back, reported and swallowed."""
        def broken(db):
            raise RuntimeError("boom")

        result = scheduler_service._run_job("unit_broken", broken)

        assert result is None
        session = mock_session_local.return_value
        session.rollback.assert_called_once()
        session.close.assert_called_once()
        mock_tracker.capture_exception.assert_called_once()
        assert app_metrics.get_metrics()["background_jobs"]["by_job"]["unit_broken"]["failed"] == 1

    def test_start_and_shutdown(self):
        """Test the scheduler runs every job until shut down."""
        scheduler_service.start_scheduler(persistent=False)
        try:
            status = scheduler_service.get_jobs_status()
            assert status["running"] is True
            assert {job["id"] for job in status["jobs"]} == {job["id"] for job in scheduler_service.JOBS}
            assert all(job["next_run_time"] for job in status["jobs"])
        finally:
            scheduler_service.shutdown_scheduler()

        assert scheduler_service.get_scheduler() is None

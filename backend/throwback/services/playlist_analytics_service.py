"""Playlist analytics: counter synchronisation, trending scores and window resets."""

from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from throwback.models.playlist import Playlist, PlaylistAnalytics
from throwback.models.activity import ActionType, LogAction
from throwback.models.enums import PlaylistVisibility
from throwback.services.logging_service import app_logger
from throwback.services.error_tracking import error_tracker

WINDOWS = ("daily", "weekly", "monthly")
MAX_RECENT_ERRORS = 10

# Weights of the trending score
TRENDING_WEIGHTS = {
    "views_total": 0.4,
    "views_daily": 0.3,
    "favorites_total": 0.2,
    "favorites_daily": 0.1,
}


def window_starts(now: datetime) -> Dict[str, datetime]:
    """Start of the current day, ISO week (Monday) and month."""
    day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return {
        "daily": day,
        "weekly": day - timedelta(days=day.weekday()),
        "monthly": day.replace(day=1),
    }


def compute_trending_score(analytics: PlaylistAnalytics) -> float:
    return round(sum(getattr(analytics, field) * weight for field, weight in TRENDING_WEIGHTS.items()), 2)


class PlaylistAnalyticsTasks:
    """Background maintenance of playlist analytics with a run status."""

    def __init__(self):
        self.is_running = False
        self.last_sync: Optional[datetime] = None
        self.last_trending_update: Optional[datetime] = None
        self.last_resets: Dict[str, Optional[datetime]] = {window: None for window in WINDOWS}
        self.playlists_synced = 0
        self.recent_errors: List[Dict[str, Any]] = []

    def _record_error(self, operation: str, error: Exception):
        error_tracker.capture_exception(error, tags={"job": "playlist_analytics", "operation": operation})
        self.recent_errors.append({
            "operation": operation,
            "error": str(error),
            "timestamp": datetime.utcnow().isoformat()
        })
        del self.recent_errors[:-MAX_RECENT_ERRORS]

    def _unique_viewers(self, db: Session, playlist: Playlist, since: Optional[datetime] = None) -> int:
        query = db.query(func.count(func.distinct(LogAction.user_id))).filter(
            LogAction.action_type == ActionType.PLAYLIST_VIEWED,
            LogAction.entity_id == playlist.id,
            LogAction.user_id.isnot(None)
        )
        if since is not None:
            query = query.filter(LogAction.created_at >= since)
        return query.scalar() or 0

    def sync_playlist(self, db: Session, playlist: Playlist, now: Optional[datetime] = None) -> PlaylistAnalytics:
        """
        Bring one playlist's analytics up to date with its counters.

        Growth since the previous sync is added to every window.
        """
        now = now or datetime.utcnow()
        analytics = playlist.analytics
        if analytics is None:
            analytics = PlaylistAnalytics(
                views_total=0, views_daily=0, views_weekly=0, views_monthly=0,
                favorites_total=0, favorites_daily=0, favorites_weekly=0, favorites_monthly=0
            )
            playlist.analytics = analytics

        view_delta = max(0, playlist.play_count - (analytics.views_total or 0))
        favorite_delta = max(0, playlist.favorite_count - (analytics.favorites_total or 0))

        analytics.views_total = playlist.play_count
        analytics.favorites_total = playlist.favorite_count
        for window in WINDOWS:
            setattr(analytics, f"views_{window}", (getattr(analytics, f"views_{window}") or 0) + view_delta)
            setattr(analytics, f"favorites_{window}", (getattr(analytics, f"favorites_{window}") or 0) + favorite_delta)

        starts = window_starts(now)
        analytics.unique_viewers_total = self._unique_viewers(db, playlist)
        for window in WINDOWS:
            setattr(analytics, f"unique_viewers_{window}", self._unique_viewers(db, playlist, starts[window]))

        analytics.last_updated = now
        return analytics

    def sync_analytics(self, db: Session) -> int:
        """Synchronise every playlist. Failures are recorded and the run continues."""
        self.is_running = True
        synced = 0
        try:
            for playlist in db.query(Playlist).all():
                try:
                    self.sync_playlist(db, playlist)
                    db.commit()
                    synced += 1
                except Exception as e:
                    db.rollback()
                    self._record_error(f"sync:{playlist.id}", e)
        finally:
            self.is_running = False
            self.last_sync = datetime.utcnow()
            self.playlists_synced = synced

        app_logger.info("Playlist analytics synchronised", playlists=synced)
        return synced

    def update_trending_scores(self, db: Session) -> int:
        """Recompute trending_score for every public playlist."""
        rows = db.query(PlaylistAnalytics).join(
            Playlist, Playlist.id == PlaylistAnalytics.playlist_id
        ).filter(
            Playlist.visibility == PlaylistVisibility.PUBLIC.value
        ).all()

        for analytics in rows:
            analytics.trending_score = compute_trending_score(analytics)
        db.commit()

        self.last_trending_update = datetime.utcnow()
        app_logger.info("Playlist trending scores updated", playlists=len(rows))
        return len(rows)

    def reset_window(self, db: Session, window: str) -> int:
        """Zero the daily, weekly or monthly counters of every playlist."""
        if window not in WINDOWS:
            raise ValueError(f"Unknown analytics window: {window}")

        count = db.query(PlaylistAnalytics).update({
            f"views_{window}": 0,
            f"unique_viewers_{window}": 0,
            f"favorites_{window}": 0,
        }, synchronize_session=False)
        db.commit()

        self.last_resets[window] = datetime.utcnow()
        app_logger.info("Playlist analytics window reset", window=window, playlists=count)
        return count

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "last_sync": self.last_sync,
            "last_trending_update": self.last_trending_update,
            "last_resets": dict(self.last_resets),
            "playlists_synced": self.playlists_synced,
            "recent_errors": list(self.recent_errors),
        }


# Global task state shared by the scheduler and the health endpoint
playlist_analytics_tasks = PlaylistAnalyticsTasks()

"""
Tests for the video catalog and its admin management.
"""

import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from throwback.models.video import Video, decade_for_year, generate_tags
from throwback.models.activity import ActionType, LogAction
from throwback.models.comment import Comment
from throwback.models.playlist import Playlist, PlaylistItem
from throwback.models.enums import VideoType


def add_video(db: Session, title: str, **fields) -> Video:
    video = Video(
        title=title,
        youtube_url="https://youtu.be/abc123",
        type=fields.pop("type", VideoType.MUSIC.value),
        **fields
    )
    video.refresh_derived_fields()
    db.add(video)
    db.commit()
    db.refresh(video)
    return video


@pytest.mark.unit
@pytest.mark.content
class TestVideoHelpers:
    """Test derived video fields."""

    def test_decade_for_year(self):
        """Test years map to their decade label."""
        assert decade_for_year(1965) == "60s"
        assert decade_for_year(1982) == "80s"
        assert decade_for_year(1999) == "90s"
        assert decade_for_year(2004) == "2000s"
        assert decade_for_year(2015) == "2010s"
        assert decade_for_year(2023) == "2020s"

    def test_decade_out_of_range(self):
        """Test years outside the catalog range have no decade."""
        assert decade_for_year(1955) is None
        assert decade_for_year(2031) is None
        assert decade_for_year(None) is None

    def test_generate_tags(self):
        """Test tags come from title and artist words plus the genre."""
        tags = generate_tags("Billie Jean", "Michael Jackson", "Pop")

        assert tags == ["billie", "jean", "michael", "jackson", "pop"]

    def test_generate_tags_skips_short_words(self):
        """Test words of two letters or fewer are skipped."""
        assert generate_tags("Be My Baby", None, None) == ["baby"]


@pytest.mark.unit
@pytest.mark.content
class TestVideoCatalog:
    """Test public catalog browsing."""

    def test_list_videos(self, client: TestClient, test_video: Video):
        """Test the catalog lists videos with filters metadata."""
        response = client.get("/api/public/videos")

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["items"][0]["title"] == "Thriller"
        assert "80s" in data["filters"]["decades"]

    def test_filter_by_type_and_decade(self, client: TestClient, test_db: Session, test_video: Video):
        """Test type and decade filters combine."""
        add_video(test_db, "Smells Like Teen Spirit", genre="Rock", year=1991)
        add_video(test_db, "Short Groove", type=VideoType.SHORT.value, duration=20, year=1985)

        response = client.get("/api/public/videos?type=music&decade=80s")

        titles = [item["title"] for item in response.json()["items"]]
        assert titles == ["Thriller"]

    def test_all_disables_filter(self, client: TestClient, test_db: Session, test_video: Video):
        """Test "all" is ignored as a filter value."""
        add_video(test_db, "Smells Like Teen Spirit", genre="Rock", year=1991)

        response = client.get("/api/public/videos?genre=all")

        assert response.json()["pagination"]["total"] == 2

    def test_search_matches_artist(self, client: TestClient, test_video: Video):
        """Test search matches the artist."""
        response = client.get("/api/public/videos/search?q=jackson")

        assert response.status_code == 200
        assert response.json()["items"][0]["id"] == str(test_video.id)

    def test_sort_alphabetical(self, client: TestClient, test_db: Session, test_video: Video):
        """Test alphabetical sorting."""
        add_video(test_db, "Africa", year=1982)

        response = client.get("/api/public/videos?sort_by=alphabetical")

        titles = [item["title"] for item in response.json()["items"]]
        assert titles == ["Africa", "Thriller"]

    def test_pagination(self, client: TestClient, test_db: Session):
        """Test page size and navigation flags."""
        for index in range(5):
            add_video(test_db, f"Track number {index}", year=1984)

        response = client.get("/api/public/videos?limit=2&page=2")

        pagination = response.json()["pagination"]
        assert len(response.json()["items"]) == 2
        assert pagination["total_pages"] == 3
        assert pagination["has_next"] is True
        assert pagination["has_prev"] is True

    def test_by_genre(self, client: TestClient, test_video: Video):
        """Test listing by genre."""
        response = client.get("/api/public/videos/genre/Pop")

        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1

    def test_unknown_genre(self, client: TestClient):
        """Test unknown genres return 404."""
        response = client.get("/api/public/videos/genre/Polka")

        assert response.status_code == 404

    def test_by_decade(self, client: TestClient, test_db: Session, test_video: Video):
        """Test listing by decade sorted by year."""
        add_video(test_db, "Take On Me", year=1985)

        response = client.get("/api/public/videos/decade/80s?sort_by=year")

        titles = [item["title"] for item in response.json()["items"]]
        assert titles == ["Thriller", "Take On Me"]

    def test_unknown_decade(self, client: TestClient):
        """Test unknown decades return 404."""
        response = client.get("/api/public/videos/decade/50s")

        assert response.status_code == 404

    def test_trending_period(self, client: TestClient, test_db: Session, test_video: Video):
        """Test trending only includes videos added during the period."""
        old = add_video(test_db, "Old Favourite", year=1975, views=1000)
        old.created_at = datetime.utcnow() - timedelta(days=60)
        test_db.commit()

        response = client.get("/api/public/videos/trending?period=month")

        titles = [item["title"] for item in response.json()]
        assert titles == ["Thriller"]


@pytest.mark.unit
@pytest.mark.content
class TestVideoDetail:
    """Test video detail and view counting."""

    def test_detail_with_related(self, client: TestClient, test_db: Session, test_video: Video):
        """Test related videos share the genre."""
        add_video(test_db, "Like a Prayer", genre="Pop", year=1989)
        add_video(test_db, "Enter Sandman", genre="Rock", year=1991)

        response = client.get(f"/api/public/videos/{test_video.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["video"]["views"] == 1
        assert [video["title"] for video in data["related"]] == ["Like a Prayer"]
        assert data["bookmarked"] is False

    def test_anonymous_views_always_count(self, client: TestClient, test_video: Video):
        """Test every anonymous view increments the counter."""
        client.get(f"/api/public/videos/{test_video.id}")
        response = client.get(f"/api/public/videos/{test_video.id}")

        assert response.json()["video"]["views"] == 2

    def test_user_view_counts_once_per_day(self, client: TestClient, test_video: Video, auth_headers: dict):
        """Test an authenticated user adds one view per day."""
        client.get(f"/api/public/videos/{test_video.id}", headers=auth_headers)
        response = client.get(f"/api/public/videos/{test_video.id}", headers=auth_headers)

        assert response.json()["video"]["views"] == 1

    def test_unknown_video(self, client: TestClient):
        """Test unknown ids return 404."""
        response = client.get("/api/public/videos/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404


@pytest.mark.unit
@pytest.mark.content
class TestVideoInteractions:
    """Test likes, dislikes, shares and bookmarks."""

    def test_like_toggle(self, client: TestClient, test_video: Video, auth_headers: dict):
        """Test liking twice removes the like."""
        response = client.post(f"/api/public/videos/{test_video.id}/like", headers=auth_headers)
        assert response.json() == {"active": True, "action": "LIKE", "likes": 1, "dislikes": 0, "count": None}

        response = client.post(f"/api/public/videos/{test_video.id}/like", headers=auth_headers)
        assert response.json()["active"] is False
        assert response.json()["likes"] == 0

    def test_dislike_replaces_like(self, client: TestClient, test_video: Video, auth_headers: dict):
        """Test a dislike switches the existing like."""
        client.post(f"/api/public/videos/{test_video.id}/like", headers=auth_headers)
        response = client.post(f"/api/public/videos/{test_video.id}/dislike", headers=auth_headers)

        data = response.json()
        assert data["action"] == "DISLIKE"
        assert data["likes"] == 0
        assert data["dislikes"] == 1

    def test_user_interaction_in_listing(self, client: TestClient, test_video: Video, auth_headers: dict):
        """Test the caller's reaction is included in listings."""
        client.post(f"/api/public/videos/{test_video.id}/like", headers=auth_headers)

        response = client.get("/api/public/videos", headers=auth_headers)

        assert response.json()["items"][0]["user_interaction"] == "LIKE"

    def test_like_requires_auth(self, client: TestClient, test_video: Video):
        """Test anonymous users cannot like."""
        response = client.post(f"/api/public/videos/{test_video.id}/like")

        assert response.status_code in (401, 403)

    def test_share_is_logged(self, client: TestClient, test_video: Video, auth_headers: dict, test_db: Session):
        """Test shares are recorded with the platform."""
        response = client.post(
            f"/api/public/videos/{test_video.id}/share",
            headers=auth_headers,
            json={"platform": "twitter"}
        )

        assert response.status_code == 200
        log = test_db.query(LogAction).filter(LogAction.action_type == ActionType.VIDEO_SHARED).one()
        assert log.extra_data == {"platform": "twitter"}

    def test_bookmark_toggle(self, client: TestClient, test_video: Video, auth_headers: dict):
        """Test bookmarking twice removes the bookmark."""
        assert client.post(
            f"/api/public/videos/{test_video.id}/bookmark", headers=auth_headers
        ).json()["active"] is True

        detail = client.get(f"/api/public/videos/{test_video.id}", headers=auth_headers).json()
        assert detail["bookmarked"] is True

        assert client.post(
            f"/api/public/videos/{test_video.id}/bookmark", headers=auth_headers
        ).json()["active"] is False


@pytest.mark.unit
@pytest.mark.content
@pytest.mark.admin
class TestVideoAdmin:
    """Test catalog management by administrators."""

    def test_create_video(self, client: TestClient, admin_headers: dict):
        """Test the decade and tags are derived from the input."""
        response = client.post(
            "/api/admin/videos",
            headers=admin_headers,
            json={
                "title": "Sweet Dreams",
                "youtube_url": "https://www.youtube.com/watch?v=qeMFqkcPYcg",
                "type": "music",
                "genre": "Electronic",
                "artist": "Eurythmics",
                "year": 1983
            }
        )

        assert response.status_code == 201
        data = response.json()
        assert data["decade"] == "80s"
        assert "eurythmics" in data["tags"]
        assert "electronic" in data["tags"]

    def test_create_requires_admin(self, client: TestClient, auth_headers: dict):
        """Test regular users cannot add videos."""
        response = client.post(
            "/api/admin/videos",
            headers=auth_headers,
            json={"title": "Nope", "youtube_url": "https://youtu.be/abc", "type": "music"}
        )

        assert response.status_code == 403

    def test_create_rejects_non_youtube_url(self, client: TestClient, admin_headers: dict):
        """Test only YouTube URLs are accepted."""
        response = client.post(
            "/api/admin/videos",
            headers=admin_headers,
            json={"title": "Elsewhere", "youtube_url": "https://example.com/video", "type": "music"}
        )

        assert response.status_code == 422

    def test_create_rejects_unknown_genre(self, client: TestClient, admin_headers: dict):
        """Test genres must come from the catalog list."""
        response = client.post(
            "/api/admin/videos",
            headers=admin_headers,
            json={"title": "Polka", "youtube_url": "https://youtu.be/abc", "type": "music", "genre": "Polka"}
        )

        assert response.status_code == 422

    def test_short_duration_enforced(self, client: TestClient, admin_headers: dict):
        """Test shorts must last between 10 and 45 seconds."""
        body = {"title": "Quick clip", "youtube_url": "https://youtube.com/shorts/abc", "type": "short"}

        assert client.post(
            "/api/admin/videos", headers=admin_headers, json={**body, "duration": 90}
        ).status_code == 400
        assert client.post(
            "/api/admin/videos", headers=admin_headers, json={**body, "duration": 30}
        ).status_code == 201

    def test_update_recomputes_decade(self, client: TestClient, test_video: Video, admin_headers: dict):
        """Test changing the year changes the decade."""
        response = client.patch(
            f"/api/admin/videos/{test_video.id}",
            headers=admin_headers,
            json={"year": 1994}
        )

        assert response.status_code == 200
        assert response.json()["decade"] == "90s"

    def test_delete_video(self, client: TestClient, test_video: Video, admin_headers: dict, test_db: Session):
        """Test deletion removes the video."""
        response = client.delete(f"/api/admin/videos/{test_video.id}", headers=admin_headers)

        assert response.status_code == 204
        assert test_db.query(Video).count() == 0

    def test_delete_cascades_memories(
        self, client: TestClient, test_video: Video, auth_headers: dict, admin_headers: dict, test_db: Session
    ):
        """Test the database removes a deleted video's memories."""
        client.post(
            f"/api/public/videos/{test_video.id}/memories",
            headers=auth_headers,
            json={"content": "First single I ever bought"}
        )

        response = client.delete(f"/api/admin/videos/{test_video.id}", headers=admin_headers)

        assert response.status_code == 204
        assert test_db.query(Comment).count() == 0

    def test_delete_closes_playlist_gaps(
        self, client: TestClient, test_video: Video, test_playlist: Playlist,
        auth_headers: dict, admin_headers: dict, test_db: Session
    ):
        """Test playlists keep positions 1..n after a video they hold is deleted."""
        middle = add_video(test_db, "Take On Me", year=1985)
        later = add_video(test_db, "Wonderwall", year=1995)
        last = add_video(test_db, "Creep", year=1992)
        test_playlist.items.extend([
            PlaylistItem(video_id=test_video.id, position=1),
            PlaylistItem(video_id=middle.id, position=2),
            PlaylistItem(video_id=later.id, position=3),
        ])
        test_db.commit()

        assert client.delete(f"/api/admin/videos/{middle.id}", headers=admin_headers).status_code == 204
        response = client.post(
            f"/api/playlists/{test_playlist.id}/videos",
            headers=auth_headers,
            json={"video_id": str(last.id)}
        )

        assert response.status_code == 201
        test_db.expire_all()
        positions = [
            (item.video_id, item.position)
            for item in test_db.query(PlaylistItem).order_by(PlaylistItem.position)
        ]
        assert positions == [(test_video.id, 1), (later.id, 2), (last.id, 3)]

    def test_stats(self, client: TestClient, test_db: Session, test_video: Video, admin_headers: dict):
        """Test counts per type and decade."""
        add_video(test_db, "Wonderwall", genre="Rock", year=1995, views=10)

        response = client.get("/api/admin/videos/stats", headers=admin_headers)

        data = response.json()
        assert data["total"] == 2
        assert data["total_views"] == 10
        assert data["by_type"] == {"music": 2}
        assert data["by_decade"] == {"80s": 1, "90s": 1}
        assert data["top_viewed"][0]["title"] == "Wonderwall"

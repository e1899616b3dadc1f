"""
Tests for catalog search and suggestions.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from throwback.models.video import Video
from throwback.models.playlist import Playlist
from throwback.models.podcast import Podcast
from throwback.models.livestream import LiveStream
from throwback.models.enums import PlaylistVisibility, StreamStatus


@pytest.fixture
def catalog(test_video: Video, test_playlist: Playlist, test_podcast: Podcast, live_stream: LiveStream):
    return {"video": test_video, "playlist": test_playlist, "podcast": test_podcast, "stream": live_stream}


@pytest.mark.unit
@pytest.mark.content
class TestSearch:
    """Test the combined search endpoint."""

    def test_search_all_catalogs(self, client: TestClient, catalog):
        """Test one term can match several catalogs."""
        response = client.get("/api/search?q=80s")

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "80s"
        assert [video["title"] for video in data["videos"]] == ["Thriller"]
        assert [playlist["name"] for playlist in data["playlists"]] == ["Eighties Hits"]
        assert data["totals"] == {"videos": 1, "playlists": 1, "podcasts": 0, "livestreams": 0}

    def test_search_is_case_insensitive(self, client: TestClient, catalog):
        """Test matching ignores case."""
        data = client.get("/api/search?q=GRANDMASTER").json()

        assert [podcast["title"] for podcast in data["podcasts"]] == ["The Birth of Hip-Hop"]

    def test_search_single_catalog(self, client: TestClient, catalog):
        """Test the type parameter restricts the catalogs searched."""
        data = client.get("/api/search?q=disco&type=livestreams").json()

        assert [stream["title"] for stream in data["livestreams"]] == ["Friday Night Disco"]
        assert data["videos"] == []
        assert data["totals"]["videos"] == 0

    def test_totals_count_beyond_limit(self, client: TestClient, test_db: Session, test_video: Video):
        """Test totals count every match while results respect the limit."""
        for i in range(3):
            test_db.add(Video(title=f"Thriller Remix {i}", youtube_url="https://youtu.be/abc", type="music"))
        test_db.commit()

        data = client.get("/api/search?q=thriller&limit=2").json()

        assert len(data["videos"]) == 2
        assert data["totals"]["videos"] == 4

    def test_hidden_content_excluded(self, client: TestClient, test_db: Session, catalog):
        """Test private playlists, drafts and cancelled streams are not returned."""
        catalog["playlist"].visibility = PlaylistVisibility.PRIVATE.value
        catalog["podcast"].is_published = False
        catalog["stream"].status = StreamStatus.CANCELLED.value
        test_db.commit()

        totals = client.get("/api/search?q=80s").json()["totals"]
        assert totals["playlists"] == 0
        assert client.get("/api/search?q=hip-hop").json()["totals"]["podcasts"] == 0
        assert client.get("/api/search?q=disco").json()["totals"]["livestreams"] == 0

    def test_blank_query_rejected(self, client: TestClient):
        """Test a whitespace query is refused."""
        response = client.get("/api/search?q=%20%20")

        assert response.status_code == 400

    def test_missing_query(self, client: TestClient):
        """Test the query parameter is required."""
        assert client.get("/api/search").status_code == 422

    def test_invalid_type(self, client: TestClient):
        """Test unknown catalogs are refused."""
        assert client.get("/api/search?q=x&type=users").status_code == 422

    def test_paginated_catalog_search(self, client: TestClient, catalog):
        """Test per-catalog search routes paginate."""
        response = client.get("/api/search/podcasts?q=hop")

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["pagination"]["has_next"] is False


@pytest.mark.unit
@pytest.mark.content
class TestSuggestions:
    """Test search suggestions."""

    def test_prefix_suggestions(self, client: TestClient, catalog):
        """Test titles and artists starting with the term are suggested."""
        data = client.get("/api/search/suggestions?q=mi").json()

        assert data["suggestions"] == ["Michael Jackson"]

    def test_suggestions_across_catalogs(self, client: TestClient, catalog):
        """Test suggestions come from every public catalog."""
        data = client.get("/api/search/suggestions?q=th").json()

        assert data["suggestions"] == ["Thriller", "The Birth of Hip-Hop"]

    def test_short_term_returns_nothing(self, client: TestClient, catalog):
        """Test a single character yields no suggestion."""
        data = client.get("/api/search/suggestions?q=t").json()

        assert data == {"query": "t", "suggestions": []}

    def test_suggestions_deduplicated(self, client: TestClient, test_db: Session, test_video: Video, test_user):
        """Test the same text from two catalogs is suggested once."""
        test_db.add(Playlist(name="thriller", owner_id=test_user.id))
        test_db.commit()

        data = client.get("/api/search/suggestions?q=thr").json()

        assert data["suggestions"] == ["Thriller"]

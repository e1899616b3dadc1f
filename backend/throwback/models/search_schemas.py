"""Pydantic schemas for catalog search."""

from pydantic import BaseModel
from typing import Dict, List

from throwback.models.video_schemas import VideoResponse
from throwback.models.playlist_schemas import PlaylistResponse
from throwback.models.podcast_schemas import PodcastResponse
from throwback.models.livestream_schemas import LiveStreamResponse


class SearchResponse(BaseModel):
    """Matches per catalog; `totals` counts every match, not only the returned ones."""
    query: str
    videos: List[VideoResponse] = []
    playlists: List[PlaylistResponse] = []
    podcasts: List[PodcastResponse] = []
    livestreams: List[LiveStreamResponse] = []
    totals: Dict[str, int]


class SuggestionsResponse(BaseModel):
    query: str
    suggestions: List[str]

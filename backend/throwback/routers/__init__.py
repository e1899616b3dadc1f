"""API routers."""

from throwback.routers import (
    admin, auth, captcha, health, livechat, livestreams, memories, playlists, podcasts, search, users, videos
)

__all__ = [
    "admin", "auth", "captcha", "health", "livechat", "livestreams", "memories",
    "playlists", "podcasts", "search", "users", "videos",
]

"""Database models."""

from throwback.models.user import User
from throwback.models.security import UserSession, AccountToken, LoginAttempt, CaptchaChallenge
from throwback.models.preferences import UserPreferences
from throwback.models.activity import ActionType, LogAction
from throwback.models.video import Video
from throwback.models.interaction import Like, Bookmark
from throwback.models.comment import Comment, CommentReport, PodcastMemory
from throwback.models.playlist import (
    Playlist, PlaylistItem, PlaylistCollaborator, PlaylistFavorite, PlaylistAnalytics
)
from throwback.models.podcast import Podcast
from throwback.models.livestream import LiveStream, CompilationVideo, LiveStreamBan, LiveChatMessage

__all__ = [
    "User", "UserSession", "AccountToken", "LoginAttempt", "CaptchaChallenge",
    "UserPreferences", "ActionType", "LogAction", "Video", "Like", "Bookmark",
    "Comment", "CommentReport", "PodcastMemory", "Playlist", "PlaylistItem",
    "PlaylistCollaborator", "PlaylistFavorite", "PlaylistAnalytics", "Podcast",
    "LiveStream", "CompilationVideo", "LiveStreamBan", "LiveChatMessage",
]

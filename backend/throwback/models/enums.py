"""
Centralized enums for status and category values.

All enums are str-based so their values can be stored in plain string
columns and compared directly against query parameters.
"""

from enum import Enum


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    LOCKED = "LOCKED"
    SUSPENDED = "SUSPENDED"
    DELETED = "DELETED"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class TokenType(str, Enum):
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PASSWORD_RESET = "PASSWORD_RESET"
    ACCOUNT_ACTIVATION = "ACCOUNT_ACTIVATION"


class Visibility(str, Enum):
    """Visibility of a user's playlists or activity."""

    PUBLIC = "public"
    FRIENDS = "friends"
    PRIVATE = "private"


class Language(str, Enum):
    FR = "fr"
    EN = "en"
    ES = "es"
    DE = "de"
    IT = "it"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class VideoType(str, Enum):
    SHORT = "short"
    MUSIC = "music"
    PODCAST = "podcast"


class VideoSort(str, Enum):
    RECENT = "recent"
    POPULAR = "popular"
    MOST_LIKED = "mostLiked"
    OLDEST = "oldest"
    ALPHABETICAL = "alphabetical"


class TrendingPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class LikeEntity(str, Enum):
    VIDEO = "VIDEO"
    COMMENT = "COMMENT"
    PLAYLIST = "PLAYLIST"
    PODCAST = "PODCAST"
    MEMORY = "MEMORY"
    LIVESTREAM = "LIVESTREAM"
    CHAT_MESSAGE = "CHAT_MESSAGE"


class LikeAction(str, Enum):
    LIKE = "LIKE"
    DISLIKE = "DISLIKE"


class CommentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    MODERATED = "MODERATED"
    DELETED = "DELETED"


class CommentSort(str, Enum):
    RECENT = "recent"
    LIKES = "likes"
    OLDEST = "oldest"


class MemoryType(str, Enum):
    POSTED = "posted"
    SHARED = "shared"


class BookmarkType(str, Enum):
    VIDEO = "VIDEO"
    PODCAST = "PODCAST"


class PlaylistVisibility(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    FRIENDS = "FRIENDS"


class PlaylistType(str, Enum):
    MANUAL = "MANUAL"
    AUTO_GENRE = "AUTO_GENRE"
    AUTO_DECADE = "AUTO_DECADE"
    AUTO_ARTIST = "AUTO_ARTIST"


class CollaboratorPermission(str, Enum):
    READ = "READ"
    ADD = "ADD"
    EDIT = "EDIT"


class PodcastCategory(str, Enum):
    PERSONAL_BRANDING = "PERSONAL BRANDING"
    MUSIC_BUSINESS = "MUSIC BUSINESS"
    ARTIST_INTERVIEW = "ARTIST INTERVIEW"
    INDUSTRY_INSIGHTS = "INDUSTRY INSIGHTS"
    THROWBACK_HISTORY = "THROWBACK HISTORY"
    OTHER = "OTHER"


class StreamStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class StreamCategory(str, Enum):
    MUSIC_PERFORMANCE = "MUSIC_PERFORMANCE"
    TALK_SHOW = "TALK_SHOW"
    Q_AND_A = "Q_AND_A"
    BEHIND_THE_SCENES = "BEHIND_THE_SCENES"
    THROWBACK_SPECIAL = "THROWBACK_SPECIAL"
    OTHER = "OTHER"


class StreamProvider(str, Enum):
    VIMEO = "VIMEO"
    YOUTUBE = "YOUTUBE"
    CUSTOM = "CUSTOM"


class RecurrenceFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    CUSTOM = "CUSTOM"


class CompilationType(str, Enum):
    DIRECT = "DIRECT"
    VIDEO_COLLECTION = "VIDEO_COLLECTION"


class VideoSource(str, Enum):
    YOUTUBE = "YOUTUBE"
    VIMEO = "VIMEO"
    DAILYMOTION = "DAILYMOTION"


class TransitionEffect(str, Enum):
    NONE = "none"
    FADE = "fade"
    SLIDE = "slide"
    ZOOM = "zoom"
    FLIP = "flip"


class StreamResolution(str, Enum):
    HD = "720p"
    FULL_HD = "1080p"
    QHD = "1440p"
    UHD = "4K"

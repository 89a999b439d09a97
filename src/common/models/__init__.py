from .user import User
from .token import Token
from .token_call import TokenCall, TokenCallStatus
from .token_call_streak import UserTokenCallStreak
from .badge import Badge, UserBadge, BadgeCategory, BadgeRequirement
from .notification import Notification, NotificationType
from .watchlist import TokenWatchlist

__all__ = [
    "User",
    "Token",
    "TokenCall",
    "TokenCallStatus",
    "UserTokenCallStreak",
    "Badge",
    "UserBadge",
    "BadgeCategory",
    "BadgeRequirement",
    "Notification",
    "NotificationType",
    "TokenWatchlist",
]

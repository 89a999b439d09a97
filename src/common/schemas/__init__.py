from .token_call import (
    TokenCallCreate, TokenCallRead, TokenCallListResponse, PriceHistoryItem, PriceHistoryResponse,
    TokenCallStreakRead, UserTokenCallStats, LeaderboardEntry,
)
from .notification import NotificationRead
from .watchlist import WatchlistItem, WatchlistResponse
from .token import TokenRead
from .badge import BadgeRead, UserBadgeRead

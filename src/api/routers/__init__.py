from .token_calls import router as token_calls_router
from .tokens import router as tokens_router
from .watchlist import router as watchlist_router
from .notification import router as notification_router
from .badges import router as badges_router

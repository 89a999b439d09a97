from pydantic import BaseModel
from typing import List

class WatchlistItem(BaseModel):
    user_id: int
    token_id: str

class WatchlistResponse(BaseModel):
    watchlist: List[str]

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func
from src.common.database.db_connector import Base

class TokenWatchlist(Base):
    __tablename__ = 'token_watchlist'
    user_id = Column(Integer, ForeignKey('app_users.id'), primary_key=True)
    token_id = Column(String(64), ForeignKey('tokens.mint_address'), primary_key=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

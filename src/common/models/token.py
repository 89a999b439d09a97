from sqlalchemy import Column, String, DateTime, func
from sqlalchemy.orm import relationship
from src.common.database.db_connector import Base


class Token(Base):
    __tablename__ = 'tokens'

    mint_address = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=True)
    symbol = Column(String(20), nullable=True, index=True)
    chain = Column(String(20), default='solana', nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    token_calls = relationship("TokenCall", back_populates="token")

    def __repr__(self):
        return f"<Token(mint_address='{self.mint_address}', symbol='{self.symbol}')>"

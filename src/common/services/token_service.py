from sqlalchemy.orm import Session
from src.common.models.token import Token
import logging

logger = logging.getLogger(__name__)

class TokenService:
    def get_token(self, db: Session, mint_address: str):
        logger.debug(f"get_token 호출: mint_address={mint_address}")
        return db.query(Token).filter(Token.mint_address == mint_address).first()

    def search_tokens(self, db: Session, query: str, limit: int = 20):
        logger.debug(f"search_tokens 호출: query={query}")
        return db.query(Token).filter(
            (Token.symbol.ilike(f"%{query}%")) | (Token.name.ilike(f"%{query}%")) | (Token.mint_address == query)
        ).limit(limit).all()

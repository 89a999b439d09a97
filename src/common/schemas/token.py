from pydantic import BaseModel, ConfigDict
from typing import Optional


class TokenRead(BaseModel):
    mint_address: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    chain: str

    model_config = ConfigDict(from_attributes=True)

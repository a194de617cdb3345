from pydantic import BaseModel
from typing import Optional


class TokenData(BaseModel):
    """Claims read from an identity provider token"""
    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None

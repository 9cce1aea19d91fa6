from typing import Dict, Optional

from pydantic import BaseModel, Field


class AccountRef(BaseModel):
    accountId: str = Field(min_length=3)


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errorCode: Optional[str] = None
    details: Optional[Dict] = None

from pydantic import BaseModel
from typing import Optional

from utils.errors import MarketplaceError


class OperationResult(BaseModel):
    success: bool
    message: str
    error: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def ok(cls, message: str, id: str | None = None) -> "OperationResult":
        return cls(success=True, message=message, id=id)

    @classmethod
    def fail(cls, exc: MarketplaceError) -> "OperationResult":
        return cls(success=False, message=exc.message, error=exc.code)

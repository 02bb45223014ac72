"""Request/response schemas for relay endpoints."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OrderRequest(BaseModel):
    """Order payload accepted from the frontend on `POST /order`."""

    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True)

    name: str = Field(min_length=1)
    # Major units; the gateway takes integer minor units.
    amount: Decimal = Field(gt=0, decimal_places=2)
    number: str = Field(min_length=1)

    @property
    def amount_minor(self) -> int:
        return int(self.amount * 100)


class OrderFailure(BaseModel):
    """Error envelope for `POST /order`."""

    success: bool = False
    message: str
    error: Any = None


class HealthResponse(BaseModel):
    status: str = "healthy"


class ServerInfo(BaseModel):
    message: str = "Server is running"
    environment: str
    timestamp: str

"""Pydantic models for API requests and responses."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Stock(BaseModel):
    """
    Stock record as stored in the stocks table.

    Missing fields fall back to zero values. Types are not coerced, so a
    string price or a numeric name is rejected. NULL columns read back as None.
    """
    model_config = ConfigDict(strict=True)

    stockid: Optional[int] = Field(default=None, description="Primary key assigned by the store")
    name: Optional[str] = ""
    price: Optional[float] = 0.0
    company: Optional[str] = ""


class StockResponse(BaseModel):
    """Envelope returned by mutating endpoints."""
    id: Optional[int] = None
    message: Optional[str] = None


class HealthCheck(BaseModel):
    """Health check response model."""
    status: str
    database_connected: bool
    stock_count: Optional[int] = None
    timestamp: str
    error: Optional[str] = None

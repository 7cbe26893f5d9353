"""
API models and schemas for the FastAPI application.

Request bodies are validated here, at the HTTP boundary, before anything
reaches a store. Book fields use the camelCase names the catalog has always
exposed (imageUrl, createdAt) as aliases over snake_case attributes.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


def parse_price(value: Any) -> float:
    """
    Convert an untyped price value to a finite, non-negative float.

    Accepts ints, floats, Decimals and numeric strings. Booleans, NaN,
    infinities and anything non-numeric raise ValueError.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("price must be a number")
    if isinstance(value, str):
        value = value.strip()
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError("price must be a number")
    if not number.is_finite():
        raise ValueError("price must be a finite number")
    if number < 0:
        raise ValueError("price must not be negative")
    price = float(number)
    if math.isinf(price):
        raise ValueError("price is out of range")
    return price


class UserCredentials(BaseModel):
    """Body of the register and login endpoints."""
    username: str = Field(..., min_length=1, description="Unique username")
    password: str = Field(..., min_length=1, description="Plaintext password")

    @field_validator("username")
    @classmethod
    def strip_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("username must not be blank")
        return v

    @field_validator("password")
    @classmethod
    def check_password_length(cls, v):
        # bcrypt only hashes the first 72 bytes
        if len(v.encode("utf-8")) > 72:
            raise ValueError("password must be at most 72 bytes")
        return v


class BookCreate(BaseModel):
    """Body of the add-book endpoint."""
    name: str = Field(..., min_length=1, description="Book title")
    author: str = Field(..., min_length=1, description="Book author")
    price: float = Field(..., description="Book price")
    image_url: str = Field("", alias="imageUrl", description="Cover image URL")

    model_config = {"populate_by_name": True}

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v):
        return parse_price(v)

    @field_validator("image_url", mode="before")
    @classmethod
    def default_image_url(cls, v):
        return "" if v is None else v


class BookUpdate(BaseModel):
    """Body of the update endpoint. Omitted or null fields keep their value."""
    name: Optional[str] = Field(None, min_length=1, description="Book title")
    author: Optional[str] = Field(None, min_length=1, description="Book author")
    price: Optional[float] = Field(None, description="Book price")
    image_url: Optional[str] = Field(None, alias="imageUrl", description="Cover image URL")

    model_config = {"populate_by_name": True}

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v):
        if v is None:
            return None
        return parse_price(v)

    def to_document(self) -> Dict[str, Any]:
        """Fields to $set, keyed the way books are stored."""
        return {
            key: value
            for key, value in self.model_dump(by_alias=True).items()
            if value is not None
        }


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier")
    name: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    price: float = Field(..., description="Book price")
    image_url: str = Field("", alias="imageUrl", description="Cover image URL")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "BookResponse":
        """Build a response from a raw MongoDB document. Naive timestamps are read as UTC."""
        created_at = document["createdAt"]
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            id=str(document["_id"]),
            name=document["name"],
            author=document["author"],
            price=document["price"],
            image_url=document.get("imageUrl") or "",
            created_at=created_at,
        )


class BookMutationResponse(BaseModel):
    """Response for add, update and delete."""
    message: str = Field(..., description="Outcome message")
    book: BookResponse = Field(..., description="Affected book")


class MessageResponse(BaseModel):
    message: str = Field(..., description="Outcome message")


class TokenResponse(BaseModel):
    token: str = Field(..., description="Signed bearer token")


class TokenClaims(BaseModel):
    """Identity embedded in a bearer token."""
    user_id: str = Field(..., alias="userId", description="User identifier")
    username: str = Field(..., description="Username")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Error response model."""
    message: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")

"""Pydantic schemas for postal code estimation."""

from pydantic import BaseModel, Field

from backoffice.db.enums import PostalCodeConfidence


class PostalCodeRequest(BaseModel):
    prefecture: str = Field("", max_length=20)
    city: str = Field("", max_length=100)
    street: str | None = Field(None, max_length=255)
    company_name: str | None = Field(None, max_length=255)


class PostalCodeResult(BaseModel):
    postal_code: str | None = None
    confidence: PostalCodeConfidence
    error: str | None = None

"""Shared pydantic building blocks."""

from pydantic import BaseModel, field_validator

from backoffice.utils.normalization import blank_to_none, normalize_postal_code


class AddressFields(BaseModel):
    """Japanese address parts shared by accounts, branches and contacts."""
    postal_code: str | None = None
    prefecture: str | None = None
    city: str | None = None
    street: str | None = None
    building: str | None = None

    @field_validator("postal_code")
    @classmethod
    def clean_postal_code(cls, v: str | None) -> str | None:
        return normalize_postal_code(v)

    @field_validator("prefecture", "city", "street", "building")
    @classmethod
    def clean_strip(cls, v: str | None) -> str | None:
        return blank_to_none(v)


class MessageResponse(BaseModel):
    message: str

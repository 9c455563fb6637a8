"""Geocoding data models."""

from pydantic import BaseModel, Field


class AddressInfo(BaseModel):
    """Address details from reverse geocoding.

    Attributes:
        address: Full display address.
        suburb: Suburb, town or city, whichever the backend reports first.
        state: State or region.
        country: Country name.
        postcode: Postal code.
    """

    address: str = Field(description="Full display address")
    suburb: str | None = Field(default=None, description="Suburb, town or city")
    state: str | None = Field(default=None, description="State or region")
    country: str | None = Field(default=None, description="Country")
    postcode: str | None = Field(default=None, description="Postal code")

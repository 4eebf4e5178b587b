# boutique/models/address.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Address(SQLModel, table=True):
    """
    Saved delivery address.

    One user owns many; at most one is flagged default.
    Managed from the account pages, read-only during checkout.
    """

    __tablename__ = "addresses"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="profiles.id",
        index=True,
    )

    label: str | None = None
    first_name: str
    last_name: str
    address_line1: str
    address_line2: str | None = None
    city: str
    postal_code: str
    country: str = Field(default="FR", max_length=2)
    phone: str | None = None

    is_default: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

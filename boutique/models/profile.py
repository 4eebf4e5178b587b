# boutique/models/profile.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Profile(SQLModel, table=True):
    """
    Persistent customer profile.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    A blocked profile can browse but cannot check out; the reason is
    shown to the customer as-is.
    """

    __tablename__ = "profiles"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        index=True,
        description="Email from Supabase auth.users",
    )

    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None

    # Application role (not Supabase RLS role)
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    blocked: bool = Field(default=False)
    blocked_reason: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

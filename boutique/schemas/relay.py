# boutique/schemas/relay.py
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RelayPoint(BaseModel):
    """
    Mondial Relay pickup point.

    Accepts both our snake_case shape and the edge function's
    PascalCase keys (Id, Name, Address1, PostCode, City, Country...).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "Id", "Num"))
    name: str = Field(validation_alias=AliasChoices("name", "Name", "LgAdr1"))
    address_1: str = Field(
        default="",
        validation_alias=AliasChoices("address_1", "Address1", "LgAdr3"),
    )
    address_2: str = Field(
        default="",
        validation_alias=AliasChoices("address_2", "Address2", "LgAdr4"),
    )
    postcode: str = Field(validation_alias=AliasChoices("postcode", "PostCode", "CP"))
    city: str = Field(validation_alias=AliasChoices("city", "City", "Ville"))
    country: str = Field(
        default="FR",
        validation_alias=AliasChoices("country", "Country", "Pays"),
    )
    latitude: str | None = Field(
        default=None,
        validation_alias=AliasChoices("latitude", "Latitude"),
    )
    longitude: str | None = Field(
        default=None,
        validation_alias=AliasChoices("longitude", "Longitude"),
    )
    distance: str | None = Field(
        default=None,
        validation_alias=AliasChoices("distance", "Distance"),
    )
    opening_hours: dict[str, str] | None = Field(
        default=None,
        validation_alias=AliasChoices("opening_hours", "OpeningHours"),
    )

    @property
    def display_address(self) -> str:
        return f"{self.address_1} {self.postcode} {self.city}".strip()

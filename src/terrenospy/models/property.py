"""Property listing data models.

Field names are English in Python; the aliases are the keys used by the
Gist document and the local cache, which the public site also reads.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

# Legacy records without timestamps sort as oldest and lose every merge.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Field names and wire keys a patch cannot set to None
NON_NULLABLE_KEYS = frozenset(
    {"title", "titulo", "location", "ubicacion", "featured", "destacado", "status", "estado"}
)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def isoformat_z(value: datetime) -> str:
    """Format like a browser's Date.toISOString(): milliseconds, Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PropertyStatus(str, Enum):
    """Sale status of a plot."""

    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"


class FormCoercions(BaseModel):
    """Input coercions shared by full records and partial patches.

    The admin form posts "" for untouched inputs; these turn such values
    into the field's empty value instead of failing validation.
    """

    @field_validator("price", "size", mode="before", check_fields=False)
    @classmethod
    def _empty_number_is_zero(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0
        return value

    @field_validator("description", "email", "phone", mode="before", check_fields=False)
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("map_url", mode="before", check_fields=False)
    @classmethod
    def _blank_url_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("images", mode="before", check_fields=False)
    @classmethod
    def _drop_empty_images(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [img for img in value if isinstance(img, str) and img.strip()]
        return value


class PropertyFields(FormCoercions):
    """Editable fields shared by drafts and stored records."""

    title: str = Field(..., alias="titulo", description="Listing headline")
    location: str = Field(..., alias="ubicacion", description="City or neighborhood")
    price: int = Field(
        default=0, ge=0, alias="precio", description="Asking price in guaraníes (0 = on request)"
    )
    size: int = Field(default=0, ge=0, alias="tamaño", description="Plot size in square meters")
    description: str = Field(default="", alias="descripcion")
    images: list[str] = Field(default_factory=list, alias="imagenes")
    map_url: str | None = Field(default=None, alias="mapaUrl", description="Google Maps link")
    email: str = Field(default="", description="Contact email")
    phone: str = Field(default="", alias="telefono", description="Contact phone")
    featured: bool = Field(default=False, alias="destacado")
    status: PropertyStatus = Field(default=PropertyStatus.AVAILABLE, alias="estado")

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

    @field_validator("title", "location")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class PropertyDraft(PropertyFields):
    """Input for creating a listing: everything but identity and timestamps."""


class PropertyRecord(PropertyFields):
    """A stored property listing.

    Example:
        record = PropertyRecord(
            id="terreno_1700000000000_k3j9x0a2b",
            title="Lote A",
            location="Luque",
            price=150000000,
            size=360,
        )
        record.to_wire()["titulo"]  # "Lote A"
    """

    id: str = Field(..., min_length=1, description="Opaque unique identifier")
    created_at: datetime = Field(default=EPOCH, alias="fechaCreacion")
    updated_at: datetime = Field(default=EPOCH, alias="fechaActualizacion")

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _missing_timestamp_is_epoch(cls, value: Any) -> Any:
        if value is None or value == "":
            return EPOCH
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-serialisable form used by both backends."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "PropertyRecord":
        return cls.model_validate(data)


class PropertyPatch(FormCoercions):
    """Partial update for a listing.

    Only fields explicitly set are applied; identity and timestamps are
    not patchable. An explicit None leaves a field with no empty value
    (title, location, featured, status) unchanged.
    """

    title: str | None = Field(default=None, alias="titulo")
    location: str | None = Field(default=None, alias="ubicacion")
    price: int | None = Field(default=None, ge=0, alias="precio")
    size: int | None = Field(default=None, ge=0, alias="tamaño")
    description: str | None = Field(default=None, alias="descripcion")
    images: list[str] | None = Field(default=None, alias="imagenes")
    map_url: str | None = Field(default=None, alias="mapaUrl")
    email: str | None = None
    phone: str | None = Field(default=None, alias="telefono")
    featured: bool | None = Field(default=None, alias="destacado")
    status: PropertyStatus | None = Field(default=None, alias="estado")

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _none_is_unset(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if not (v is None and k in NON_NULLABLE_KEYS)}
        return data

    def changes(self) -> dict[str, Any]:
        """Fields the caller set, keyed by Python field name."""
        return self.model_dump(exclude_unset=True)

    def apply_to(self, record: PropertyRecord) -> PropertyRecord:
        """Return a re-validated copy of ``record`` with the changes merged."""
        data = record.model_dump()
        data.update(self.changes())
        return PropertyRecord.model_validate(data)

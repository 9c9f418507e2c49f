"""Selfie domain model."""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TITLE = "New Selfie!"


def _utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


class Coordinate(BaseModel):
    """Where a selfie was taken."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    model_config = ConfigDict(frozen=True)


class Selfie(BaseModel):
    """A gallery entry.

    The image is not part of the serialized record; it is stored next to the
    record as ``<id>-image.jpg`` and accessed through the store.
    """

    created: datetime = Field(default_factory=_utc_now)
    id: UUID = Field(default_factory=uuid4)
    title: str = DEFAULT_TITLE
    position: Coordinate | None = None

    model_config = ConfigDict(validate_assignment=True)

    def to_json(self) -> bytes:
        """Serialize the record to UTF-8 JSON."""
        return self.model_dump_json(indent=2).encode("utf-8")

    @classmethod
    def from_json(cls, data: bytes | str) -> "Selfie":
        """Deserialize a record, raising pydantic.ValidationError on bad input."""
        return cls.model_validate_json(data)

"""
Typed sample events used across the event tests.
"""
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field

from eventgrid.models import EventGridEvent


class CarEventData(BaseModel):
    """Payload of a car registration event."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    license_plate: str = Field(..., alias="licensePlate")
    owner: Optional[str] = None


class NewCarRegistered(EventGridEvent):
    """Typed event with a fixed event type and data version."""

    payload_type: ClassVar[type] = CarEventData

    event_type: str = Field(default="Arcus.Samples.Cars.NewCarRegistered", alias="eventType")
    data_version: str = Field(default="1", alias="dataVersion")

    @classmethod
    def for_plate(cls, id: str, license_plate: str, subject: Optional[str] = None) -> "NewCarRegistered":
        return cls.create(id, data=CarEventData(license_plate=license_plate), subject=subject)

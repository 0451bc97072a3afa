# app/models/registration.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Optional
from datetime import datetime
from enum import Enum


class RegistrationStatus(str, Enum):
    UNDONE = "undone"
    DONE = "done"


class SyncState(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"


class RegistrationCreate(BaseModel):
    """Raw booking payload.

    Fields are left untyped so that presence and number checks happen in the
    service and come back as 400 responses instead of schema errors.
    """
    name: Any = None
    email: Any = None
    phone: Any = None
    tour_title: Any = None
    people: Any = None
    unit_price: Any = None
    total_price: Any = None
    message: Any = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "name": "Aziza Karimova",
                "email": "aziza@example.com",
                "phone": "+998901234567",
                "tourTitle": "Samarkand Tour",
                "people": 2,
                "unitPrice": 50,
                "totalPrice": 100
            }
        }
    )


class StatusUpdate(BaseModel):
    status: Any = None


class Registration(BaseModel):
    id: str = Field(..., description="Canonical registration identifier")
    name: str
    email: str
    phone: str
    tour_title: str
    people: int = Field(1, ge=1)
    unit_price: float = Field(0, ge=0)
    total_price: float = Field(..., gt=0)
    status: RegistrationStatus = RegistrationStatus.UNDONE
    message: str = ""
    created_at: datetime
    updated_at: Optional[datetime] = None
    sync_state: SyncState = SyncState.SYNCED

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "3fa85f6457174562b3fc2c963f66afa6",
                "name": "Aziza Karimova",
                "email": "aziza@example.com",
                "phone": "+998901234567",
                "tourTitle": "Samarkand Tour",
                "people": 2,
                "unitPrice": 50,
                "totalPrice": 100,
                "status": "undone",
                "message": "Aziza Karimova booked Samarkand Tour for 2 person(s), total 100",
                "createdAt": "2026-01-01T00:00:00Z",
                "updatedAt": None,
                "syncState": "synced"
            }
        }
    )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.db.tables import RegistrationRow
from app.models.registration import Registration, RegistrationStatus, SyncState


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def row_to_registration(row: RegistrationRow) -> Registration:
    return Registration(
        id=row.registration_id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        tour_title=row.tour_title,
        people=row.people,
        unit_price=row.unit_price,
        total_price=row.total_price,
        status=RegistrationStatus(row.status),
        message=row.message,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
        sync_state=SyncState.SYNCED,
    )


class RegistrationRepository:
    """Registration rows in the primary database.

    Methods let SQLAlchemy errors propagate; the service decides what they
    mean for the caller.
    """

    def __init__(self, session: Session):
        self.session = session

    def add(self, registration: Registration) -> Registration:
        row = RegistrationRow(
            registration_id=registration.id,
            name=registration.name,
            email=registration.email,
            phone=registration.phone,
            tour_title=registration.tour_title,
            people=registration.people,
            unit_price=registration.unit_price,
            total_price=registration.total_price,
            status=registration.status.value,
            message=registration.message,
            created_at=registration.created_at,
            updated_at=registration.updated_at,
        )
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row_to_registration(row)

    def get_row(self, registration_id: str) -> Optional[RegistrationRow]:
        return (
            self.session.query(RegistrationRow)
            .filter(RegistrationRow.registration_id == registration_id)
            .first()
        )

    def exists(self, registration_id: str) -> bool:
        return self.get_row(registration_id) is not None

    def list(self, status: Optional[RegistrationStatus] = None) -> List[Registration]:
        query = self.session.query(RegistrationRow)
        if status is not None:
            query = query.filter(RegistrationRow.status == status.value)
        rows = query.order_by(RegistrationRow.created_at.desc(), RegistrationRow.id.desc()).all()
        return [row_to_registration(row) for row in rows]

    def update_status(self, row: RegistrationRow, status: RegistrationStatus, updated_at: datetime) -> Registration:
        row.status = status.value
        row.updated_at = updated_at
        self.session.commit()
        self.session.refresh(row)
        return row_to_registration(row)

"""
Registration service

Booking submissions go to the primary database first and are mirrored into
the local registration log. When the database write fails the log keeps the
booking as ``pending`` until ``reconcile`` replays it.
"""
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import uuid4

from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.db.repository import RegistrationRepository
from app.db.tables import RegistrationRow
from app.errors import NotFound, RegistrationLogError, StoreUnavailable, UpdateFailed, ValidationError
from app.models.registration import (
    Registration,
    RegistrationCreate,
    RegistrationStatus,
    SyncState,
)
from app.storage.registration_log import RegistrationLog

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = (
    ("name", "name"),
    ("email", "email"),
    ("phone", "phone"),
    ("tour_title", "tourTitle"),
)
REGISTRATION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

# Upper bounds that fit the registrations table columns
MAX_PEOPLE = 10_000
MAX_PRICE = 1_000_000_000.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_registration_id() -> str:
    return uuid4().hex


def _text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _column_length(attr: str) -> Optional[int]:
    return getattr(RegistrationRow.__table__.c[attr].type, "length", None)


def _is_connection_error(error: Exception) -> bool:
    if isinstance(error, OperationalError):
        return True
    return isinstance(error, DBAPIError) and error.connection_invalidated


def _format_amount(amount: float) -> str:
    return str(int(amount)) if amount.is_integer() else f"{amount:.2f}"


@dataclass
class CreateResult:
    registration: Registration
    degraded: bool = False
    store_error: Optional[str] = None


@dataclass
class ReconcileReport:
    pending: int = 0
    synced: int = 0
    failed: int = 0
    remaining: int = 0
    error: Optional[str] = None


class RegistrationService:

    def __init__(
        self,
        session_factory: sessionmaker,
        registration_log: RegistrationLog,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.registration_log = registration_log
        self.clock = clock

    # ---- validation -------------------------------------------------

    def build_registration(self, payload: RegistrationCreate) -> Registration:
        """Validate a raw payload and turn it into a new ``undone`` registration."""
        values = {}
        missing = []
        invalid = []
        for attr, field_name in REQUIRED_TEXT_FIELDS:
            values[attr] = _text(getattr(payload, attr))
            if values[attr] is None:
                missing.append(field_name)
            elif len(values[attr]) > _column_length(attr):
                invalid.append(field_name)

        total_price = _number(payload.total_price)
        if total_price is None or total_price <= 0 or total_price > MAX_PRICE:
            invalid.append("totalPrice")

        people = _number(payload.people)
        people = int(people) if people is not None and people >= 1 else 1
        if people > MAX_PEOPLE:
            invalid.append("people")

        unit_price = _number(payload.unit_price)
        if unit_price is None or unit_price < 0:
            unit_price = 0.0
        elif unit_price > MAX_PRICE:
            invalid.append("unitPrice")

        if missing or invalid:
            raise ValidationError(
                "Missing or invalid registration fields",
                missing=missing,
                invalid=invalid,
            )

        message = _text(payload.message) or (
            f"{values['name']} booked {values['tour_title']} for {people} person(s), "
            f"total {_format_amount(total_price)}"
        )

        return Registration(
            id=new_registration_id(),
            people=people,
            unit_price=unit_price,
            total_price=total_price,
            status=RegistrationStatus.UNDONE,
            message=message,
            created_at=self.clock(),
            sync_state=SyncState.SYNCED,
            **values,
        )

    @staticmethod
    def parse_status(value) -> RegistrationStatus:
        try:
            return RegistrationStatus(value)
        except ValueError:
            raise ValidationError(
                "Status must be 'done' or 'undone'",
                allowed=[s.value for s in RegistrationStatus],
            )

    # ---- operations -------------------------------------------------

    def create(self, payload: RegistrationCreate) -> CreateResult:
        registration = self.build_registration(payload)

        try:
            with self.session_factory() as session:
                stored = RegistrationRepository(session).add(registration)
        except SQLAlchemyError as e:
            logger.warning("Database write failed for registration %s, keeping it in the local log: %s",
                           registration.id, e)
            pending = registration.model_copy(update={"sync_state": SyncState.PENDING})
            try:
                self.registration_log.append(pending)
            except RegistrationLogError as log_error:
                logger.error("Registration %s could not be stored anywhere: %s",
                             registration.id, log_error.diagnostic)
                raise StoreUnavailable(
                    "Registration could not be stored",
                    diagnostic=f"{e}; {log_error.diagnostic}",
                )
            return CreateResult(registration=pending, degraded=True, store_error=str(e))

        try:
            self.registration_log.upsert(stored)
        except RegistrationLogError:
            logger.exception("Mirror write to the registration log failed for %s", stored.id)

        logger.info("Registration %s created for %s", stored.id, stored.tour_title)
        return CreateResult(registration=stored)

    def list(self, status_filter: Optional[str] = None) -> List[Registration]:
        status = None
        if status_filter in (RegistrationStatus.DONE.value, RegistrationStatus.UNDONE.value):
            status = RegistrationStatus(status_filter)

        try:
            with self.session_factory() as session:
                return RegistrationRepository(session).list(status)
        except SQLAlchemyError as e:
            logger.error("Listing registrations failed: %s", e)
            raise StoreUnavailable("Failed to load registrations", diagnostic=str(e))

    def update_status(self, registration_id: str, status_value) -> Registration:
        status = self.parse_status(status_value)
        if not isinstance(registration_id, str) or not REGISTRATION_ID_PATTERN.match(registration_id):
            raise ValidationError("Invalid registration id", id=str(registration_id))

        with self.session_factory() as session:
            repository = RegistrationRepository(session)
            try:
                row = repository.get_row(registration_id)
            except SQLAlchemyError as e:
                logger.error("Looking up registration %s failed: %s", registration_id, e)
                raise StoreUnavailable("Failed to load registration", diagnostic=str(e))

            if row is None:
                raise NotFound(f"Registration {registration_id} not found", id=registration_id)

            try:
                updated = repository.update_status(row, status, self.clock())
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("Updating registration %s failed: %s", registration_id, e)
                raise UpdateFailed("Failed to update registration", diagnostic=str(e))

        try:
            mirrored = self.registration_log.update_fields(
                updated.id,
                {
                    "status": updated.status.value,
                    "updatedAt": updated.to_json()["updatedAt"],
                    "syncState": SyncState.SYNCED.value,
                },
            )
            if mirrored is None:
                logger.debug("Registration %s has no local log entry", updated.id)
        except RegistrationLogError:
            logger.exception("Mirror update to the registration log failed for %s", updated.id)

        logger.info("Registration %s marked %s", updated.id, updated.status.value)
        return updated

    def reconcile(self) -> ReconcileReport:
        """Replay pending log entries into the database, oldest first.

        A connection failure stops the run. An entry the database rejects on
        its own is counted as failed and left pending; the run moves on to
        the next one.
        """
        pending = self.registration_log.pending_registrations()
        report = ReconcileReport(pending=len(pending), remaining=len(pending))
        if not pending:
            return report

        with self.session_factory() as session:
            repository = RegistrationRepository(session)
            for registration in pending:
                try:
                    if not repository.exists(registration.id):
                        repository.add(registration.model_copy(update={"sync_state": SyncState.SYNCED}))
                except (SQLAlchemyError, OverflowError, ValueError) as e:
                    session.rollback()
                    if isinstance(e, SQLAlchemyError) and _is_connection_error(e):
                        logger.warning("Reconcile stopped with %d registration(s) still pending: %s",
                                       report.remaining, e)
                        report.error = str(e)
                        break
                    logger.error("Pending registration %s was rejected by the database: %s", registration.id, e)
                    report.failed += 1
                    continue

                try:
                    self.registration_log.mark_synced(registration.id)
                except RegistrationLogError as e:
                    logger.error("Reconcile could not update the registration log: %s", e.diagnostic)
                    report.error = e.diagnostic
                    break
                report.synced += 1
                report.remaining -= 1

        if report.synced:
            logger.info("Reconciled %d pending registration(s)", report.synced)
        return report

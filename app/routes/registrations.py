from fastapi import APIRouter, Depends, Query, status
from typing import Dict, List, Optional

from app.config import Settings, get_settings
from app.db.database import get_session_factory
from app.models.registration import Registration, RegistrationCreate, StatusUpdate
from app.services.registration_service import RegistrationService
from app.storage.registration_log import get_registration_log

router = APIRouter(
    prefix="/api",
    tags=["registrations"],
    responses={
        400: {"description": "Bad Request"},
        404: {"description": "Not found"},
        500: {"description": "Registration store failure"}
    },
)


def get_registration_service() -> RegistrationService:
    return RegistrationService(get_session_factory(), get_registration_log())


@router.post("/registrations", status_code=status.HTTP_201_CREATED, response_model=Dict)
def create_registration(
    payload: RegistrationCreate,
    service: RegistrationService = Depends(get_registration_service),
    settings: Settings = Depends(get_settings)
):
    result = service.create(payload)
    if result.degraded:
        return {
            "success": False,
            "degraded": True,
            "message": "Registration saved locally; the primary store is unavailable and it will be synced later",
            "data": result.registration.to_json(),
            "supabaseError": result.store_error if settings.expose_errors else "Primary store unavailable"
        }
    return {
        "success": True,
        "message": "Registration received",
        "data": result.registration.to_json()
    }


@router.get("/admin/registrations", response_model=List[Registration])
def list_registrations(
    status_filter: Optional[str] = Query(None, alias="status"),
    service: RegistrationService = Depends(get_registration_service)
):
    return service.list(status_filter)


@router.post("/admin/registrations/reconcile", response_model=Dict)
def reconcile_registrations(service: RegistrationService = Depends(get_registration_service)):
    report = service.reconcile()
    return {
        "success": report.error is None and not report.failed,
        "message": f"{report.synced} of {report.pending} pending registration(s) synced",
        "data": {
            "pending": report.pending,
            "synced": report.synced,
            "failed": report.failed,
            "remaining": report.remaining
        }
    }


@router.patch("/admin/registrations/{registration_id}", response_model=Dict)
def update_registration_status(
    registration_id: str,
    update: StatusUpdate,
    service: RegistrationService = Depends(get_registration_service)
):
    updated = service.update_status(registration_id, update.status)
    return {
        "success": True,
        "message": f"Registration marked as {updated.status.value}",
        "data": updated.to_json()
    }

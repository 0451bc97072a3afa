import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.db.database import init_db
from app.errors import RegistrationError
from app.routes import catalog, inquiries, registrations
from app.services.reconciler import start_reconciler, stop_reconciler

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    current = get_settings()
    try:
        init_db()
    except SQLAlchemyError as e:
        # Bookings still land in the local log until the database is back
        logger.error("Registration database unavailable at startup: %s", e)

    reconciler = start_reconciler(registrations.get_registration_service, current.RECONCILE_INTERVAL_SECONDS)
    try:
        yield
    finally:
        await stop_reconciler(reconciler)


app = FastAPI(
    title="Tour Booking Backend",
    description="Catalog content and booking registrations for the tour-operator website",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RegistrationError)
async def registration_error_handler(request: Request, exc: RegistrationError):
    content = {"success": False, "message": exc.message, **exc.detail}
    if exc.diagnostic and get_settings().expose_errors:
        content["error"] = exc.diagnostic
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"success": False, "message": "Invalid request", "errors": exc.errors()}),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"success": False, "message": "Internal server error"}
    if get_settings().expose_errors:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


app.include_router(registrations.router)
app.include_router(inquiries.router)
app.include_router(catalog.router)


@app.get("/")
async def root():
    return {
        "message": "Welcome to the Tour Booking Backend API",
        "documentation": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT, reload=settings.ENVIRONMENT == "development")

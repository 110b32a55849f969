from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, load_settings
from .db import Database
from .errors import ClinicError
from .media import PUBLIC_PREFIX, MediaStore
from .routers import ALL_ROUTERS
from .seed import init_schema
from .sms import NetgsmGateway, SmsGateway

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


# =========================
# Error handler: risposta sempre {"error": "..."}
# =========================
def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Richiesta non valida."
    first = errors[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "valore non valido")
    return f"Campo '{field}' non valido: {msg}" if field else f"Richiesta non valida: {msg}"


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ClinicError)
    async def clinic_error_handler(request: Request, exc: ClinicError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Errore su %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": _validation_message(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


# =========================
# Factory
# =========================
def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    media: MediaStore | None = None,
    sms: SmsGateway | None = None,
) -> FastAPI:
    """
    Costruisce l'applicazione.
    I parametri permettono ai test di iniettare DB, archivio file e gateway SMS.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    database = database or Database(settings.database_url, echo=settings.sql_echo)
    media = media or MediaStore(settings.uploads_dir)
    sms = sms or NetgsmGateway.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # migrazioni + admin di default (non bloccanti in caso di errore)
        init_schema(database, settings)
        logger.info("API avviata (uploads in %s)", media.root)
        yield
        database.dispose()

    app = FastAPI(title="Dental Clinic API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.media = media
    app.state.sms = sms

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_error_handlers(app)

    @app.get("/", tags=["Health"])
    def root() -> dict:
        return {"message": "Diş Kliniği API çalışıyor!", "status": "OK"}

    for router in ALL_ROUTERS:
        app.include_router(router)

    app.mount(PUBLIC_PREFIX, StaticFiles(directory=media.root), name="uploads")
    return app

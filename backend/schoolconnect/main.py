"""
Point d'entrée principal de l'API SchoolConnect.
Démarrage : uvicorn schoolconnect.main:app --reload (depuis backend/)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import schoolconnect.models  # noqa: F401  (enregistre tous les modèles dans Base.metadata avant les routers)
from schoolconnect.config import settings
from schoolconnect.exceptions import SchoolConnectError
from schoolconnect.logging_config import configure_logging
from schoolconnect.routers import (
    announcements,
    attendance,
    audit,
    auth,
    billing,
    classrooms,
    conversations,
    dashboard,
    forms,
    grading,
    progression,
    students,
    tenants,
    users,
    ws,
)
from schoolconnect.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cycle de vie : configure les logs, démarre et arrête le scheduler APScheduler."""
    configure_logging()
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="SchoolConnect API",
    description="API multi-établissements de communication école ↔ familles",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS : autorise les origines locales en développement (CORS_ORIGIN_REGEX en production).
app.add_middleware(
    CORSMiddleware,
    allow_origins=[],
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "Accept", settings.TENANT_HEADER],
)


app.include_router(auth.router)
app.include_router(tenants.router)
app.include_router(users.router)
app.include_router(announcements.router)
app.include_router(attendance.router)
app.include_router(students.router)
app.include_router(classrooms.router)
app.include_router(conversations.router)
app.include_router(grading.router)
app.include_router(forms.router)
app.include_router(progression.router)
app.include_router(dashboard.router)
app.include_router(billing.router)
app.include_router(audit.router)
app.include_router(ws.router)


@app.exception_handler(SchoolConnectError)
async def schoolconnect_error_handler(request: Request, exc: SchoolConnectError) -> JSONResponse:
    """Traduit les erreurs métier en {"error": ...} avec leur code HTTP."""
    content = {"error": exc.message}
    if exc.details is not None:
        content["details"] = jsonable_encoder(exc.details)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Erreurs de validation Pydantic → 400 avec le détail par champ."""
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Données invalides.", "details": details})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Intercepte toutes les exceptions non gérées pour garantir que la réponse 500
    passe bien par CORSMiddleware (qui injecte les headers CORS).
    """
    logger.error("Exception non gérée : %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Une erreur interne est survenue."},
    )


@app.get("/api/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return {"status": "ok", "service": "SchoolConnect API", "version": "0.1.0"}

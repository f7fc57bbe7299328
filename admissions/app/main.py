# Admissions CRM backend entrypoint.

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from admissions.app.api import follow_ups
from admissions.app.api import leads
from admissions.app.api import settings as settings_api
from admissions.app.core.errors import (
    ConfigUnavailable,
    LeadNotFound,
    LeadValidationError,
    MissingStageParameters,
    StageAlreadySent,
    UnknownStageAction,
)
from admissions.app.core.logging import configure_logging
from admissions.app.core.settings import get_settings
from admissions.app.db.base import Base
from admissions.app.db.session import engine

logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, version=settings.api_version)

origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(leads.router)
app.include_router(follow_ups.router)
app.include_router(settings_api.router)


@app.exception_handler(LeadValidationError)
async def lead_validation_handler(request: Request, exc: LeadValidationError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation failed", "details": exc.errors},
    )


@app.exception_handler(ConfigUnavailable)
async def config_unavailable_handler(request: Request, exc: ConfigUnavailable):
    return JSONResponse(status_code=503, content={"success": False, "error": str(exc)})


@app.exception_handler(MissingStageParameters)
async def missing_parameters_handler(request: Request, exc: MissingStageParameters):
    return JSONResponse(status_code=422, content={"success": False, "error": str(exc), "missing": exc.missing})


@app.exception_handler(StageAlreadySent)
async def already_sent_handler(request: Request, exc: StageAlreadySent):
    return JSONResponse(status_code=409, content={"success": False, "error": str(exc)})


@app.exception_handler(UnknownStageAction)
async def unknown_stage_handler(request: Request, exc: UnknownStageAction):
    return JSONResponse(status_code=404, content={"success": False, "error": str(exc)})


@app.exception_handler(LeadNotFound)
async def lead_not_found_handler(request: Request, exc: LeadNotFound):
    return JSONResponse(status_code=404, content={"detail": "Lead not found"})


@app.get("/")
def read_root():
    return {"app": "Admissions CRM backend", "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.on_event("startup")
def prepare_service():
    configure_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    logger.info("Admissions CRM started environment=%s", settings.environment)

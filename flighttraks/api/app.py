"""FastAPI application factory."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request

# Load .env file from project root (must be before other imports)
load_dotenv()
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from flighttraks.api.routes import (  # noqa: E402
    aircraft,
    checklists,
    flights,
    imports,
    templates,
)
from flighttraks.contracts.result import ServiceError  # noqa: E402
from flighttraks.persistence.errors import DocumentNotFoundError  # noqa: E402
from flighttraks.services.adsb.factory import create_provider  # noqa: E402
from flighttraks.services.adsb.provider import ProviderError  # noqa: E402
from flighttraks.services.errors import (  # noqa: E402
    AttachConflictError,
    AuthorizationError,
    InvalidRequestError,
    PreconditionFailedError,
    WorkflowError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize Firebase Admin and the ADS-B provider on startup."""
    try:
        import firebase_admin
        firebase_admin.initialize_app()
        logger.info("Firebase Admin SDK initialized")
    except ValueError:
        # Already initialized
        logger.info("Firebase Admin SDK already initialized")
    except Exception as exc:
        logger.warning("Firebase Admin SDK init failed: %s", exc)

    app.state.adsb_provider = create_provider()
    logger.info("ADS-B provider: %s", app.state.adsb_provider.name)
    yield


app = FastAPI(
    title="FlightTraks API",
    description="Flight checklists, signatures and ADS-B reconciliation",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("CORS_ORIGINS", "http://localhost:5173").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(flights.router, prefix="/api")
app.include_router(checklists.router, prefix="/api")
app.include_router(imports.router, prefix="/api")
app.include_router(aircraft.router, prefix="/api")
app.include_router(templates.router, prefix="/api")


# ------------------------------------------------------------------
# Error mapping
# ------------------------------------------------------------------

_WORKFLOW_STATUS = [
    (InvalidRequestError, 400),
    (AuthorizationError, 403),
    (PreconditionFailedError, 409),
    (AttachConflictError, 409),
]


def _error_response(status_code: int, code: str, message: str, details: dict | None = None):
    body = ServiceError(code=code, message=message, details=details or None)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    status_code = next(
        (status for cls, status in _WORKFLOW_STATUS if isinstance(exc, cls)), 400
    )
    return _error_response(status_code, exc.code, exc.message, exc.details)


@app.exception_handler(DocumentNotFoundError)
async def not_found_handler(request: Request, exc: DocumentNotFoundError):
    return _error_response(
        404, exc.code, str(exc), {"collection": exc.collection, "id": exc.doc_id}
    )


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    logger.warning("ADS-B provider error on %s: %s", request.url.path, exc.message)
    return _error_response(502, exc.code, exc.message, {"status": exc.status})


@app.get("/api/health")
async def health():
    provider = getattr(app.state, "adsb_provider", None)
    return {"status": "ok", "adsb_provider": provider.name if provider else None}

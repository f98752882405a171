import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from familyhub.config import Settings
from familyhub.errors import FamilyHubError, InternalError, ValidationError
from familyhub.services import build_services

# Routers
from familyhub.routers import (
    document_router,
    family_router,
    upload_router,
    user_router,
)

logger = logging.getLogger(__name__)


# -----------------------
# ERROR RESPONSES
# -----------------------
def validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationError.default_message

    first = errors[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    if first.get("type") == "missing":
        return f"{field} is required" if field else "Missing field"
    return f"Invalid {field}" if field else ValidationError.default_message


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(FamilyHubError)
    def handle_domain_error(request: Request, exc: FamilyHubError):
        if isinstance(exc, InternalError):
            # Detail was logged where it happened; never sent to the client
            return JSONResponse(status_code=exc.status_code, content={"error": InternalError.default_message})
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    def handle_request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=ValidationError.status_code, content={"error": validation_message(exc)})

    @app.exception_handler(Exception)
    def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": InternalError.default_message})


# -----------------------
# CREATE APP
# -----------------------
def create_app(settings: Settings | None = None) -> FastAPI:
    """
    App factory. Run with: uvicorn familyhub.main:create_app --factory
    """
    settings = settings or Settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    services = build_services(settings)

    # Tables are created on startup; there are no migrations
    services.db.create_all()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        services.db.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Backend API for the Family Hub shared family documents application.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    # -----------------------
    # CORS
    # -----------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # -----------------------
    # ROUTES
    # -----------------------
    app.include_router(family_router.router)
    app.include_router(user_router.router)
    app.include_router(document_router.router)
    app.include_router(upload_router.router)

    # -----------------------
    # HEALTH CHECK
    # -----------------------
    @app.get("/")
    def root():
        return {"message": "Family Hub API is running!"}

    logger.info("Family Hub API ready (env=%s, storage=%s)", settings.ENV, settings.STORAGE_BACKEND)
    return app

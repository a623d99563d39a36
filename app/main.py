from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from fastapi.middleware.cors import CORSMiddleware

from app.settings import settings, app_logger
from app.api.root import root_router
from app.api.router import api_router
from app.models.models import RatingKind
from app.services import wire
from app.services.db.engine import StorageDriver, create_storage_driver, db_engine_check
from app.services.db.init_db import init_schema
from app.services.validation import REJECTION_REASONS


def custom_generate_unique_id(route: APIRoute):
    return f"{route.tags[0]}-{route.name}"


def create_app(storage: StorageDriver | None = None) -> FastAPI:
    """
    Builds the application. `storage` is used as-is when given, otherwise a
    driver is created from the DB_* settings when the app starts.
    """
    app = FastAPI(
        root_path=settings.ROOT_PATH,
        title=settings.APP_TITLE,
        version=settings.APP_VERSION,
        contact={
            "name": settings.APP_CONTACT_NAME,
            "email": str(settings.APP_CONTACT_EMAIL),
        },
        generate_unique_id_function=custom_generate_unique_id,
        openapi_url=settings.APP_OPENAPI_URL,
        docs_url=settings.APP_DOCS_URL,
        redoc_url=settings.APP_REDOC_URL,
        swagger_ui_oauth2_redirect_url=(
            settings.APP_DOCS_URL + "/oauth2-redirect" if settings.APP_DOCS_URL else None
        ),
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        status_code = response.status_code
        app_logger.info(
            f"{request.method} {request.url.path}",
            extra={"status_code": status_code}
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # unreadable bodies get the same 400 envelope as rejected submissions
        reason = next(
            (
                REJECTION_REASONS[kind]
                for kind in RatingKind
                if request.url.path.rstrip("/").endswith(f"/api/{kind.value}")
            ),
            "Malformed request",
        )
        return wire.failure(reason, status.HTTP_400_BAD_REQUEST)

    @app.on_event("startup")
    async def startup_event():
        # a failure here aborts startup, nothing is served without a schema
        app.state.storage = storage or create_storage_driver()
        await db_engine_check(app.state.storage)
        await init_schema(app.state.storage)

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.storage.dispose()

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.BACKEND_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_router)
    app.include_router(root_router)

    Instrumentator(
        should_ignore_untemplated=True,
        excluded_handlers=["/metrics"],
        registry=CollectorRegistry(),
    ).instrument(app).expose(
        app,
        endpoint="/metrics",
        include_in_schema=False,
        tags=["root"],
    )

    return app


app = create_app()

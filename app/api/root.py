import datetime
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from app.services.db.deps import get_storage
from app.services.db.engine import StorageDriver, db_engine_check
from app.services.db.errors import StorageError
from app.settings import settings

logger = logging.getLogger(__name__)

root_router = APIRouter(
    include_in_schema=False,
    tags=["root"],
)


@root_router.get("/", status_code=200, name="root")
def get_root():
    content = f"""
        <html>
        <head><title>{settings.APP_TITLE}</title></head>
        <body>
        <h1>{settings.APP_TITLE}</h1>
        """
    if settings.APP_DOCS_URL:
        content += f"""
        <p><a href='{settings.ROOT_PATH}{settings.APP_DOCS_URL}'>Swagger UI</a></p>
        """
    if settings.APP_REDOC_URL:
        content += f"""
        <p><a href='{settings.ROOT_PATH}{settings.APP_REDOC_URL}'>ReDoc</a></p>
        """
    content += f"""
        <p><a href='{settings.ROOT_PATH}/metrics'>Metrics</a></p>
        </body>
        </html>
        """
    return HTMLResponse(content=content)


@root_router.get("/status", status_code=200, name="status")
def get_health():
    return "ok"


@root_router.get("/api/test", status_code=200, name="api_test")
def get_api_test():
    return {
        "status": "success",
        "message": "API is working!",
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }


@root_router.get("/api/db-test", status_code=200, name="db_test")
async def get_db_test(storage: StorageDriver = Depends(get_storage)):
    try:
        await db_engine_check(storage)
    except StorageError as e:
        return {"success": False, "message": str(e)}
    return {"success": True, "message": "Database connection successful"}

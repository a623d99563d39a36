import uvicorn
from app.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=str(settings.LOG_LEVEL).lower(),
    )

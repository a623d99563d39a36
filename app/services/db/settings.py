from typing import Literal

from pydantic_settings import BaseSettings


class DbSettings(BaseSettings):
    # "sqlite" keeps everything in a local file, "postgres" uses a pooled server
    DB_BACKEND: Literal["sqlite", "postgres"] = "sqlite"

    DB_PATH: str = "./data.db"

    DB_HOST: str | None = "localhost"
    DB_PORT: int | None = 5432
    DB_USER: str | None = "radio"
    DB_PASSWORD: str | None = "radio"
    DB_NAME: str | None = "radio"

    DB_POOL_SIZE: int = 5
    DB_STATEMENT_TIMEOUT: float = 5.0
    DB_ECHO: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "allow"


settings = DbSettings()

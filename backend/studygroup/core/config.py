from typing import List, Literal, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "AI Study Group Facilitator"
    ENVIRONMENT: str = "development"
    API_PREFIX: str = "/api"

    # Security
    SECRET_KEY: str = "dev-secret-change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str):
            v = v.strip("[").strip("]").strip('"').strip("'")
            if not v:
                return []
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    # Storage - "memory" keeps everything in process, "database" goes through SQLAlchemy
    STORAGE_BACKEND: Literal["database", "memory"] = "database"
    DATABASE_URL: str = "sqlite+aiosqlite:///./studygroup.db"
    SEED_DEMO_DATA: bool = True

    # AI
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    AI_TIMEOUT_SECONDS: float = 60.0
    ASSISTANT_TRIGGER: str = "@ai"

    # Display timestamps on chat messages
    TIMEZONE: str = "UTC"

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file="backend_config.env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()

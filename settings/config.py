from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database settings (provided via .env)
    SURREALDB_URL: str = "ws://localhost:8000/rpc"
    SURREALDB_NS: str = "expenses"
    SURREALDB_DB: str = "main"
    SURREALDB_USER: str = "root"
    SURREALDB_PASS: str = "root"

    # Auth secrets (NO DEFAULTS)
    ENV_SECRET: str
    ENV_RESET_PASSWORD_TOKEN_SECRET: str
    ENV_VERIFICATION_TOKEN_SECRET: str
    JWT_LIFETIME_SECONDS: int = 60 * 60 * 24 * 7

    # HTTP
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # Reports
    EXPORT_MAX_ROWS: int = 5000

    LOG_LEVEL: str = "INFO"

settings = Settings()

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

EmbeddingProvider = Literal["hash", "openai", "local"]
EmailProvider = Literal["smtp", "test", "console"]
OAuthProvider = Literal["google", "disabled"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./querylinker.db"
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None
    BASE_URL: str = "http://localhost:8080"
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:8080",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8080",
    ]
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # embeddings
    EMBEDDING_PROVIDER: EmbeddingProvider = "hash"
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSIONS: int = 256
    LOCAL_EMBEDDING_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
    OPENAI_API_KEY: str | None = None

    # auth
    JWT_SECRET: str = "change-this-secret-in-production"
    JWT_EXPIRES_DAYS: int = 7
    JWT_REMEMBER_ME_DAYS: int = 30
    PASSWORD_RESET_TTL_MINUTES: int = 15

    OAUTH_PROVIDER: OAuthProvider = "disabled"
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_REDIRECT_URI: str = "http://localhost:8080/oauth-callback"

    # email
    EMAIL_PROVIDER: EmailProvider = "console"
    FROM_EMAIL: str = "noreply@querylinker.com"
    FROM_NAME: str = "QueryLinker"
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_USE_TLS: bool = True

    # connected systems
    JIRA_BASE_URL: str | None = None
    JIRA_USERNAME: str | None = None
    JIRA_API_KEY: str | None = None
    CONFLUENCE_BASE_URL: str | None = None
    CONFLUENCE_USERNAME: str | None = None
    CONFLUENCE_API_KEY: str | None = None
    GITHUB_TOKEN: str | None = None
    GITHUB_REPO: str | None = None
    SERVICENOW_INSTANCE_URL: str | None = None
    SERVICENOW_USERNAME: str | None = None
    SERVICENOW_API_KEY: str | None = None

settings = Settings()

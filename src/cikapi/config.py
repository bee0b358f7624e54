import os
from dataclasses import dataclass

from dotenv import load_dotenv
from psycopg.conninfo import make_conninfo

# Load the appropriate .env file on module import
env = os.environ.get("CIKAPI_ENV", "development").lower()
env_file = f".env.{env}"
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    # Fall back to the default .env file
    load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    environment: str
    db_host: str
    db_port: int
    db_user: str
    db_password: str
    db_name: str
    db_ssl: bool
    db_pool_size: int
    db_acquire_timeout_ms: int
    db_connect_timeout_ms: int
    db_query_timeout_ms: int
    listen_host: str
    listen_port: int
    log_level: str
    database_url_override: str | None = None

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            environment=os.environ.get("CIKAPI_ENV", env).lower(),
            db_host=os.environ.get("DB_HOST", "localhost"),
            db_port=int(os.environ.get("DB_PORT", "5432")),
            db_user=os.environ.get("DB_USER", "postgres"),
            db_password=os.environ.get("DB_PASSWORD", ""),
            db_name=os.environ.get("DB_NAME", "cik_database"),
            db_ssl=_env_bool("DB_SSL"),
            db_pool_size=int(os.environ.get("DB_POOL_SIZE", "10")),
            db_acquire_timeout_ms=int(os.environ.get("DB_ACQUIRE_TIMEOUT", "60000")),
            db_connect_timeout_ms=int(os.environ.get("DB_TIMEOUT", "60000")),
            db_query_timeout_ms=int(os.environ.get("DB_QUERY_TIMEOUT", "30000")),
            listen_host=os.environ.get("HOST", "0.0.0.0"),
            listen_port=int(os.environ.get("PORT", "3000")),
            log_level=os.environ.get("LOG_LEVEL", "info"),
            database_url_override=os.environ.get("DATABASE_URL") or None,
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def database_url(self) -> str:
        """
        Connection string for the pool.

        DATABASE_URL wins when set; otherwise the DSN is assembled from the
        discrete DB_* settings.
        """
        if self.database_url_override:
            return self.database_url_override
        return make_conninfo(
            host=self.db_host,
            port=self.db_port,
            user=self.db_user,
            password=self.db_password,
            dbname=self.db_name,
            sslmode="require" if self.db_ssl else "disable",
        )

    @property
    def connection_kwargs(self) -> dict:
        """Per-connection settings applied to every pooled connection."""
        return {
            # libpq takes whole seconds, and 0 would mean "wait forever"
            "connect_timeout": max(1, self.db_connect_timeout_ms // 1000),
            "options": f"-c statement_timeout={self.db_query_timeout_ms}",
        }

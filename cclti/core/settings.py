"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

SESSION_TTL_DEFAULT = 28_800
STATE_TTL_DEFAULT = 600
CLOCK_SKEW_DEFAULT = 30
JWKS_TIMEOUT_DEFAULT = 5.0
DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="CCLTI_DB_")

    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "cclti"
    password: str = "cclti"
    database: str = "cclti"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT

    @property
    def async_url(self) -> str:
        """Build async PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class LtiSettings(BaseSettings):
    """LTI tool, session and platform registration settings."""

    model_config = SettingsConfigDict(env_prefix="CCLTI_")

    app_url: str = "http://localhost:8080"
    dev_mode: bool = False
    debug: bool = False
    log_level: str = "info"
    create_schema: bool = False

    session_ttl: int = SESSION_TTL_DEFAULT
    state_ttl: int = STATE_TTL_DEFAULT
    clock_skew: int = CLOCK_SKEW_DEFAULT
    jwks_timeout: float = JWKS_TIMEOUT_DEFAULT
    session_cookie_name: str = "cc_session"

    lti_issuer: str = ""
    lti_client_id: str = ""
    lti_auth_endpoint: str = ""
    lti_jwks_uri: str = ""
    lti_platforms: dict[str, dict[str, str]] = {}

    @property
    def base_url(self) -> str:
        """App URL without a trailing slash."""
        return self.app_url.rstrip("/")

    @property
    def launch_url(self) -> str:
        """Redirect URI registered with the platform for id_token posts."""
        return f"{self.base_url}/lti/launch"

    @property
    def show_error_detail(self) -> bool:
        """Whether launch failures may include detail in the response."""
        return self.debug or self.dev_mode

"""Global configuration management using pydantic-settings.

Every value comes from a ``VISIBILITY_``-prefixed environment variable (or
an optional ``.env`` file) with a default that targets the Hivemoot Colony
deployment, so the checker runs with no configuration at all. The user agent
and the API tokens keep their bare names (``VISIBILITY_USER_AGENT``,
``GH_TOKEN``, ``GITHUB_TOKEN``), as CI providers set them. The
singleton returned by ``get_config`` is consulted once per run.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_VISIBILITY_USER_AGENT = "colony-visibility-check"


def resolve_visibility_user_agent(value: str | None) -> str:
    """Return the trimmed user agent override, or the default when blank."""
    configured = (value or "").strip()
    return configured or DEFAULT_VISIBILITY_USER_AGENT


class VisibilityConfig(BaseSettings):
    """Centralized configuration with environment variable binding.

    Attributes:
        environment: Deployment environment, bound into every log record.
        debug: Enable verbose exception diagnostics in logs.
        log_level: Minimum log level for output filtering.
        log_to_file: Also write structured JSON logs under ``log_dir``.
        log_dir: Directory path for structured JSON log files.
        log_rotation: Log file rotation interval.
        log_retention: Log file retention period.
        project_root: Directory holding ``index.html`` and ``public/``.
        repository: ``owner/name`` of the repository whose metadata is checked.
        github_api_url: Base URL of the repository-metadata API.
        default_deployed_base_url: Site probed when no usable homepage is known.
        visibility_user_agent: User-Agent sent with every probe.
        gh_token: Preferred API token (``GH_TOKEN``).
        github_token: Fallback API token (``GITHUB_TOKEN``).
        request_timeout_ms: Per-request timeout for every probe.
        freshness_max_age_hours: Maximum age of the deployed activity data.
        homepage_hosting_domain: Domain the repository homepage must live on.
        description_keyword: Word the repository description must mention.
    """

    model_config = SettingsConfigDict(
        env_prefix="VISIBILITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application Metadata
    environment: str = Field(default="development", description="Deployment environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )
    log_to_file: bool = Field(default=False, description="Enable the JSON file sink")
    log_dir: Path = Field(default=Path("logs"), description="Log output directory")
    log_rotation: str = Field(default="1 week", description="Log rotation interval")
    log_retention: str = Field(default="1 month", description="Log retention period")

    # Local Inputs
    project_root: Path = Field(
        default=Path("."), description="Root holding index.html and public/"
    )

    # Repository Metadata
    repository: str = Field(
        default="hivemoot/colony", pattern=r"^[^/\s]+/[^/\s]+$", description="owner/name"
    )
    github_api_url: str = Field(
        default="https://api.github.com", description="Repository-metadata API base URL"
    )
    visibility_user_agent: str = Field(
        default=DEFAULT_VISIBILITY_USER_AGENT,
        validation_alias="VISIBILITY_USER_AGENT",
        description="User-Agent for all probes",
    )
    gh_token: str | None = Field(
        default=None,
        validation_alias="GH_TOKEN",
        description="Preferred API token",
    )
    github_token: str | None = Field(
        default=None,
        validation_alias="GITHUB_TOKEN",
        description="Fallback API token",
    )

    # Deployed Site
    default_deployed_base_url: str = Field(
        default="https://hivemoot.github.io/colony",
        description="Fallback deployed base URL",
    )
    request_timeout_ms: int = Field(
        default=5000, ge=50, le=120000, description="Per-probe timeout in milliseconds"
    )
    freshness_max_age_hours: int = Field(
        default=18, ge=1, le=24 * 30, description="Maximum deployed data age"
    )

    # Repository Expectations
    homepage_hosting_domain: str = Field(
        default="github.io", description="Required homepage hosting domain"
    )
    description_keyword: str = Field(
        default="dashboard", min_length=1, description="Required description keyword"
    )

    @field_validator("log_dir", "project_root", mode="before")
    @classmethod
    def ensure_path(cls, value: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(value) if isinstance(value, str) else value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Any) -> Any:
        """Accept level names in any case (``debug`` -> ``DEBUG``)."""
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("visibility_user_agent", mode="before")
    @classmethod
    def default_blank_user_agent(cls, value: str | None) -> str:
        """Treat a blank override as absent."""
        return resolve_visibility_user_agent(value)

    @field_validator("github_api_url", "default_deployed_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Store base URLs without a trailing slash so paths can be appended."""
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"must be an absolute http(s) URL, got '{value}'")
        return value[:-1] if value.endswith("/") else value

    @property
    def api_token(self) -> str | None:
        """``GH_TOKEN`` if set, else ``GITHUB_TOKEN``; blank values count as unset."""
        for token in (self.gh_token, self.github_token):
            if token and token.strip():
                return token.strip()
        return None

    @property
    def repository_api_url(self) -> str:
        return f"{self.github_api_url}/repos/{self.repository}"

    @property
    def index_html_path(self) -> Path:
        return self.project_root / "index.html"

    @property
    def sitemap_path(self) -> Path:
        return self.project_root / "public" / "sitemap.xml"

    @property
    def robots_path(self) -> Path:
        return self.project_root / "public" / "robots.txt"


@lru_cache(maxsize=1)
def get_config() -> VisibilityConfig:
    """Retrieve the singleton VisibilityConfig instance.

    Returns:
        VisibilityConfig: The validated configuration instance.
    """
    return VisibilityConfig()

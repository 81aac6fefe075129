"""Repository metadata checks.

Fetches the repository record from the hosting platform's API once per run
and derives three checks from it: required topics, homepage, and description
keyword. Any failure to obtain the record is a configuration problem rather
than a visibility defect, so it is logged and the metadata checks are skipped.
"""

from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from config.settings import VisibilityConfig
from visibility.exceptions import PayloadFormatError
from visibility.logger import get_logger
from visibility.probe import ProbeClient
from visibility.results import CheckResult
from visibility.urls import resolve_homepage

log = get_logger(__name__)

REQUIRED_DISCOVERABILITY_TOPICS: tuple[str, ...] = (
    "autonomous-agents",
    "ai-governance",
    "multi-agent",
    "agent-collaboration",
    "dashboard",
    "react",
    "typescript",
    "github-pages",
    "open-source",
)


class RepositoryMetadata(BaseModel):
    """The subset of the repository record the checks read.

    Attributes:
        topics: Repository topics; null or non-string entries are dropped.
        homepage: Homepage URL as entered on the repository, if any.
        description: Repository description, if any.
    """

    topics: list[str] = []
    homepage: str | None = None
    description: str | None = None

    @field_validator("topics", mode="before")
    @classmethod
    def keep_string_topics(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [topic for topic in value if isinstance(topic, str)]

    @field_validator("homepage", "description", mode="before")
    @classmethod
    def drop_non_strings(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None


def build_api_headers(config: VisibilityConfig) -> dict[str, str]:
    """Headers for the repository-metadata request."""
    headers = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": config.visibility_user_agent,
    }
    token = config.api_token
    if token:
        headers["Authorization"] = f"token {token}"
    return headers


async def fetch_repository_metadata(
    client: ProbeClient, config: VisibilityConfig
) -> RepositoryMetadata | None:
    """Fetch the repository record.

    Returns:
        The parsed metadata, or None when it could not be fetched or parsed.
    """
    url = config.repository_api_url
    outcome = await client.fetch(url, headers=build_api_headers(config), read_body=True)

    if outcome.status is None:
        log.warning("Error checking repository metadata", url=url)
        return None
    if not 200 <= outcome.status < 300:
        log.warning("Could not fetch repository metadata", url=url, status=outcome.status)
        return None

    try:
        payload = outcome.json_body()
        if not isinstance(payload, dict):
            log.warning("Unexpected repository metadata shape", url=url)
            return None
        return RepositoryMetadata.model_validate(payload)
    except PayloadFormatError as exc:
        log.warning("Repository metadata is not valid JSON", url=url, error=exc.context["reason"])
    except ValidationError as exc:
        log.warning("Repository metadata failed validation", url=url, errors=exc.error_count())
    return None


def check_required_topics(metadata: RepositoryMetadata) -> CheckResult:
    """Every required topic must be present, compared case-insensitively."""
    required = len(REQUIRED_DISCOVERABILITY_TOPICS)
    present = {topic.lower() for topic in metadata.topics}
    missing = [topic for topic in REQUIRED_DISCOVERABILITY_TOPICS if topic not in present]

    return CheckResult(
        label=f"Repository has required topics ({required})",
        ok=not missing,
        details=(
            f"{required}/{required} required topics present"
            if not missing
            else f"Missing required topics: {', '.join(missing)}"
        ),
    )


def check_homepage(metadata: RepositoryMetadata, hosting_domain: str) -> CheckResult:
    """The homepage must be a valid http(s) URL on the hosting domain."""
    homepage = resolve_homepage(metadata.homepage)
    ok = bool(homepage) and hosting_domain.lower() in homepage

    if ok:
        details = f"Homepage is {homepage}"
    elif not homepage:
        details = "Repository homepage is missing or not a valid http(s) URL"
    else:
        details = f"Homepage {homepage} is not hosted on {hosting_domain}"

    return CheckResult(label="Repository homepage URL is set", ok=ok, details=details)


def check_description(metadata: RepositoryMetadata, keyword: str) -> CheckResult:
    description = metadata.description or ""
    ok = keyword.lower() in description.lower()
    return CheckResult(
        label=f"Repository description mentions {keyword}",
        ok=ok,
        details=None if ok else f"Description does not mention '{keyword}'",
    )


def evaluate_repository_metadata(
    metadata: RepositoryMetadata, config: VisibilityConfig
) -> list[CheckResult]:
    """All metadata-derived checks, in report order."""
    return [
        check_required_topics(metadata),
        check_homepage(metadata, config.homepage_hosting_domain),
        check_description(metadata, config.description_keyword),
    ]

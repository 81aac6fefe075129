"""URL resolution and normalization rules.

Every function here is total: malformed or disallowed input yields an empty
string instead of raising, so callers can chain extraction and resolution
without guarding each step. Serialization follows what browsers and crawlers
report for the same URL:

- scheme lower-cased, host lower-cased and IDNA-encoded, default port dropped
- ``.`` and ``..`` path segments collapsed, an empty path written as ``/``
- spaces, quotes, angle brackets and non-ASCII characters percent-encoded as
  UTF-8, while existing ``%XX`` escapes are kept as they are
"""

import re
from urllib.parse import SplitResult, quote, urljoin, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict

_DEFAULT_PORTS = {"http": 80, "https": 443}
_TRAILING_SLASHES = re.compile(r"/+$")

# Characters left as-is in each component; everything else is percent-encoded.
_PATH_SAFE = "/%:@!$&'()*+,;=[]|^"
_QUERY_SAFE = "/?%:@!$&()*+,;=[]|^`{}\\"
_FRAGMENT_SAFE = "/?%:@!$&'()*+,;=[]|^{}\\#"


class BaseUrlResolution(BaseModel):
    """Deployed base URL chosen for a run.

    Attributes:
        base_url: Scheme, host and path without a trailing slash.
        used_fallback: True when the repository homepage was unusable.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str
    used_fallback: bool


def _parse_absolute(raw: str) -> SplitResult | None:
    """Split an absolute URL, or return None if it has no scheme or host."""
    try:
        parts = urlsplit(raw.strip())
        _ = parts.port  # raises ValueError for a malformed port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts


def _remove_dot_segments(path: str) -> str:
    """Collapse ``.`` and ``..`` segments of an absolute path."""
    segments = path.split("/")[1:]
    output: list[str] = []
    for segment in segments:
        if segment == "..":
            if output:
                output.pop()
        elif segment != ".":
            output.append(segment)
    if segments and segments[-1] in (".", ".."):
        output.append("")
    return "/" + "/".join(output)


def _encode_host(host: str) -> str | None:
    if host.isascii():
        return host
    try:
        return host.encode("idna").decode("ascii")
    except UnicodeError:
        return None


def _serialize(parts: SplitResult) -> str:
    """Serialize split parts, or return '' when the host cannot be encoded."""
    scheme = parts.scheme.lower()
    host = _encode_host(parts.hostname or "")
    if host is None:
        return ""
    if ":" in host:
        host = f"[{host}]"

    netloc = host
    if parts.port is not None and parts.port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{parts.port}"
    if parts.username or parts.password:
        userinfo = parts.username or ""
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = quote(_remove_dot_segments(parts.path or "/"), safe=_PATH_SAFE)
    query = quote(parts.query, safe=_QUERY_SAFE)
    fragment = quote(parts.fragment, safe=_FRAGMENT_SAFE)
    return urlunsplit((scheme, netloc, path, query, fragment))


def _https_only(candidate: str) -> str:
    parts = _parse_absolute(candidate)
    if parts is None or parts.scheme.lower() != "https":
        return ""
    return _serialize(parts)


def absolute_https_url(raw: str) -> str:
    """Return ``raw`` serialized if it is already an absolute https URL.

    Relative values are rejected rather than resolved: crawlers fetch
    ``og:image`` and ``twitter:image`` as-is.

    Examples:
        >>> absolute_https_url("https://Example.org")
        'https://example.org/'
        >>> absolute_https_url("http://example.org/card.png")
        ''
    """
    return _https_only(raw or "")


def _resolve_https(raw: str, base: str) -> str:
    trimmed = (raw or "").strip()
    if not trimmed or trimmed.lower().startswith("data:"):
        return ""
    try:
        joined = urljoin(base, trimmed)
    except ValueError:
        return ""
    return _https_only(joined)


def resolve_https_url(raw: str, base_url: str) -> str:
    """Resolve a possibly relative href against a site base URL.

    The base is treated as a directory (``base_url + "/"``), so
    ``resolve_https_url("icon.png", "https://a.org/app")`` yields
    ``https://a.org/app/icon.png``. Blank values, ``data:`` URIs and anything
    that does not resolve to https yield ''.
    """
    return _resolve_https(raw, f"{base_url}/")


def resolve_https_url_from_document(raw: str, document_url: str) -> str:
    """Resolve a href the way a browser does inside the document it came from.

    Used for manifest icon ``src`` values, which are relative to the manifest
    file itself.
    """
    return _resolve_https(raw, document_url)


def normalize_url_for_match(value: str) -> str:
    """Drop trailing slashes and lower-case, for equality comparisons only."""
    return _TRAILING_SLASHES.sub("", value).lower()


def resolve_homepage(raw: str | None) -> str:
    """Validate and normalize a repository homepage URL.

    Only http and https are accepted. URLs carrying credentials are rejected.
    The query string and fragment are dropped and a single trailing slash is
    removed.

    Examples:
        >>> resolve_homepage("https://a.example.org/path/?q=1#f")
        'https://a.example.org/path'
        >>> resolve_homepage("https://u:p@a.example.org")
        ''
    """
    trimmed = (raw or "").strip()
    if not trimmed:
        return ""

    parts = _parse_absolute(trimmed)
    if parts is None or parts.scheme.lower() not in _DEFAULT_PORTS:
        return ""
    if parts.username or parts.password:
        return ""

    serialized = _serialize(parts._replace(query="", fragment=""))
    return serialized[:-1] if serialized.endswith("/") else serialized


def resolve_deployed_base_url(homepage: str | None, fallback: str) -> BaseUrlResolution:
    """Pick the deployed site to probe.

    A non-blank homepage starting with ``http`` wins, minus one trailing
    slash. Anything else falls back so the deployed checks still run.
    """
    trimmed = (homepage or "").strip()
    if trimmed and trimmed.startswith("http"):
        return BaseUrlResolution(
            base_url=trimmed[:-1] if trimmed.endswith("/") else trimmed,
            used_fallback=False,
        )
    return BaseUrlResolution(base_url=fallback, used_fallback=True)

"""Attribute extraction from raw HTML text.

The checker never builds a DOM. It scans the raw markup for opening tags and
reads single attribute values out of them, which is all the deployed-site
checks need and keeps the scan tolerant of documents a strict parser would
reject. Tag names, attribute names and attribute values compare
case-insensitively; values may be double-quoted, single-quoted or unquoted.
"""

import re
from functools import lru_cache

_JSON_LD_PATTERN = re.compile(r"""<script\s+type=["']application/ld\+json["']>""", re.IGNORECASE)
_SITEMAP_LASTMOD_PATTERN = re.compile(r"<lastmod>[^<]+</lastmod>", re.IGNORECASE)
_ROBOTS_SITEMAP_PATTERN = re.compile(r"Sitemap:\s*https?://\S+", re.IGNORECASE)


@lru_cache(maxsize=32)
def _tag_pattern(tag_name: str) -> re.Pattern[str]:
    return re.compile(rf"<{re.escape(tag_name)}\b[^>]*>", re.IGNORECASE)


@lru_cache(maxsize=32)
def _attribute_pattern(attribute: str) -> re.Pattern[str]:
    return re.compile(
        rf"""\b{re.escape(attribute)}\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>]+))""",
        re.IGNORECASE,
    )


def _attribute_value(tag: str, attribute: str) -> str:
    """Return the trimmed value of ``attribute`` in a single tag, or ''."""
    match = _attribute_pattern(attribute).search(tag)
    if match is None:
        return ""
    value = next((group for group in match.groups() if group is not None), "")
    return value.strip()


def _tokens(value: str) -> list[str]:
    return value.lower().split()


def extract_tag_attribute(
    html: str,
    tag_name: str,
    required_attribute: str,
    required_value: str,
    target_attribute: str,
) -> str:
    """Return ``target_attribute`` from the first tag matching a predicate.

    A tag matches when its ``required_attribute`` equals ``required_value``
    (case-insensitive, trimmed). For ``rel`` the attribute is a token list and
    ``required_value`` only has to be one of its tokens, so
    ``rel="icon shortcut"`` matches ``icon``.

    Tags whose required attribute is blank are skipped. A matching tag whose
    target attribute is missing or blank does not stop the scan; the next
    matching tag is tried.

    Args:
        html: Raw markup to scan.
        tag_name: Tag to look for, e.g. ``"meta"``.
        required_attribute: Attribute the predicate reads, e.g. ``"property"``.
        required_value: Value the predicate expects, e.g. ``"og:image"``.
        target_attribute: Attribute whose value is returned, e.g. ``"content"``.

    Returns:
        The trimmed target value, or an empty string when no tag qualifies.
    """
    expected = required_value.lower()
    token_match = required_attribute.lower() == "rel"

    for match in _tag_pattern(tag_name).finditer(html or ""):
        tag = match.group(0)
        actual = _attribute_value(tag, required_attribute)
        if not actual:
            continue

        if token_match:
            matched = expected in _tokens(actual)
        else:
            matched = actual.lower() == expected
        if not matched:
            continue

        target = _attribute_value(tag, target_attribute)
        if target:
            return target

    return ""


def extract_favicon_href(html: str) -> str:
    """Return the href of the first file-backed ``<link rel="icon">``.

    Embedded ``data:`` icons are skipped because a reachability probe cannot
    validate them.
    """
    for match in _tag_pattern("link").finditer(html or ""):
        tag = match.group(0)
        if "icon" not in _tokens(_attribute_value(tag, "rel")):
            continue

        href = _attribute_value(tag, "href")
        if not href or href.lower().startswith("data:"):
            continue
        return href

    return ""


def has_json_ld(html: str) -> bool:
    """True when the document declares a ``application/ld+json`` script."""
    return bool(_JSON_LD_PATTERN.search(html or ""))


def has_sitemap_lastmod(xml: str) -> bool:
    """True when a sitemap carries at least one non-empty ``<lastmod>``."""
    return bool(_SITEMAP_LASTMOD_PATTERN.search(xml or ""))


def has_robots_sitemap(text: str) -> bool:
    """True when robots.txt points crawlers at an absolute sitemap URL."""
    return bool(_ROBOTS_SITEMAP_PATTERN.search(text or ""))

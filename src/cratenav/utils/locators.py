"""Helpers for normalising package locators (URLs, paths, synthetic keys)."""

from __future__ import annotations

import posixpath
from urllib.parse import urljoin, urlsplit, urlunsplit

from cratenav.config import DEFAULT_METADATA_FILENAME

CURRENT_LOCATION = "./"
TEXT_SCHEME = "text:"


def is_url(locator: str) -> bool:
    return urlsplit(locator).scheme in ("http", "https")


def is_synthetic(locator: str) -> bool:
    return locator.startswith(TEXT_SCHEME)


def ensure_trailing_slash(path: str) -> str:
    if not path:
        return CURRENT_LOCATION
    return path if path.endswith("/") else f"{path}/"


def split_metadata_filename(
    location: str, suffix: str = DEFAULT_METADATA_FILENAME
) -> tuple[str, str | None]:
    """Split ``location`` into its base and a trailing metadata filename.

    Any last path segment ending in ``suffix`` counts as a metadata file, so
    ``crate/abc-ro-crate-metadata.json`` yields ``("crate/", "abc-ro-crate-metadata.json")``.
    Query strings and fragments on URLs are dropped from the base.
    """
    if is_url(location):
        parts = urlsplit(location)
        base_path, filename = _split_path(parts.path, suffix)
        base = urlunsplit((parts.scheme, parts.netloc, base_path, "", ""))
        return base, filename
    return _split_path(location, suffix)


def _split_path(path: str, suffix: str) -> tuple[str, str | None]:
    head, _, last = path.rpartition("/")
    if last.endswith(suffix):
        return (f"{head}/" if head or path.startswith("/") else ""), last
    return path, None


def base_location(locator: str, suffix: str = DEFAULT_METADATA_FILENAME) -> str:
    """Return the directory-like base a package's relative references resolve against."""
    base, _ = split_metadata_filename(locator, suffix)
    return ensure_trailing_slash(base)


def resolve_nested_locator(
    reference: str,
    current_base: str | None = None,
    *,
    suffix: str = DEFAULT_METADATA_FILENAME,
) -> tuple[str, str | None]:
    """Resolve a nested package reference into ``(locator, metadata_filename)``.

    Absolute URLs are kept as they are; relative or bare references are joined
    onto ``current_base``. The trailing metadata filename, if any, is stripped
    and returned separately so the package can be re-fetched with it. The
    locator always ends in ``/``; an empty result becomes ``"./"``.
    """
    reference = reference.strip()
    if is_url(reference):
        target = reference
    elif current_base and is_url(current_base):
        target = urljoin(ensure_trailing_slash(current_base), reference)
    elif current_base and current_base != CURRENT_LOCATION:
        target = _join_path(current_base, reference)
    else:
        target = _join_path("", reference)

    base, filename = split_metadata_filename(target, suffix)
    return ensure_trailing_slash(base), filename


def _join_path(base: str, reference: str) -> str:
    if reference.startswith("/"):
        joined = reference
    else:
        joined = posixpath.join(base, reference) if base else reference
    trailing = joined.endswith("/")
    normalized = posixpath.normpath(joined) if joined else ""
    if normalized == ".":
        return ""
    return f"{normalized}/" if trailing and not normalized.endswith("/") else normalized


def metadata_location(locator: str, metadata_filename: str | None) -> str:
    """Return the concrete location to fetch for a directory-like locator."""
    if not metadata_filename or not locator.endswith("/"):
        return locator
    return f"{locator}{metadata_filename}"


def display_name_for(locator: str) -> str:
    """Human-readable name for a locator: its last non-empty segment."""
    if is_synthetic(locator):
        return locator[len(TEXT_SCHEME):] or locator
    path = urlsplit(locator).path if is_url(locator) else locator
    segments = [segment for segment in path.split("/") if segment and segment != "."]
    if segments:
        return segments[-1]
    return urlsplit(locator).netloc if is_url(locator) else locator

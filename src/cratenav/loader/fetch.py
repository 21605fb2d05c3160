"""Retrieve crates from URLs, local files, ZIP archives or pasted text.

Every loader returns a validated :class:`CrateDocument`. Transport and parse
problems raise :class:`FetchError`; structurally invalid packages raise
:class:`ValidationError`.
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path
from typing import Any, Dict, Protocol, Union

import aiofiles
import httpx

from cratenav.config import AppConfig
from cratenav.errors import FetchError, ValidationError
from cratenav.models import ROOT_IDS, AlreadyIndexed, CrateDocument
from cratenav.utils.locators import TEXT_SCHEME, is_synthetic, is_url, metadata_location

LOGGER = logging.getLogger(__name__)

FetchOutcome = Union[CrateDocument, AlreadyIndexed]


class CrateFetcher(Protocol):
    async def fetch(self, locator: str, metadata_filename: str | None = None) -> FetchOutcome:
        ...


def validate_crate_json(data: Any) -> CrateDocument:
    """Check the minimal crate structure and wrap it in a document."""
    if not isinstance(data, dict):
        raise ValidationError("Invalid RO-Crate: data is not an object")
    if "@context" not in data:
        raise ValidationError("Invalid RO-Crate: missing @context")
    if "@graph" not in data:
        raise ValidationError("Invalid RO-Crate: missing @graph")
    graph = data["@graph"]
    if not isinstance(graph, list):
        raise ValidationError("Invalid RO-Crate: @graph is not an array")
    if not graph:
        raise ValidationError("Invalid RO-Crate: @graph is empty")
    roots = [entity for entity in graph if isinstance(entity, dict) and entity.get("@id") in ROOT_IDS]
    if not roots:
        raise ValidationError('Invalid RO-Crate: missing root dataset entity with @id "./" or "."')
    if len(roots) > 1:
        raise ValidationError('Invalid RO-Crate: more than one root dataset entity ("./" or ".")')
    return CrateDocument.from_json(data)


def parse_crate_text(text: str, *, source: str) -> CrateDocument:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FetchError(f"Failed to parse JSON from {source}: {exc}", locator=source) from exc
    return validate_crate_json(data)


async def fetch_crate_from_url(
    url: str,
    *,
    config: AppConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> CrateDocument:
    """Fetch a crate over HTTP(S), through the CORS proxy when configured."""
    config = config or AppConfig()
    target = config.proxied_url(url)
    LOGGER.info("Fetching crate from %s", url)
    try:
        if client is None:
            async with httpx.AsyncClient(follow_redirects=True, timeout=config.request_timeout) as own:
                response = await own.get(target)
        else:
            response = await client.get(target)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        raise FetchError(
            f"Failed to fetch crate: {status} {exc.response.reason_phrase}", locator=url
        ) from exc
    except httpx.HTTPError as exc:
        raise FetchError(f"Error fetching RO-Crate from URL {url}: {exc}", locator=url) from exc

    return parse_crate_text(response.text, source=url)


async def load_crate_from_file(path: Path | str) -> CrateDocument:
    """Load a crate from a JSON file, or from a ZIP archive containing one."""
    path = Path(path)
    if path.suffix.lower() == ".zip":
        return await extract_from_zip(path)
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as handle:
            text = await handle.read()
    except OSError as exc:
        raise FetchError(f"Error loading RO-Crate from file {path}: {exc}", locator=str(path)) from exc
    return parse_crate_text(text, source=str(path))


def _find_metadata_member(archive: zipfile.ZipFile, filename: str) -> str | None:
    names = archive.namelist()
    if filename in names:
        return filename
    for name in names:
        if name.endswith(filename) and not name.endswith("/"):
            return name
    return None


async def extract_from_zip(path: Path | str, *, metadata_filename: str | None = None) -> CrateDocument:
    """Read the metadata document out of a crate ZIP archive."""
    path = Path(path)
    filename = metadata_filename or AppConfig().metadata_filename
    try:
        async with aiofiles.open(path, "rb") as handle:
            payload = await handle.read()
    except OSError as exc:
        raise FetchError(f"Error extracting RO-Crate from ZIP {path}: {exc}", locator=str(path)) from exc

    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as archive:
            member = _find_metadata_member(archive, filename)
            if member is None:
                raise FetchError(f"{filename} not found in ZIP file {path}", locator=str(path))
            text = archive.read(member).decode("utf-8")
    except zipfile.BadZipFile as exc:
        raise FetchError(f"Error extracting RO-Crate from ZIP {path}: {exc}", locator=str(path)) from exc
    except UnicodeDecodeError as exc:
        raise FetchError(f"{filename} in {path} is not valid UTF-8", locator=str(path)) from exc

    return parse_crate_text(text, source=f"{path}!{member}")


def load_crate_from_text(text: str, *, source: str = "pasted text") -> CrateDocument:
    return parse_crate_text(text, source=source)


class DefaultFetcher:
    """Dispatch a locator to the matching loader.

    ``http(s)`` URLs are fetched over the network, ``text:`` keys resolve to
    text registered with :meth:`register_text`, anything else is a local path.
    """

    def __init__(self, config: AppConfig | None = None, client: httpx.AsyncClient | None = None) -> None:
        self.config = config or AppConfig()
        self.client = client
        self._texts: Dict[str, str] = {}

    def register_text(self, text: str, key: str | None = None) -> str:
        """Make pasted or shared text fetchable under a synthetic locator."""
        locator = key if key and is_synthetic(key) else f"{TEXT_SCHEME}{key or len(self._texts) + 1}"
        self._texts[locator] = text
        return locator

    async def fetch(self, locator: str, metadata_filename: str | None = None) -> FetchOutcome:
        if is_synthetic(locator):
            if locator not in self._texts:
                raise FetchError(f"No text registered under {locator}", locator=locator)
            return load_crate_from_text(self._texts[locator], source=locator)

        filename = metadata_filename or self.config.metadata_filename
        if is_url(locator):
            target = metadata_location(locator, filename)
            return await fetch_crate_from_url(target, config=self.config, client=self.client)

        path = Path(metadata_location(locator, filename))
        if path.is_dir():
            path = path / filename
        if path.suffix.lower() == ".zip":
            return await extract_from_zip(path, metadata_filename=filename)
        return await load_crate_from_file(path)

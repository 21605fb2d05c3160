"""FastAPI application exposing the crate navigator as a JSON API."""

from __future__ import annotations

import logging
from typing import Any, List

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from cratenav.config import AppConfig
from cratenav.errors import FetchError, NavigationError, ValidationError
from cratenav.graph.tree import find_path
from cratenav.graph.values import entity_values, value_to_dict
from cratenav.loader.expand import JsonLdExpander
from cratenav.loader.fetch import DefaultFetcher
from cratenav.models import CacheEntry
from cratenav.navigation.navigator import CrateNavigator

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="CrateNav API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_navigator: CrateNavigator | None = None


def get_navigator() -> CrateNavigator:
    """Return the process-wide navigator session, creating it on first use."""
    global _navigator
    if _navigator is None:
        config = AppConfig.from_env()
        _navigator = CrateNavigator(DefaultFetcher(config), JsonLdExpander(), config=config)
    return _navigator


class OpenPayload(BaseModel):
    locator: str | None = None
    text: str | None = None
    name: str | None = None
    is_first_package: bool = True


class NestedPayload(BaseModel):
    reference: str
    name: str | None = None


class SearchPayload(BaseModel):
    query: str
    limit: int = 50


def _summary(navigator: CrateNavigator, entry: CacheEntry | None) -> dict[str, Any]:
    return {
        "state": navigator.state.to_dict(),
        "loaded": entry is not None,
        "entity_count": len(navigator.entities),
    }


async def _guarded(action) -> CacheEntry | None:
    try:
        return await action
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except FetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except NavigationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.get("/state")
async def get_state(navigator: CrateNavigator = Depends(get_navigator)) -> dict[str, Any]:
    return navigator.state.to_dict()


@app.get("/tree")
async def get_tree(navigator: CrateNavigator = Depends(get_navigator)) -> dict[str, Any]:
    tree = navigator.tree
    if tree is None:
        raise HTTPException(status_code=404, detail="No crate loaded")
    return {"tree": tree.to_dict()}


@app.get("/tree/path/{entity_id:path}")
async def get_tree_path(entity_id: str, navigator: CrateNavigator = Depends(get_navigator)) -> dict[str, Any]:
    tree = navigator.tree
    if tree is None:
        raise HTTPException(status_code=404, detail="No crate loaded")
    path = find_path(tree, entity_id)
    if path is None:
        raise HTTPException(status_code=404, detail=f"Not in tree: {entity_id}")
    return {"path": path}


@app.get("/entities")
async def list_entities(navigator: CrateNavigator = Depends(get_navigator)) -> dict[str, Any]:
    return {"entities": list(navigator.entities)}


@app.get("/entities/{entity_id:path}")
async def get_entity(
    entity_id: str,
    crate: str | None = None,
    navigator: CrateNavigator = Depends(get_navigator),
) -> dict[str, Any]:
    entity = navigator.entity(entity_id, crate)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"Entity not found: {entity_id}")
    entry = navigator.cache.get(crate) if crate else navigator.current
    hints = entry.link_hints.get(entity_id, {}) if entry else {}
    return {
        "entity": entity,
        "values": {name: value_to_dict(value) for name, value in entity_values(entity, hints).items()},
        "references": {name: sorted(hint.value_iris) for name, hint in hints.items() if hint.value_iris},
    }


@app.get("/link-hints")
async def get_link_hints(navigator: CrateNavigator = Depends(get_navigator)) -> dict[str, Any]:
    return {
        "link_hints": {
            entity_id: {
                name: {"property_iri": hint.property_iri, "value_iris": sorted(hint.value_iris)}
                for name, hint in hints.items()
            }
            for entity_id, hints in navigator.link_hints.items()
        }
    }


@app.post("/open")
async def open_crate(payload: OpenPayload, navigator: CrateNavigator = Depends(get_navigator)) -> dict[str, Any]:
    if not payload.locator and not payload.text:
        raise HTTPException(status_code=400, detail="Either locator or text must be provided")

    locator = payload.locator
    if payload.text is not None:
        fetcher = navigator.fetcher
        if not isinstance(fetcher, DefaultFetcher):
            raise HTTPException(status_code=400, detail="Pasted crates are not supported by this fetcher")
        locator = fetcher.register_text(payload.text, payload.locator)

    entry = await _guarded(
        navigator.open_package(locator, payload.name, is_first_package=payload.is_first_package)
    )
    return _summary(navigator, entry)


@app.post("/open-nested")
async def open_nested(payload: NestedPayload, navigator: CrateNavigator = Depends(get_navigator)) -> dict[str, Any]:
    entry = await _guarded(navigator.open_nested_package(payload.reference, payload.name))
    return _summary(navigator, entry)


@app.post("/back")
async def go_back(navigator: CrateNavigator = Depends(get_navigator)) -> dict[str, Any]:
    entry = await _guarded(navigator.go_back())
    return _summary(navigator, entry)


@app.post("/breadcrumbs/{index}")
async def go_to_breadcrumb(index: int, navigator: CrateNavigator = Depends(get_navigator)) -> dict[str, Any]:
    entry = await _guarded(navigator.go_to_breadcrumb(index))
    return _summary(navigator, entry)


@app.post("/reset")
async def reset(navigator: CrateNavigator = Depends(get_navigator)) -> dict[str, Any]:
    navigator.reset()
    return navigator.state.to_dict()


@app.post("/search")
async def search_entities(
    payload: SearchPayload, navigator: CrateNavigator = Depends(get_navigator)
) -> dict[str, List[dict[str, Any]]]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    limit = max(1, min(payload.limit, 200))
    hits = navigator.search(query, limit)
    return {
        "results": [
            {"entity_id": hit.entity_id, "crate_id": hit.crate_id, "score": hit.score} for hit in hits
        ]
    }

"""Source URL to FetchTarget resolution.

Category URLs are matched against the marketplace catalog tree, which is
fetched once per process and flattened into an arena of ``CatalogEntry``
nodes. Search URLs are resolved directly from their query string.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlsplit

from core.errors import TargetNotFound
from core.models import CatalogEntry, FetchTarget, TargetKind
from core.ports import CatalogSourcePort

LOGGER = logging.getLogger(__name__)

MARKETPLACE_HOSTS = {"www.wildberries.ru", "wildberries.ru"}
SEARCH_PATH = "/catalog/0/search.aspx"
CATEGORY_FILTER_KEYS = ("priceU", "fbrand", "fsupplier", "xsubject", "sort")
PAGING_KEYS = {"page"}


def normalize_path(path: str) -> str:
    """Lower-case a catalog path and strip trailing slashes."""

    return path.strip().lower().rstrip("/")


def flatten_catalog(catalog: Any) -> List[CatalogEntry]:
    """Flatten the nested catalog tree into an arena of entries.

    Children are referenced by arena index. Traversal is iterative so deep
    trees cannot hit the recursion limit.
    """

    arena: List[CatalogEntry] = []
    children: Dict[int, List[int]] = {}
    roots = catalog if isinstance(catalog, list) else [catalog]
    # Stack of (node, parent index); reversed so siblings keep source order.
    stack: List[Tuple[Any, Optional[int]]] = [(node, None) for node in reversed(roots)]
    while stack:
        node, parent = stack.pop()
        if isinstance(node, list):
            stack.extend((item, parent) for item in reversed(node))
            continue
        if not isinstance(node, dict):
            continue
        index = len(arena)
        arena.append(
            CatalogEntry(
                name=node.get("name"),
                url=node.get("url"),
                shard=node.get("shard") or None,
                query=node.get("query") or None,
                parent=parent,
            )
        )
        children[index] = []
        if parent is not None:
            children[parent].append(index)
        childs = node.get("childs")
        if isinstance(childs, list):
            stack.extend((child, index) for child in reversed(childs))

    return [
        CatalogEntry(
            name=entry.name,
            url=entry.url,
            shard=entry.shard,
            query=entry.query,
            parent=entry.parent,
            children=tuple(children[index]),
        )
        for index, entry in enumerate(arena)
    ]


class TargetResolver:
    """Resolves marketplace URLs, caching the catalog for the process lifetime."""

    def __init__(self, source: CatalogSourcePort) -> None:
        self._source = source
        self._lock = asyncio.Lock()
        self._index: Optional[Dict[str, CatalogEntry]] = None

    async def resolve(self, url: str) -> FetchTarget:
        parts = urlsplit(url.strip())
        if parts.scheme not in ("http", "https") or parts.netloc.lower() not in MARKETPLACE_HOSTS:
            raise TargetNotFound(url, "not a marketplace URL")

        params = parse_qsl(parts.query, keep_blank_values=False)
        if normalize_path(parts.path) == SEARCH_PATH:
            return self._resolve_search(url, params)
        if not normalize_path(parts.path).startswith("/catalog/"):
            raise TargetNotFound(url, "not a catalog URL")
        return await self._resolve_category(url, parts.path, params)

    def _resolve_search(self, url: str, params: List[Tuple[str, str]]) -> FetchTarget:
        query = ""
        filters: Dict[str, str] = {}
        for key, value in params:
            if key == "search":
                query = value.strip()
            elif key not in PAGING_KEYS:
                filters[key] = value
        if not query:
            raise TargetNotFound(url, "search URL has no query")
        LOGGER.info("Resolved search query %r with %s filters", query, len(filters))
        return FetchTarget(kind=TargetKind.SEARCH, shard_or_query=query, filters=filters, label=query)

    async def _resolve_category(self, url: str, path: str, params: List[Tuple[str, str]]) -> FetchTarget:
        index = await self._catalog_index()
        LOGGER.info("Searching for category with path %s", path)
        entry = index.get(normalize_path(path))
        if entry is None:
            LOGGER.warning("Category not found in catalog: %s", path)
            raise TargetNotFound(url)
        if not entry.shard or not entry.query:
            LOGGER.warning("Category %s has no shard/query and cannot be fetched", entry.name)
            raise TargetNotFound(url, "catalog entry is not fetchable")

        filters = dict(parse_qsl(entry.query, keep_blank_values=False))
        for key, value in params:
            if key in CATEGORY_FILTER_KEYS:
                filters[key] = value
        LOGGER.info("Found category: %s", entry.name)
        return FetchTarget(
            kind=TargetKind.CATEGORY,
            shard_or_query=entry.shard,
            filters=filters,
            label=entry.name or entry.shard,
        )

    async def _catalog_index(self) -> Dict[str, CatalogEntry]:
        async with self._lock:
            if self._index is None:
                catalog = await self._source.fetch_catalog()
                entries = flatten_catalog(catalog)
                self._index = {}
                for entry in entries:
                    if entry.name and entry.url:
                        self._index.setdefault(normalize_path(entry.url), entry)
                LOGGER.info("Extracted %s categories", len(self._index))
            return self._index

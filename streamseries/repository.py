from __future__ import annotations

import logging
import random
import threading
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote

from streamseries.errors import DataFormatError, NotFoundError
from streamseries.models import Catalog, Series, SeriesPage
from streamseries.parser import build_catalog, describe_source, load_records

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 24


class CatalogRepository:
    """Holds the published catalog and answers listing and lookup queries.

    The catalog is an immutable snapshot kept in a single attribute. Readers
    grab the reference once per query; rebuilds construct a new snapshot and
    replace the reference in one assignment, so a query sees either the old
    or the new catalog in full.
    """

    def __init__(self, source: Optional[Path] = None, page_size: int = DEFAULT_PAGE_SIZE):
        self.source = source
        self.page_size = page_size if page_size > 0 else DEFAULT_PAGE_SIZE
        self.catalog: Catalog = Catalog()
        self._write_lock = threading.Lock()

    def publish(self, records: Any) -> Catalog:
        with self._write_lock:
            catalog = build_catalog(records)
            self.catalog = catalog
        return catalog

    def reload(self) -> bool:
        if self.source is None:
            logger.warning("No catalog source configured, keeping current catalog")
            return False
        try:
            self.publish(load_records(self.source))
        except DataFormatError as exc:
            logger.error("Catalog load from %s failed, keeping previous catalog: %s", self.source, exc)
            return False
        return True

    def list_series(
        self,
        page: Any = 0,
        limit: Any = None,
        query: Optional[str] = None,
        shuffle: bool = False,
        rng: Optional[random.Random] = None,
    ) -> SeriesPage:
        page = page if isinstance(page, int) and not isinstance(page, bool) and page >= 0 else 0
        if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
            limit = self.page_size

        items = self.catalog.summaries
        needle = (query or "").strip().casefold()
        if needle:
            items = [s for s in items if needle in s.name.casefold()]
        items = list(items)
        if shuffle:
            (rng or random).shuffle(items)

        total = len(items)
        start = page * limit
        return SeriesPage(
            total=total,
            page=page,
            has_more=start + limit < total,
            data=items[start : start + limit],
        )

    def get_series(self, name: str) -> Series:
        index = self.catalog.series
        found = index.get(name)
        if found is None:
            decoded = unquote(name)
            if decoded != name:
                found = index.get(decoded)
        if found is None:
            raise NotFoundError(name)
        return found

    def stats(self) -> dict:
        catalog = self.catalog
        return {
            "series": len(catalog.series),
            "episodes": catalog.episode_count,
            "loaded": catalog.loaded,
        }

    def describe_source(self) -> dict:
        if self.source is None:
            return {"error": "No data source configured"}
        return describe_source(self.source)

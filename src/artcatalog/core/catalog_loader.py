"""JSON catalog loading.

The catalog lives in a single JSON document::

    {
      "categories": [
        {
          "id": "heroes",
          "name": "Superheroes",
          "short_name": "Heroes",
          "icon": "crown",
          "featured": true,
          "sort_order": 0,
          "styles": [
            {"id": "marvel-hero", "name": "Marvel Hero", "popular": true, ...}
          ]
        }
      ]
    }

Entries may be listed under ``"entries"``, ``"styles"`` or ``"models"``.
Older catalog files carry a boolean ``popular`` flag and a ``premium`` flag
instead of a numeric popularity and an accessibility block; both shapes are
accepted:

- ``popularity`` given: used as-is (validated to 0-100)
- ``popular: true`` without ``popularity``: popularity 90
- neither: popularity 50

Every entry's ``category_id`` is taken from the category it is listed under.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from artcatalog.core.catalog_index import CatalogError
from artcatalog.core.models import Accessibility, CatalogEntry, Category

logger = logging.getLogger(__name__)

LEGACY_POPULAR_SCORE = 90.0
DEFAULT_POPULARITY = 50.0

_ENTRY_KEYS = ("entries", "styles", "models")


def load_catalog(path: Path) -> list[Category]:
    """Read a catalog JSON file and build its categories.

    Args:
        path: Path to the catalog JSON file.

    Returns:
        Categories in file order.

    Raises:
        CatalogError: If the file is missing, is not valid JSON, or contains
            records that fail validation.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as handle:
            raw = json.load(handle)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}") from e

    categories = parse_catalog(raw)
    logger.info(
        "Loaded %d categories (%d entries) from %s",
        len(categories),
        sum(category.entry_count for category in categories),
        path,
    )
    return categories


def parse_catalog(raw: Any) -> list[Category]:
    """Build categories from an already-decoded catalog document.

    Accepts either ``{"categories": [...]}`` or a bare list of categories.

    Raises:
        CatalogError: If the document shape is wrong or a record is invalid.
    """
    if isinstance(raw, dict):
        raw = raw.get("categories")
    if not isinstance(raw, list):
        raise CatalogError("Catalog document must contain a list of categories")

    return [_parse_category(item, position) for position, item in enumerate(raw)]


def _parse_category(raw: Any, position: int) -> Category:
    if not isinstance(raw, dict):
        raise CatalogError(f"Category #{position} is not an object")

    category_id = raw.get("id")
    raw_entries: list = []
    for key in _ENTRY_KEYS:
        raw_entries.extend(raw.get(key) or [])

    entries = tuple(_parse_entry(item, category_id) for item in raw_entries)
    fields = {key: value for key, value in raw.items() if key not in _ENTRY_KEYS}

    try:
        return Category(**fields, entries=entries)
    except PydanticValidationError as e:
        raise CatalogError(f"Invalid category {category_id!r}: {e}") from e


def _parse_entry(raw: Any, category_id: str | None) -> CatalogEntry:
    if not isinstance(raw, dict):
        raise CatalogError(f"Entry in category {category_id!r} is not an object")

    data = dict(raw)
    legacy_popular = data.pop("popular", None)
    legacy_premium = data.pop("premium", None)

    if "popularity" not in data:
        data["popularity"] = LEGACY_POPULAR_SCORE if legacy_popular else DEFAULT_POPULARITY

    if "accessibility" not in data and legacy_premium is not None:
        data["accessibility"] = Accessibility(
            is_premium=bool(legacy_premium),
            minimum_tier="premium" if legacy_premium else "free",
        )

    data["category_id"] = category_id

    try:
        return CatalogEntry.model_validate(data)
    except PydanticValidationError as e:
        raise CatalogError(f"Invalid entry {data.get('id')!r}: {e}") from e

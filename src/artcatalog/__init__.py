"""Art Catalog - scoring, recommendation and rarity engine for an AI art catalog."""

__version__ = "0.1.0"

from artcatalog.core.catalog_index import CatalogIndex, CatalogIndexHolder
from artcatalog.core.config import CatalogConfig, config
from artcatalog.core.rarity import RarityDrawer
from artcatalog.core.scorer import RelevanceScorer
from artcatalog.core.scoring_cache import ScoringCache
from artcatalog.core.service import CatalogService

__all__ = [
    "CatalogConfig",
    "CatalogIndex",
    "CatalogIndexHolder",
    "CatalogService",
    "RarityDrawer",
    "RelevanceScorer",
    "ScoringCache",
    "config",
]

"""Core functionality for catalog scoring.

This module provides the core components of the Art Catalog engine:

- **CatalogIndex**: Immutable, read-optimised catalog snapshot
- **CatalogIndexHolder**: Atomic publication of rebuilt snapshots
- **RelevanceScorer**: Recommendation, trending and search ranking
- **RarityDrawer**: Prompt-boosted rarity tier assignment
- **ScoringCache**: TTL cache for ranking results
- **CatalogService**: Facade wiring the components together
- **CatalogConfig**: Configuration management using Pydantic Settings
- **config**: Global configuration instance (loads from environment variables)

Architecture Overview
---------------------
The core module follows a layered architecture:

1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with ARTCATALOG_ in .env files

2. **Domain Layer** (models.py, randomness.py, validation.py):
   - Frozen Pydantic records for entries, categories and results
   - Random-source protocol threaded through stochastic code
   - Request validation errors

3. **Engine Layer** (catalog_index.py, scorer.py, rarity.py, scoring_cache.py):
   - Pure computations over in-memory data, no I/O

4. **Service Layer** (catalog_loader.py, service.py):
   - JSON catalog loading
   - Cached ranking and catalog refresh

Usage Example
-------------
    from artcatalog.core import CatalogService, config

    service = CatalogService.from_config(config)
    for item in service.trending(limit=5):
        print(item.entry.name, item.score)

    rarity = service.draw("an ethereal phoenix, cinematic, 8k")
    print(rarity.display_name, rarity.quality_score)

See Also
--------
- CatalogService: Entry point for request handlers
- CatalogConfig: Configuration options and environment variables
"""

from artcatalog.core.catalog_index import CatalogError, CatalogIndex, CatalogIndexHolder
from artcatalog.core.config import CatalogConfig, config
from artcatalog.core.rarity import RARITY_TIERS, RarityDrawer
from artcatalog.core.scorer import RelevanceScorer
from artcatalog.core.scoring_cache import ScoringCache, make_cache_key
from artcatalog.core.service import CatalogService
from artcatalog.core.validation import ValidationError

__all__ = [
    "CatalogConfig",
    "CatalogError",
    "CatalogIndex",
    "CatalogIndexHolder",
    "CatalogService",
    "RARITY_TIERS",
    "RarityDrawer",
    "RelevanceScorer",
    "ScoringCache",
    "ValidationError",
    "config",
    "make_cache_key",
]

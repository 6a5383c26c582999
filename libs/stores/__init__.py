# =============================================================================
# Record Store Walkers
# =============================================================================
# One CollectionWalker per record-store kind, selected through the static
# WalkerRegistry.
# =============================================================================

from .base import (
    BatchResult,
    ChangeLogError,
    CollectionWalker,
    FieldValue,
    WalkContext,
    candidate_regex,
)
from .catalog import MongoAssetCatalog
from .content import ContentWalker
from .meta import MetaWalker, PostMetaWalker, TermMetaWalker, UserMetaWalker
from .options import OptionsWalker
from .registry import WalkerRegistry
from .taxonomy import TermTaxonomyWalker, TermsWalker
from .theme import ThemeModsWalker

__all__ = [
    "BatchResult",
    "ChangeLogError",
    "CollectionWalker",
    "ContentWalker",
    "FieldValue",
    "MetaWalker",
    "MongoAssetCatalog",
    "OptionsWalker",
    "PostMetaWalker",
    "TermMetaWalker",
    "TermTaxonomyWalker",
    "TermsWalker",
    "ThemeModsWalker",
    "UserMetaWalker",
    "WalkContext",
    "WalkerRegistry",
    "candidate_regex",
]

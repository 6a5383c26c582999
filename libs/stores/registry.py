# =============================================================================
# Walker Registry
# =============================================================================
# Static registry mapping collection identifiers to walker instances. Builds
# the shared resolver, value rewriter, asset catalog and protected field policy
# from RewriteSettings.
# =============================================================================

from pathlib import Path
from typing import Callable, Optional

from pymongo.database import Database

from libs.models.config import RewriteSettings
from libs.rewriting import ProtectedFieldPolicy, ReferenceResolver, ValueRewriter

from .base import CollectionWalker
from .catalog import MongoAssetCatalog
from .content import ContentWalker
from .meta import PostMetaWalker, TermMetaWalker, UserMetaWalker
from .options import OptionsWalker
from .taxonomy import TermTaxonomyWalker, TermsWalker
from .theme import ThemeModsWalker

__all__ = ["WalkerRegistry"]


class WalkerRegistry:
    """
    Registry of collection walkers for one database.

    Args:
        db: Database holding the record stores
        settings: Rewrite settings
        exists: Optional file existence check (defaults to Path.is_file)
    """

    def __init__(
        self,
        db: Database,
        settings: RewriteSettings,
        exists: Optional[Callable[[Path], bool]] = None,
    ) -> None:
        self.settings = settings
        self.resolver = ReferenceResolver(settings.resolver_config(), exists=exists)
        self.rewriter = ValueRewriter(
            self.resolver,
            opaque_field_patterns=settings.opaque_field_patterns,
            opaque_size_threshold=settings.opaque_size_threshold,
        )
        self.catalog = MongoAssetCatalog(db)
        self.policy = ProtectedFieldPolicy(
            settings.protected_fields, self.catalog, self.resolver
        )

        walkers: list[CollectionWalker] = [
            ContentWalker(db, self.rewriter),
            PostMetaWalker(db, self.rewriter),
            OptionsWalker(db, self.rewriter, settings.excluded_options),
            TermMetaWalker(db, self.rewriter),
            UserMetaWalker(db, self.rewriter),
            TermsWalker(db, self.rewriter),
            TermTaxonomyWalker(db, self.rewriter),
            ThemeModsWalker(db, self.rewriter, self.policy),
        ]
        self._walkers = {walker.name: walker for walker in walkers}

    def names(self) -> list[str]:
        return list(self._walkers)

    def __contains__(self, name: object) -> bool:
        return name in self._walkers

    def get(self, name: str) -> CollectionWalker:
        """
        Return the walker for a collection identifier.

        Raises:
            KeyError: If no walker is registered under that name
        """
        try:
            return self._walkers[name]
        except KeyError:
            raise KeyError(f"No walker registered for collection: {name}") from None

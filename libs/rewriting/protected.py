# =============================================================================
# Protected Field Policy
# =============================================================================
# Fields such as a site logo or icon hold an asset identifier, not a URL. They
# are only ever moved to the identifier of the migrated asset, keeping the
# stored type, and are never replaced by a reference string.
# =============================================================================

import logging
from typing import Any, Iterable, Optional, Protocol

from .resolver import ReferenceResolver
from .values import RewriteResult

logger = logging.getLogger(__name__)

__all__ = ["AssetCatalog", "ProtectedFieldPolicy"]


class AssetCatalog(Protocol):
    """Maps asset identifiers to upload-relative files and back."""

    def file_for(self, asset_id: int) -> Optional[str]:
        ...

    def id_for(self, relative_file: str) -> Optional[int]:
        ...


def _as_identifier(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.isdigit():
        number = int(value)
        return number if number > 0 else None
    return None


class ProtectedFieldPolicy:
    """
    Identifier-preserving rewrite for protected fields.

    Args:
        fields: Protected field names
        catalog: Asset catalog used to map identifiers to files and back
        resolver: Resolver supplying extension handling and existence checks
    """

    def __init__(
        self,
        fields: Iterable[str],
        catalog: AssetCatalog,
        resolver: ReferenceResolver,
    ) -> None:
        self.fields = frozenset(fields)
        self.catalog = catalog
        self.resolver = resolver

    def __contains__(self, field_name: object) -> bool:
        return field_name in self.fields

    def resolve(self, value: Any) -> RewriteResult:
        """
        Move a protected identifier to its migrated asset's identifier.

        Returns the untouched value unless the identifier names a legacy-format
        asset whose migrated file exists on disk and is itself catalogued.
        """
        asset_id = _as_identifier(value)
        if asset_id is None:
            return RewriteResult(value=value)

        source = self.catalog.file_for(asset_id)
        if source is None or not self.resolver.is_legacy(source):
            return RewriteResult(value=value)

        migrated = self.resolver.swap_extension(source)
        if self.resolver.upload_file(migrated) is None:
            return RewriteResult(value=value, skipped_no_target=1)

        migrated_id = self.catalog.id_for(migrated)
        if migrated_id is None or migrated_id == asset_id:
            logger.debug(f"No catalogued asset for migrated file {migrated}")
            return RewriteResult(value=value, skipped_no_target=1)

        new_value = str(migrated_id) if isinstance(value, str) else migrated_id
        return RewriteResult(value=new_value, changed=True, replacements=1)

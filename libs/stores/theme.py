"""Protected configuration store walker (theme modifications)."""

from typing import Any, Iterable

from pymongo.database import Database

from libs.models.change import ChangeRecord
from libs.rewriting import ProtectedFieldPolicy, RewriteResult, ValueRewriter

from .base import CollectionWalker, FieldValue

__all__ = ["ThemeModsWalker"]


class ThemeModsWalker(CollectionWalker):
    """
    Walk `{_id: <theme slug>, mods: {name: value}}` documents.

    The store is small, so every theme is processed in one call and the
    collection is then complete. Protected mods go through the protected
    field policy and only ever receive another asset identifier.
    """

    name = "theme_mods"
    collection_name = "theme_mods"
    paginated = False

    def __init__(
        self,
        db: Database,
        rewriter: ValueRewriter,
        policy: ProtectedFieldPolicy,
    ) -> None:
        super().__init__(db, rewriter)
        self.policy = policy

    def candidate_filter(self) -> dict:
        return {}

    def fetch_batch(self, cursor: int, limit: int) -> list[dict]:
        return list(self.collection.find({}).sort("_id", 1))

    def fields(self, doc: dict) -> Iterable[FieldValue]:
        mods = doc.get("mods") or {}
        for name, value in mods.items():
            yield FieldValue(record_id=str(doc["_id"]), field=name, value=value)

    def rewrite_field(self, item: FieldValue) -> RewriteResult:
        if item.field in self.policy:
            return self.policy.resolve(item.value)
        return self.rewriter.rewrite(item.value, item.field)

    def write_field(self, change: ChangeRecord, value: Any) -> None:
        self.collection.update_one(
            {"_id": change.record_id},
            {"$set": {f"mods.{change.field}": value}},
        )

"""Taxonomy description walkers."""

from typing import Any, Iterable

from libs.models.change import ChangeRecord

from .base import CollectionWalker, FieldValue

__all__ = ["TermsWalker", "TermTaxonomyWalker"]


class _DescriptionWalker(CollectionWalker):
    def candidate_filter(self) -> dict:
        return {"description": self._candidate}

    def fields(self, doc: dict) -> Iterable[FieldValue]:
        yield FieldValue(
            record_id=str(doc["_id"]),
            field="description",
            value=doc.get("description"),
        )

    def write_field(self, change: ChangeRecord, value: Any) -> None:
        self.collection.update_one(
            {"_id": int(change.record_id)},
            {"$set": {"description": value}},
        )


class TermsWalker(_DescriptionWalker):
    name = "terms"
    collection_name = "terms"


class TermTaxonomyWalker(_DescriptionWalker):
    name = "term_taxonomy"
    collection_name = "term_taxonomy"

"""Primary content walker (posts)."""

from typing import Any, Iterable

from libs.models.change import ChangeRecord

from .base import CollectionWalker, FieldValue

__all__ = ["ContentWalker"]


class ContentWalker(CollectionWalker):
    """
    Walk post bodies and excerpts.

    The only store that reports a total, so progress can be displayed as
    processed / total.
    """

    name = "posts"
    collection_name = "posts"
    reports_total = True

    FIELDS = ("post_content", "post_excerpt")

    def candidate_filter(self) -> dict:
        return {"$or": [{name: self._candidate} for name in self.FIELDS]}

    def count_total(self, cursor: int) -> int:
        query = {"_id": {"$gt": cursor}, **self.candidate_filter()}
        return self.collection.count_documents(query)

    def fields(self, doc: dict) -> Iterable[FieldValue]:
        for name in self.FIELDS:
            value = doc.get(name)
            if isinstance(value, str) and value:
                yield FieldValue(record_id=str(doc["_id"]), field=name, value=value)

    def write_field(self, change: ChangeRecord, value: Any) -> None:
        self.collection.update_one(
            {"_id": int(change.record_id)},
            {"$set": {change.field: value}},
        )

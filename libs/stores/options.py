"""Global key-value configuration walker."""

from typing import Any, Iterable

from pymongo.database import Database

from libs.models.change import ChangeRecord
from libs.rewriting import ValueRewriter

from .base import CollectionWalker, FieldValue

__all__ = ["OptionsWalker"]


class OptionsWalker(CollectionWalker):
    """
    Walk `{_id, option_name, option_value}` rows, skipping excluded keys.

    Excluded options (plugin lists, scheduled tasks, rewrite rules) are
    machine-managed and never rewritten. Change records name the option as
    their field; the stored column is always option_value.
    """

    name = "options"
    collection_name = "options"

    def __init__(
        self,
        db: Database,
        rewriter: ValueRewriter,
        excluded_options: Iterable[str] = (),
    ) -> None:
        super().__init__(db, rewriter)
        self.excluded_options = list(excluded_options)

    def candidate_filter(self) -> dict:
        query: dict = {"option_value": self._candidate}
        if self.excluded_options:
            query["option_name"] = {"$nin": self.excluded_options}
        return query

    def fields(self, doc: dict) -> Iterable[FieldValue]:
        name = str(doc.get("option_name"))
        yield FieldValue(
            record_id=name,
            field=name,
            value=doc.get("option_value"),
            row_id=int(doc["_id"]),
        )

    def write_field(self, change: ChangeRecord, value: Any) -> None:
        if change.row_id is not None:
            selector = {"_id": change.row_id}
        else:
            selector = {"option_name": change.record_id}
        self.collection.update_one(selector, {"$set": {"option_value": value}})

# =============================================================================
# Collection Walker Base
# =============================================================================
# One walker per record-store kind. A walker fetches one bounded batch of
# candidate records after a cursor, runs every rewritable field through the
# value rewriter, persists changed fields (unless dry-running) and reports the
# new cursor with batch statistics.
# =============================================================================

import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Iterable, Optional

from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from libs.models.change import ChangeRecord, truncate_preview
from libs.rewriting import RewriteResult, ValueRewriter

logger = logging.getLogger(__name__)

__all__ = [
    "BatchResult",
    "ChangeLogError",
    "CollectionWalker",
    "FieldValue",
    "WalkContext",
    "candidate_regex",
]


class ChangeLogError(Exception):
    """A change record could not be persisted; the field was left untouched."""


def candidate_regex(extensions: Iterable[str]) -> dict:
    """MongoDB filter matching values that mention a legacy extension."""
    pattern = r"\.(" + "|".join(re.escape(e) for e in extensions) + ")"
    return {"$regex": pattern, "$options": "i"}


@dataclass
class WalkContext:
    """
    Per-call settings handed to a walker.

    Attributes:
        dry_run: Record changes without persisting them
        deadline: Clock reading after which no further record is started
        preview_length: Length of before/after previews in change records
        clock: Monotonic clock used for the deadline
        log_change: Persists a change record; called before the field is written
    """

    dry_run: bool = False
    deadline: Optional[float] = None
    preview_length: int = 200
    clock: Callable[[], float] = time.monotonic
    log_change: Optional[Callable[[ChangeRecord], None]] = None

    def expired(self) -> bool:
        return self.deadline is not None and self.clock() >= self.deadline


@dataclass
class FieldValue:
    """One rewritable field of a fetched record."""

    record_id: str
    field: str
    value: Any
    row_id: Optional[int] = None


@dataclass
class BatchResult:
    """
    Outcome of one walker batch.

    completed is True only when the collection is exhausted: the batch was
    read without error, was not interrupted and came back short.
    """

    cursor: int = 0
    scanned: int = 0
    updated: int = 0
    replacements: int = 0
    skipped_external: int = 0
    skipped_no_target: int = 0
    skipped_opaque: int = 0
    failures: int = 0
    completed: bool = False
    total: int = 0
    changes: list[ChangeRecord] = field(default_factory=list)
    read_error: Optional[str] = None
    log_error: Optional[str] = None

    def absorb(self, result: RewriteResult) -> None:
        self.skipped_external += result.skipped_external
        self.skipped_no_target += result.skipped_no_target
        self.skipped_opaque += result.skipped_opaque


class CollectionWalker(ABC):
    """
    Base class for record-store walkers.

    Subclasses declare the collection they walk and implement fetch_batch,
    fields and write_field. Paginated walkers page by integer _id; the
    protected config store is small and is processed in a single pass.
    """

    name: ClassVar[str]
    collection_name: ClassVar[str]
    paginated: ClassVar[bool] = True
    reports_total: ClassVar[bool] = False

    def __init__(self, db: Database, rewriter: ValueRewriter) -> None:
        self.db = db
        self.rewriter = rewriter
        self._candidate = candidate_regex(rewriter.resolver.config.legacy_extensions)

    @property
    def collection(self) -> Collection:
        return self.db[self.collection_name]

    # ------------------------------------------------------------------
    # Store primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def candidate_filter(self) -> dict:
        """Filter selecting records likely to hold a legacy reference."""

    @abstractmethod
    def fields(self, doc: dict) -> Iterable[FieldValue]:
        """Yield the rewritable fields of a fetched record."""

    @abstractmethod
    def write_field(self, change: ChangeRecord, value: Any) -> None:
        """Write a value into the field location described by a change record."""

    def fetch_batch(self, cursor: int, limit: int) -> list[dict]:
        query = {"_id": {"$gt": cursor}, **self.candidate_filter()}
        return list(self.collection.find(query).sort("_id", 1).limit(limit))

    def count_total(self, cursor: int) -> int:
        """Remaining candidate count; stores without a usable total report 0."""
        return 0

    def rewrite_field(self, item: FieldValue) -> RewriteResult:
        return self.rewriter.rewrite(item.value, item.field)

    # ------------------------------------------------------------------
    # Batch processing
    # ------------------------------------------------------------------

    def process_batch(self, cursor: int, limit: int, context: WalkContext) -> BatchResult:
        """
        Process one batch after `cursor`.

        Read errors are logged and reported as an empty, not-completed batch.
        Per-record failures are logged and counted; the cursor still moves
        past the failing record. A change that cannot be logged stops the
        batch before its field is written, with the cursor left on the last
        record handled in full.
        """
        result = BatchResult(cursor=cursor)
        try:
            docs = self.fetch_batch(cursor, limit)
            if self.reports_total:
                result.total = self.count_total(cursor)
        except PyMongoError as e:
            logger.error(
                f"Read failed for {self.name} (cursor={cursor}, "
                f"filter={self.candidate_filter()}): {e}"
            )
            result.read_error = str(e)
            return result

        interrupted = False
        for position, doc in enumerate(docs):
            if self.paginated and position > 0 and context.expired():
                interrupted = True
                break
            previous_cursor = result.cursor
            if self.paginated:
                result.cursor = int(doc["_id"])
            result.scanned += 1

            before = len(result.changes)
            try:
                self._process_record(doc, context, result)
            except ChangeLogError as e:
                logger.error(f"Stopping {self.name} batch at record {doc.get('_id')!r}: {e}")
                result.cursor = previous_cursor
                result.scanned -= 1
                result.log_error = str(e)
                break
            except Exception:
                logger.exception(f"Failed to rewrite {self.name} record {doc.get('_id')!r}")
                result.failures += 1
            if len(result.changes) > before:
                result.updated += 1

        if result.log_error:
            result.completed = False
        elif not self.paginated:
            result.completed = True
        else:
            result.completed = not interrupted and len(docs) < limit
        return result

    def _process_record(self, doc: dict, context: WalkContext, result: BatchResult) -> None:
        for item in self.fields(doc):
            rewritten = self.rewrite_field(item)
            result.absorb(rewritten)
            if not rewritten.changed:
                continue

            change = ChangeRecord(
                collection=self.name,
                record_id=item.record_id,
                field=item.field,
                row_id=item.row_id,
                before=truncate_preview(item.value, context.preview_length),
                after=truncate_preview(rewritten.value, context.preview_length),
                replacements=rewritten.replacements,
                original=item.value,
            )
            if context.log_change is not None:
                try:
                    context.log_change(change)
                except Exception as e:
                    raise ChangeLogError(
                        f"change record for {self.name} {item.record_id}.{item.field} "
                        f"not saved: {e}"
                    ) from e
            if not context.dry_run:
                self.write_field(change, rewritten.value)
            result.changes.append(change)
            result.replacements += rewritten.replacements

# =============================================================================
# Change Record Model
# =============================================================================
# Defines the field-level audit entry written for every rewritten value.
# =============================================================================

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


__all__ = ["ChangeRecord", "truncate_preview"]


def truncate_preview(value: Any, limit: int) -> str:
    """
    Render a stored value as a bounded preview string.

    Non-string values are rendered with repr() so numeric identifiers stay
    distinguishable from their string form.
    """
    text = value if isinstance(value, str) else repr(value)
    if len(text) <= limit:
        return text
    return text[: max(limit - 3, 0)] + "..."


class ChangeRecord(BaseModel):
    """
    One field-level mutation produced by a rewrite batch.

    Immutable once written. The previews are what summaries and the log view
    display; `original` holds the complete pre-run value so rollback can write
    it back even when the preview was truncated.

    Attributes:
        collection: Collection identifier (e.g. "posts", "postmeta")
        record_id: Record identifier; owner id for per-owner metadata,
            option name for global config, theme slug for theme mods
        field: Field name; the metadata key for per-owner metadata
        row_id: Primary key of the underlying row when it differs from record_id
        before: Truncated before-value
        after: Truncated after-value
        replacements: Number of references replaced in this field
        original: Complete pre-run value, used by rollback
    """

    model_config = ConfigDict(frozen=True)

    collection: str = Field(..., description="Collection identifier")
    record_id: str = Field(..., description="Record identifier or owner id")
    field: str = Field(..., description="Field name or metadata key")
    row_id: Optional[int] = Field(None, description="Underlying row primary key")
    before: str = Field(..., description="Truncated before-value")
    after: str = Field(..., description="Truncated after-value")
    replacements: int = Field(0, ge=0, description="References replaced")
    original: Any = Field(None, description="Complete pre-run value")

    @property
    def field_key(self) -> str:
        """Key used to rank most-frequently-changed fields."""
        return f"{self.collection}:{self.field}"

    def preview(self) -> dict[str, Any]:
        """Return the record without the full original value."""
        return self.model_dump(exclude={"original"})

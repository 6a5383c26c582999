# =============================================================================
# Value Rewriter
# =============================================================================
# Transforms one stored field value without breaking its encoding. Structured
# values are decoded, rewritten element by element and re-encoded only when a
# reference inside them was actually replaced. Plain text is scanned for
# srcset candidates, CSS url() references and inline URLs/paths, each
# delegated to the ReferenceResolver.
# =============================================================================

import logging
import re
from dataclasses import dataclass, replace
from fnmatch import fnmatchcase
from typing import Any, Iterable, Optional, Sequence

import phpserialize

from .encoding import (
    Composite,
    Json,
    Native,
    Opaque,
    Scalar,
    decode_value,
    encode_value,
    looks_like_json,
)
from .resolver import ReferenceResolver, ResolutionResult, SkipReason

logger = logging.getLogger(__name__)

__all__ = ["RewriteResult", "ValueRewriter", "build_reference_pattern"]

# Characters that terminate an embedded reference
_STOP = r"\s\"'<>\[\]{}()"

_SRCSET_RE = re.compile(r"\bsrcset\s*=\s*([\"'])(.*?)\1", re.IGNORECASE | re.DOTALL)
_CSS_URL_RE = re.compile(r"url\(\s*([\"']?)([^\"'()\s]+)\1\s*\)", re.IGNORECASE)
_TOKEN_URL_RE = re.compile(r"\S+")


def build_reference_pattern(extensions: Sequence[str]) -> re.Pattern:
    """
    Compile the inline reference pattern for the given legacy extensions.

    Matches fully-qualified URLs (http://, https://, protocol-relative //) and
    root-relative paths ending in a legacy extension, with an optional query
    string and fragment.
    """
    ext = "|".join(re.escape(e) for e in extensions)
    return re.compile(
        rf"(?:(?:https?://|(?<![\w:/])//)[^{_STOP}]+?"
        rf"|(?<![\w/.:\-])/[^{_STOP}/][^{_STOP}]*?)"
        rf"\.(?:{ext})(?![\w/\-]|\.\w)"
        rf"(?:\?[^{_STOP}#]*)?(?:#[^{_STOP}]*)?",
        re.IGNORECASE,
    )


@dataclass
class RewriteResult:
    """
    Outcome of rewriting one value.

    Attributes:
        value: Rewritten value (the original object when nothing changed)
        changed: True when value differs from the input
        replacements: References replaced
        skipped_external: References outside all configured bases
        skipped_no_target: Owned references without a migrated file
        skipped_opaque: Values skipped by the structured payload heuristic
    """

    value: Any
    changed: bool = False
    replacements: int = 0
    skipped_external: int = 0
    skipped_no_target: int = 0
    skipped_opaque: int = 0


@dataclass
class _Tally:
    replacements: int = 0
    skipped_external: int = 0
    skipped_no_target: int = 0
    skipped_opaque: int = 0

    def record(self, result: ResolutionResult) -> None:
        if result.matched:
            self.replacements += 1
        elif result.skip_reason == SkipReason.EXTERNAL:
            self.skipped_external += 1
        elif result.skip_reason == SkipReason.NO_TARGET:
            self.skipped_no_target += 1

    def merge(self, other: "_Tally", include_replacements: bool = True) -> None:
        if include_replacements:
            self.replacements += other.replacements
        self.skipped_external += other.skipped_external
        self.skipped_no_target += other.skipped_no_target
        self.skipped_opaque += other.skipped_opaque


class ValueRewriter:
    """
    Rewrite legacy references inside stored values.

    Pure transform: nothing is written, the caller decides whether to persist
    the result and whether to record a change.

    Example:
        >>> rewriter = ValueRewriter(resolver)
        >>> result = rewriter.rewrite('<img src="/files/a.jpg">', "post_content")
        >>> result.value, result.replacements
        ('<img src="/files/a.webp">', 1)
    """

    def __init__(
        self,
        resolver: ReferenceResolver,
        opaque_field_patterns: Iterable[str] = (),
        opaque_size_threshold: int = 50_000,
        max_depth: int = 32,
    ) -> None:
        self.resolver = resolver
        self.opaque_field_patterns = tuple(opaque_field_patterns)
        self.opaque_size_threshold = opaque_size_threshold
        self.max_depth = max_depth

        extensions = resolver.config.legacy_extensions
        self._reference_re = build_reference_pattern(extensions)
        self._legacy_hint_re = re.compile(
            r"\.(?:" + "|".join(re.escape(e) for e in extensions) + r")",
            re.IGNORECASE,
        )

    def is_opaque_payload(self, field_name: Optional[str], value: Any) -> bool:
        """True for large JSON payloads stored under third-party builder fields."""
        if not field_name or not isinstance(value, str):
            return False
        if not any(fnmatchcase(field_name, p) for p in self.opaque_field_patterns):
            return False
        return looks_like_json(value) and len(value) > self.opaque_size_threshold

    def rewrite(self, value: Any, field_name: Optional[str] = None) -> RewriteResult:
        """
        Rewrite every resolvable legacy reference in a stored value.

        Args:
            value: Stored value (text, serialized text, JSON text or BSON value)
            field_name: Name of the field or metadata key, for the payload
                skip heuristic

        Returns:
            RewriteResult; value is the untouched input unless at least one
            reference was replaced.
        """
        if self.is_opaque_payload(field_name, value):
            logger.debug(f"Skipping opaque structured payload in field {field_name}")
            return RewriteResult(value=value, skipped_opaque=1)

        tally = _Tally()
        new_value = self._rewrite_value(value, tally, 0)
        changed = tally.replacements > 0 and new_value != value
        return RewriteResult(
            value=new_value if changed else value,
            changed=changed,
            replacements=tally.replacements if changed else 0,
            skipped_external=tally.skipped_external,
            skipped_no_target=tally.skipped_no_target,
            skipped_opaque=tally.skipped_opaque,
        )

    # ------------------------------------------------------------------
    # Structured values
    # ------------------------------------------------------------------

    def _rewrite_value(self, value: Any, tally: _Tally, depth: int) -> Any:
        if depth > self.max_depth:
            return value
        if isinstance(value, str) and not self._legacy_hint_re.search(value):
            return value

        decoded = decode_value(value)
        if isinstance(decoded, Opaque):
            return value
        if isinstance(decoded, Scalar):
            return self._rewrite_text(decoded.text, tally)

        inner = _Tally()
        data = self._rewrite_data(decoded.data, inner, depth + 1)
        if inner.replacements == 0:
            tally.merge(inner)
            return value
        if isinstance(decoded, Native):
            tally.merge(inner)
            return data

        encoded = encode_value(replace(decoded, data=data))
        if encoded is None:
            kind = "serialized" if isinstance(decoded, Composite) else "JSON"
            logger.warning(f"Leaving {kind} value unchanged: re-encoding failed")
            tally.merge(inner, include_replacements=False)
            return value
        tally.merge(inner)
        return encoded

    def _rewrite_data(self, data: Any, tally: _Tally, depth: int) -> Any:
        if depth > self.max_depth:
            return data
        if isinstance(data, str):
            return self._rewrite_value(data, tally, depth)
        if isinstance(data, dict):
            return {k: self._rewrite_data(v, tally, depth + 1) for k, v in data.items()}
        if isinstance(data, list):
            return [self._rewrite_data(v, tally, depth + 1) for v in data]
        if isinstance(data, phpserialize.phpobject):
            members = self._rewrite_data(data.__php_vars__, tally, depth + 1)
            return phpserialize.phpobject(data.__name__, members)
        return data

    # ------------------------------------------------------------------
    # Plain text
    # ------------------------------------------------------------------

    def _rewrite_text(self, text: str, tally: _Tally) -> str:
        spans = self._reference_spans(text)
        if not spans:
            return text

        parts: list[str] = []
        pos = 0
        for start, end in spans:
            reference = text[start:end]
            result = self.resolver.resolve(reference)
            tally.record(result)
            parts.append(text[pos:start])
            parts.append(result.replacement if result.matched else reference)
            pos = end
        parts.append(text[pos:])
        return "".join(parts)

    def _reference_spans(self, text: str) -> list[tuple[int, int]]:
        """Locate each reference once: srcset tokens, CSS url(), then inline."""
        claimed: list[tuple[int, int]] = []

        def overlaps(start: int, end: int) -> bool:
            return any(start < c_end and c_start < end for c_start, c_end in claimed)

        for attr in _SRCSET_RE.finditer(text):
            offset = attr.start(2)
            for token in _split_candidates(attr.group(2)):
                t_start, t_text = token
                url = _TOKEN_URL_RE.search(t_text)
                if url and self._reference_re.fullmatch(url.group(0)):
                    claimed.append((offset + t_start + url.start(), offset + t_start + url.end()))

        for css in _CSS_URL_RE.finditer(text):
            start, end = css.span(2)
            if self._reference_re.fullmatch(css.group(2)) and not overlaps(start, end):
                claimed.append((start, end))

        for inline in self._reference_re.finditer(text):
            start, end = inline.span()
            if not overlaps(start, end):
                claimed.append((start, end))

        return sorted(claimed)


def _split_candidates(value: str) -> list[tuple[int, str]]:
    """Split a srcset value on commas, keeping each token's offset."""
    tokens = []
    pos = 0
    for piece in value.split(","):
        tokens.append((pos, piece))
        pos += len(piece) + 1
    return tokens

# =============================================================================
# Reference Resolver
# =============================================================================
# Decides whether an embedded asset reference is site-owned, maps it to the
# local filesystem and returns the migrated-format reference when the migrated
# file exists on disk.
# =============================================================================

import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote

__all__ = [
    "ReferenceResolver",
    "ResolverConfig",
    "ResolutionResult",
    "SkipReason",
    "split_suffix",
]


class SkipReason(str, Enum):
    """Why a reference was returned unchanged."""

    EXTERNAL = "external"
    NO_TARGET = "no_target"
    ALREADY_TARGET = "already_target"


@dataclass(frozen=True)
class ResolverConfig:
    """
    Site locations and format settings used for resolution.

    Attributes:
        upload_url: Public base URL of the upload directory
        upload_dir: Local directory backing upload_url
        site_url: Public site URL
        home_url: Public home URL
        site_root: Local directory backing site_url and root-relative paths
        cdn_url: Optional CDN base URL mirroring the upload directory
        require_local_file: Require the legacy source file to exist
        legacy_extensions: Extensions eligible for rewriting (lower-case)
        target_extension: Extension of the migrated format (lower-case)
    """

    upload_url: str
    upload_dir: Path
    site_url: str
    home_url: str
    site_root: Path
    cdn_url: Optional[str] = None
    require_local_file: bool = True
    legacy_extensions: tuple[str, ...] = ("jpg", "jpeg", "png")
    target_extension: str = "webp"


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of resolving one reference."""

    replacement: str
    matched: bool
    skip_reason: Optional[SkipReason] = None


@dataclass(frozen=True)
class _Base:
    """A public URL prefix (scheme removed) and the local root it maps to."""

    prefix: str
    root: Path


def split_suffix(reference: str) -> tuple[str, str]:
    """Split a reference into its location and its ?query / #fragment suffix."""
    cut = len(reference)
    for marker in ("?", "#"):
        idx = reference.find(marker)
        if idx != -1:
            cut = min(cut, idx)
    return reference[:cut], reference[cut:]


def _strip_scheme(url: str) -> str:
    """Turn "https://host/path" into "//host/path"; other strings pass through."""
    match = re.match(r"^[a-z][a-z0-9+.\-]*:(?=//)", url, re.IGNORECASE)
    if match:
        return url[match.end():]
    return url


def _is_file(path: Path) -> bool:
    return path.is_file()


class ReferenceResolver:
    """
    Resolve legacy-format references to their migrated counterparts.

    Resolution is deterministic for a given filesystem state and configuration
    and never writes anything. Existence checks go through the injected
    `exists` callable and are not cached, so every call reflects the files on
    disk at that moment.
    """

    def __init__(
        self,
        config: ResolverConfig,
        exists: Optional[Callable[[Path], bool]] = None,
    ) -> None:
        self.config = config
        self._exists = exists or _is_file
        self._bases = self._build_bases(config)
        self._site_path = _strip_scheme(config.site_url.rstrip("/"))
        # "//host/blog" -> "/blog"
        self._site_path = "/" + self._site_path.lstrip("/").partition("/")[2]
        self._site_path = self._site_path.rstrip("/")

        legacy = "|".join(re.escape(ext) for ext in config.legacy_extensions)
        self._legacy_re = re.compile(rf"\.(?:{legacy})$", re.IGNORECASE)
        self._target_re = re.compile(
            rf"\.{re.escape(config.target_extension)}$", re.IGNORECASE
        )

    @staticmethod
    def _build_bases(config: ResolverConfig) -> list[_Base]:
        candidates = [
            (config.upload_url, config.upload_dir),
            (config.cdn_url, config.upload_dir),
            (config.home_url, config.site_root),
            (config.site_url, config.site_root),
        ]
        bases: list[_Base] = []
        seen: set[str] = set()
        for url, root in candidates:
            if not url:
                continue
            prefix = _strip_scheme(url.rstrip("/")).lower()
            if prefix in seen:
                continue
            seen.add(prefix)
            bases.append(_Base(prefix=prefix, root=Path(root)))
        return bases

    # ------------------------------------------------------------------
    # Extension helpers
    # ------------------------------------------------------------------

    def is_legacy(self, location: str) -> bool:
        return bool(self._legacy_re.search(location))

    def is_target(self, location: str) -> bool:
        return bool(self._target_re.search(location))

    def swap_extension(self, location: str) -> str:
        """Replace a legacy extension with the target extension."""
        return self._legacy_re.sub("." + self.config.target_extension, location)

    def upload_file(self, relative: str) -> Optional[Path]:
        """Return the upload-directory path for `relative` if it exists on disk."""
        path = self._local_path(Path(self.config.upload_dir), "/" + relative.lstrip("/"))
        if path is None or not self._exists(path):
            return None
        return path

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, reference: str) -> ResolutionResult:
        """
        Resolve one matched reference.

        Args:
            reference: Reference text as it appears in the stored value,
                including any query string or fragment.

        Returns:
            ResolutionResult with the migrated reference and matched=True, or
            the original reference with the reason it was left alone.
        """
        location, suffix = split_suffix(reference)

        if self.is_target(location):
            return ResolutionResult(reference, False, SkipReason.ALREADY_TARGET)
        if not self.is_legacy(location):
            return ResolutionResult(reference, False, SkipReason.NO_TARGET)

        mapped = self._map(location)
        if mapped is None:
            return ResolutionResult(reference, False, SkipReason.EXTERNAL)
        prefix, remainder, root = mapped

        source = self._local_path(root, remainder)
        if source is None:
            return ResolutionResult(reference, False, SkipReason.NO_TARGET)
        if self.config.require_local_file and not self._exists(source):
            return ResolutionResult(reference, False, SkipReason.NO_TARGET)

        migrated_remainder = self.swap_extension(remainder)
        migrated = self._local_path(root, migrated_remainder)
        if migrated is None or not self._exists(migrated):
            return ResolutionResult(reference, False, SkipReason.NO_TARGET)

        return ResolutionResult(prefix + migrated_remainder + suffix, True)

    def _map(self, location: str) -> Optional[tuple[str, str, Path]]:
        """
        Classify a location as owned and split it at its base.

        Returns (prefix as written, remainder starting with "/", local root),
        or None for external references.
        """
        schemeless = _strip_scheme(location)
        scheme_len = len(location) - len(schemeless)
        lowered = schemeless.lower()

        for base in self._bases:
            if lowered.startswith(base.prefix + "/"):
                cut = scheme_len + len(base.prefix)
                return location[:cut], location[cut:], base.root

        if location.startswith("/") and not location.startswith("//"):
            site_path = self._site_path
            if site_path and location.lower().startswith(site_path.lower() + "/"):
                cut = len(site_path)
                return location[:cut], location[cut:], Path(self.config.site_root)
            return "", location, Path(self.config.site_root)

        return None

    @staticmethod
    def _local_path(root: Path, remainder: str) -> Optional[Path]:
        """Join a URL path remainder onto a local root, refusing to escape it."""
        relative = unquote(remainder).lstrip("/")
        if not relative:
            return None
        root_norm = os.path.normpath(str(root))
        candidate = os.path.normpath(os.path.join(root_norm, relative))
        if os.path.commonpath([root_norm, candidate]) != root_norm:
            return None
        return Path(candidate)

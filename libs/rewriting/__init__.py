# =============================================================================
# Reference Rewriting Library
# =============================================================================
# Pure transforms: reference resolution, stored value encodings, value
# rewriting and the protected field policy. Nothing here touches a database.
# =============================================================================

from .encoding import (
    Composite,
    Json,
    Native,
    Opaque,
    Scalar,
    StoredValue,
    decode_value,
    encode_value,
)
from .protected import AssetCatalog, ProtectedFieldPolicy
from .resolver import (
    ReferenceResolver,
    ResolutionResult,
    ResolverConfig,
    SkipReason,
    split_suffix,
)
from .values import RewriteResult, ValueRewriter, build_reference_pattern

__all__ = [
    "AssetCatalog",
    "Composite",
    "Json",
    "Native",
    "Opaque",
    "ProtectedFieldPolicy",
    "ReferenceResolver",
    "ResolutionResult",
    "ResolverConfig",
    "RewriteResult",
    "Scalar",
    "SkipReason",
    "StoredValue",
    "ValueRewriter",
    "build_reference_pattern",
    "decode_value",
    "encode_value",
    "split_suffix",
]

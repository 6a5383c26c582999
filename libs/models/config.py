# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides Pydantic Settings models for all service configurations:
# - MongoSettings: MongoDB connection for the CMS record stores
# - RewriteSettings: Reference rewriting engine configuration
# =============================================================================

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from libs.rewriting.resolver import ResolverConfig

__all__ = [
    "MongoSettings",
    "RewriteSettings",
    "DEFAULT_COLLECTIONS",
]


DEFAULT_COLLECTIONS = [
    "posts",
    "postmeta",
    "options",
    "termmeta",
    "usermeta",
    "terms",
    "term_taxonomy",
    "theme_mods",
]


# =============================================================================
# MongoDB Settings (CMS Record Stores)
# =============================================================================

class MongoSettings(BaseSettings):
    """
    Configuration for MongoDB (CMS record stores, job state and audit log).
    
    Maps environment variables with prefix "MONGO_":
    - MONGO_HOST → host
    - MONGO_PORT → port
    - MONGO_INITDB_ROOT_USERNAME → username
    - MONGO_INITDB_ROOT_PASSWORD → password
    - MONGO_DATABASE → database
    - MONGO_AUTH_SOURCE → auth_source
    
    Attributes:
        host: MongoDB host (default: "mongodb")
        port: MongoDB port (default: 27017)
        username: MongoDB username (maps from MONGO_INITDB_ROOT_USERNAME)
        password: MongoDB password (maps from MONGO_INITDB_ROOT_PASSWORD)
        database: Database name (default: "cms")
        auth_source: Authentication source (default: "admin")
    """
    
    host: str = Field("mongodb", validation_alias="MONGO_HOST", description="MongoDB host")
    port: int = Field(27017, validation_alias="MONGO_PORT", description="MongoDB port")
    username: str = Field(..., validation_alias="MONGO_INITDB_ROOT_USERNAME", description="MongoDB username (maps from MONGO_INITDB_ROOT_USERNAME)")
    password: str = Field(..., validation_alias="MONGO_INITDB_ROOT_PASSWORD", description="MongoDB password (maps from MONGO_INITDB_ROOT_PASSWORD)")
    database: str = Field("cms", validation_alias="MONGO_DATABASE", description="Database name")
    auth_source: str = Field("admin", validation_alias="MONGO_AUTH_SOURCE", description="Authentication source")
    
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )
    
    @property
    def connection_string(self) -> str:
        """
        Build MongoDB connection URI.
        
        Format: mongodb://[username]:[password]@[host]:[port]/[database]?authSource=[auth_source]
        
        Returns:
            MongoDB connection URI string
        """
        return (
            f"mongodb://{self.username}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?authSource={self.auth_source}"
        )


# =============================================================================
# Rewrite Settings (Reference Rewriting Engine)
# =============================================================================

class RewriteSettings(BaseSettings):
    """
    Configuration for the reference rewriting engine.

    Maps environment variables with prefix "REWRITE_" (e.g. REWRITE_UPLOAD_URL,
    REWRITE_BATCH_SIZE). List values are read as JSON arrays.

    Attributes:
        upload_url: Public base URL of the upload directory
        upload_dir: Local directory backing upload_url
        site_url: Public site URL
        home_url: Public home URL (defaults to site_url)
        site_root: Local directory backing site_url
        cdn_url: Optional CDN base URL mirroring the upload directory
        require_local_file: Require the legacy source file to exist on disk
        legacy_extensions: Extensions eligible for rewriting
        target_extension: Extension of the migrated format
        batch_size: Records fetched per advance call
        time_budget_seconds: Wall-clock budget per advance call
        state_ttl_seconds: Idle lifetime of an abandoned job
        protected_fields: Fields that must always hold an asset identifier
        opaque_field_patterns: Globs naming third-party builder payload fields
        opaque_size_threshold: Size above which opaque payloads are skipped
        excluded_options: Global config keys never rewritten
        collections: Ordered collection queue for a job
        audit_preview_length: Length of before/after previews in change records
        sample_limit: Maximum change samples kept for the completion response
        summary_top_n: Number of most-changed field keys kept in the summary
    """

    upload_url: str = Field("http://localhost/wp-content/uploads", description="Upload base URL")
    upload_dir: Path = Field(Path("/var/www/html/wp-content/uploads"), description="Upload directory")
    site_url: str = Field("http://localhost", description="Site URL")
    home_url: Optional[str] = Field(None, description="Home URL (defaults to site_url)")
    site_root: Path = Field(Path("/var/www/html"), description="Site root directory")
    cdn_url: Optional[str] = Field(None, description="CDN base URL for uploads")
    require_local_file: bool = Field(True, description="Require legacy source file on disk")

    legacy_extensions: list[str] = Field(default_factory=lambda: ["jpg", "jpeg", "png"])
    target_extension: str = Field("webp", description="Migrated format extension")

    batch_size: int = Field(50, ge=1, le=1000, description="Records per batch")
    time_budget_seconds: float = Field(10.0, gt=0, description="Wall-clock budget per call")
    state_ttl_seconds: int = Field(3600, ge=60, description="Idle TTL of job state")

    protected_fields: list[str] = Field(
        default_factory=lambda: [
            "custom_logo",
            "site_icon",
            "header_image_data_id",
            "background_image_id",
        ]
    )
    opaque_field_patterns: list[str] = Field(
        default_factory=lambda: [
            "_elementor_data",
            "_elementor_*",
            "_fl_builder_*",
            "_et_pb_*",
            "panels_data",
            "ct_builder_*",
            "_brizy_*",
        ]
    )
    opaque_size_threshold: int = Field(50_000, ge=0)
    excluded_options: list[str] = Field(
        default_factory=lambda: ["active_plugins", "cron", "rewrite_rules"]
    )
    collections: list[str] = Field(default_factory=lambda: list(DEFAULT_COLLECTIONS))

    audit_preview_length: int = Field(200, ge=16)
    sample_limit: int = Field(10, ge=0)
    summary_top_n: int = Field(10, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="REWRITE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("legacy_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lower-case extensions and drop leading dots."""
        cleaned = [ext.strip().lstrip(".").lower() for ext in v if ext and ext.strip()]
        if not cleaned:
            raise ValueError("legacy_extensions must not be empty")
        return list(dict.fromkeys(cleaned))

    @field_validator("target_extension")
    @classmethod
    def normalize_target(cls, v: str) -> str:
        return v.strip().lstrip(".").lower()

    def resolver_config(self) -> ResolverConfig:
        """Build the resolver configuration from these settings."""
        return ResolverConfig(
            upload_url=self.upload_url,
            upload_dir=self.upload_dir,
            site_url=self.site_url,
            home_url=self.home_url or self.site_url,
            site_root=self.site_root,
            cdn_url=self.cdn_url,
            require_local_file=self.require_local_file,
            legacy_extensions=tuple(self.legacy_extensions),
            target_extension=self.target_extension,
        )

"""MongoDB Resource - CMS record stores and rewrite audit collections."""

from __future__ import annotations

from functools import cached_property
from typing import Optional

from dagster import ConfigurableResource
from pydantic import Field
from pymongo import MongoClient
from pymongo.database import Database

from libs.jobs import RewriteEngine
from libs.models import RewriteSettings

__all__ = ["MongoContentResource"]


class MongoContentResource(ConfigurableResource):
    """
    Dagster resource for the CMS database.

    Hands ops a RewriteEngine bound to the configured database so the
    headless pipeline and the admin service share one implementation.
    """

    connection_string: str = Field(..., description="MongoDB connection URI")
    database: str = Field("cms", description="MongoDB database name")

    @cached_property
    def _client(self) -> MongoClient:
        return MongoClient(self.connection_string)

    def get_database(self) -> Database:
        return self._client[self.database]

    def get_engine(self, settings: Optional[RewriteSettings] = None) -> RewriteEngine:
        """
        Build a RewriteEngine for the database.

        Args:
            settings: Rewrite settings; read from REWRITE_* variables when omitted
        """
        engine = RewriteEngine(self.get_database(), settings or RewriteSettings())
        engine.ensure_indexes()
        return engine

    def ping(self) -> bool:
        self._client.admin.command("ping")
        return True

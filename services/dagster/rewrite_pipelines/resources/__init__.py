"""Dagster Resources - External Service Connections."""

from .mongodb_resource import MongoContentResource

__all__ = ["MongoContentResource"]

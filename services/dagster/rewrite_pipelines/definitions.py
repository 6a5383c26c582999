"""Dagster Definitions - Repository Configuration.

Defines jobs and resources for the reference rewriting pipeline.
"""

from dagster import Definitions, EnvVar

from .jobs import rewrite_references_job, rollback_references_job
from .resources import MongoContentResource


defs = Definitions(
    jobs=[
        rewrite_references_job,
        rollback_references_job,
    ],
    resources={
        "mongodb": MongoContentResource(
            connection_string=EnvVar("MONGO_CONNECTION_STRING"),
            database="cms",
        ),
    },
)

"""Pydantic models describing an execution request.

The web API serves these with ``*_id`` JSON keys; the Python side uses plain
``id`` attributes. Both spellings are accepted on input.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True)


class Host(BaseModel):
    model_config = _MODEL_CONFIG

    id: UUID = Field(alias="host_id")
    address: str
    user: str


class Cluster(BaseModel):
    model_config = _MODEL_CONFIG

    id: UUID = Field(alias="cluster_id")
    provider: str
    checks: list[str] = Field(min_length=1)
    hosts: list[Host] = Field(min_length=1)


class ExecutionRequest(BaseModel):
    """A set of clusters to run checks against, identified by execution id."""

    model_config = _MODEL_CONFIG

    id: UUID = Field(alias="execution_id")
    clusters: list[Cluster] = Field(min_length=1)

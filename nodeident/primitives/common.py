"""
NodeIdent: Common Primitives

Base model shared by the credential and network records.
"""

from __future__ import annotations

from pydantic import BaseModel


class NodeIdentBaseModel(BaseModel):
    """Base model for all NodeIdent records."""

    model_config = {"populate_by_name": True, "from_attributes": True}

"""Base model shared by every pyblueprint data model.

Every model inherits from :class:`BlueprintBaseModel` which provides:

* ``frozen=True`` so elements, plan items and snapshots are immutable
  values that can be shared between concurrent tasks without copying.
* ``extra="forbid"`` so a typo in a source document or a state snapshot
  surfaces as an error instead of silently vanishing.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BlueprintBaseModel(BaseModel):
    """Base for pyblueprint models."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
    )

"""Source and output documents."""

from __future__ import annotations

from pydantic import field_validator

from pyblueprint.models._base import BlueprintBaseModel


class Blueprint(BlueprintBaseModel):
    """One file-like unit of configuration: a target name and its bytes.

    Blueprints are both the input of plan/apply/discover and the output
    of discover, so discovered elements can be written out and read back.
    """

    filename: str
    buffer: bytes

    @field_validator("filename")
    @classmethod
    def _normalize_filename(cls, value: str) -> str:
        filename = value.strip().replace("\\", "/")
        if not filename:
            raise ValueError("filename must be non-empty")
        return filename


OutputDocument = Blueprint

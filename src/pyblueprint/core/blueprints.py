"""Reading elements out of blueprints and writing them back.

The source grammar itself is pluggable through :class:`BlueprintParser`.
The bundled :class:`JsonBlueprintParser` stores a JSON list of tagged
elements, which is also the format discover writes its output in.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from pyblueprint._constants import DEFAULT_BLUEPRINT_SUFFIX
from pyblueprint.exceptions import BlueprintParseError
from pyblueprint.models.blueprint import Blueprint
from pyblueprint.models.elements import ELEMENT_LIST_ADAPTER, Element, sort_elements

_logger = logging.getLogger(__name__)


class BlueprintParser(Protocol):
    def parse(self, blueprint: Blueprint) -> list[Element]:
        ...

    def dump(self, elements: Sequence[Element]) -> bytes:
        ...


class JsonBlueprintParser:
    """Blueprints as a JSON array of elements (``kind`` tags the variant)."""

    def __init__(self, *, indent: int | None = 2) -> None:
        self._indent = indent

    def parse(self, blueprint: Blueprint) -> list[Element]:
        try:
            return list(ELEMENT_LIST_ADAPTER.validate_json(blueprint.buffer))
        except ValidationError as exc:
            raise BlueprintParseError(
                f"Failed to parse {blueprint.filename}: {exc}", filename=blueprint.filename
            ) from exc

    def dump(self, elements: Sequence[Element]) -> bytes:
        # Provenance is carried by the file name, not the content.
        payload = [element.semantic_dump() for element in sort_elements(list(elements))]
        return json.dumps(payload, indent=self._indent).encode("utf-8")


def path_from_filename(filename: str, suffix: str = DEFAULT_BLUEPRINT_SUFFIX) -> tuple[str, ...]:
    """``"crm/leads.bp.json"`` -> ``("crm", "leads")``."""
    stem = filename[: -len(suffix)] if suffix and filename.endswith(suffix) else filename
    return tuple(part for part in stem.split("/") if part)


def get_all_elements(
    blueprints: Iterable[Blueprint],
    parser: BlueprintParser,
    *,
    suffix: str = DEFAULT_BLUEPRINT_SUFFIX,
) -> list[Element]:
    """Parse every blueprint; elements without a path get one from the filename."""
    elements: list[Element] = []
    for blueprint in blueprints:
        parsed = parser.parse(blueprint)
        default_path = path_from_filename(blueprint.filename, suffix)
        elements.extend(element if element.path else element.with_path(default_path) for element in parsed)
        _logger.debug("Parsed %d element(s) from %s", len(parsed), blueprint.filename)
    return elements


def load_blueprints(directory: str | os.PathLike[str], suffix: str = DEFAULT_BLUEPRINT_SUFFIX) -> list[Blueprint]:
    """Read every ``*<suffix>`` file below *directory*, sorted by name."""
    root = Path(directory)
    if not root.is_dir():
        return []
    blueprints = []
    for file in sorted(root.rglob(f"*{suffix}")):
        if file.is_file():
            blueprints.append(Blueprint(filename=file.relative_to(root).as_posix(), buffer=file.read_bytes()))
    return blueprints


def dump_blueprints(
    elements: Iterable[Element],
    parser: BlueprintParser,
    *,
    suffix: str = DEFAULT_BLUEPRINT_SUFFIX,
) -> list[Blueprint]:
    """Group *elements* by provenance path (or namespace) into one blueprint each."""
    groups: dict[str, list[Element]] = {}
    for element in elements:
        name = "/".join(element.path) if element.path else element.elem_id.adapter
        groups.setdefault(f"{name}{suffix}", []).append(element)
    return [Blueprint(filename=filename, buffer=parser.dump(group)) for filename, group in sorted(groups.items())]

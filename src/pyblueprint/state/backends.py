"""Durable layers behind :class:`pyblueprint.state.store.StateStore`."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from pydantic import Field, ValidationError

from pyblueprint._constants import STATE_SCHEMA_VERSION
from pyblueprint.exceptions import StateStoreError
from pyblueprint.models._base import BlueprintBaseModel
from pyblueprint.models.elements import Element, sort_elements

_logger = logging.getLogger(__name__)


class StateBackend(Protocol):
    """Structural interface of a durable state layer.

    Having a protocol here makes it easy to swap the on-disk encoding or
    pass test doubles while keeping :class:`FileStateBackend` concrete.
    """

    async def load(self) -> list[Element]:
        ...

    async def save(self, elements: Iterable[Element]) -> None:
        ...


class StateSnapshot(BlueprintBaseModel):
    """On-disk layout of the state file."""

    version: int = STATE_SCHEMA_VERSION
    elements: list[Element] = Field(default_factory=list)


class FileStateBackend:
    """JSON snapshot on the local filesystem.

    Writes go to a temporary file in the same directory which then
    replaces the snapshot atomically: a crash mid-write leaves the
    previous snapshot intact.
    """

    def __init__(self, path: str | os.PathLike[str], *, indent: int | None = 2) -> None:
        self._path = Path(path)
        self._indent = indent

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> list[Element]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read)

    async def save(self, elements: Iterable[Element]) -> None:
        snapshot = StateSnapshot(elements=sort_elements(list(elements)))
        payload = snapshot.model_dump_json(indent=self._indent)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, payload)

    def _read(self) -> list[Element]:
        if not self._path.exists():
            _logger.debug("No state file at %s, starting empty", self._path)
            return []
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StateStoreError(f"Failed to read state file {self._path}: {exc}") from exc
        try:
            snapshot = StateSnapshot.model_validate_json(text)
        except ValidationError as exc:
            raise StateStoreError(f"State file {self._path} is corrupt: {exc}") from exc
        if snapshot.version != STATE_SCHEMA_VERSION:
            raise StateStoreError(
                f"State file {self._path} has version {snapshot.version}, expected {STATE_SCHEMA_VERSION}"
            )
        return list(snapshot.elements)

    def _write(self, payload: str) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{self._path.name}.", suffix=".tmp")
        except OSError as exc:
            raise StateStoreError(f"Failed to write state file {self._path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise StateStoreError(f"Failed to write state file {self._path}: {exc}") from exc
        _logger.debug("Wrote state file %s (%d bytes)", self._path, len(payload))


class MemoryStateBackend:
    """Keeps the snapshot in memory; ``saves`` counts completed writes."""

    def __init__(self, elements: Iterable[Element] = ()) -> None:
        self.elements: list[Element] = list(elements)
        self.saves = 0

    async def load(self) -> list[Element]:
        return list(self.elements)

    async def save(self, elements: Iterable[Element]) -> None:
        self.elements = sort_elements(list(elements))
        self.saves += 1

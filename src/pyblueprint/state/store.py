"""Transactional state store.

This is the only component allowed to mutate the persisted snapshot of
the tracked system. One store instance serves one logical operation
(plan, apply or discover): the snapshot is read once, mutated in memory
as actions commit, and written back by a single :meth:`StateStore.flush`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from types import TracebackType

from pyblueprint.exceptions import StateStoreError
from pyblueprint.models.elem_id import ElemID
from pyblueprint.models.elements import Element
from pyblueprint.state.backends import StateBackend

_logger = logging.getLogger(__name__)


class StateStore:
    """In-memory view of the persisted state, flushed once per operation.

    The first :meth:`get` (or mutation) reads through to the backend;
    later calls see the cached view including every ``update``,
    ``remove`` and ``override`` made since. Nothing reaches the backend
    until :meth:`flush`.

    Usage::

        async with StateStore(backend) as state:
            current = await state.get()
            await state.update([element])
        # flushed here, also when the block raised
    """

    def __init__(self, backend: StateBackend) -> None:
        self._backend = backend
        self._elements: dict[ElemID, Element] | None = None
        self._dirty = False
        self._load_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Scope guard
    # ------------------------------------------------------------------

    async def __aenter__(self) -> StateStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            await self.flush()
        except Exception:
            if exc is None:
                raise
            # The original failure propagates; the flush failure is only logged.
            _logger.exception("Failed to flush state while handling %s", exc_type.__name__ if exc_type else "error")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _ensure_loaded(self) -> dict[ElemID, Element]:
        if self._elements is not None:
            return self._elements
        async with self._load_lock:
            if self._elements is None:
                try:
                    loaded = await self._backend.load()
                except StateStoreError:
                    raise
                except Exception as exc:
                    raise StateStoreError(f"Failed to load state: {exc}") from exc
                self._elements = {element.elem_id: element for element in loaded}
                _logger.debug("Loaded %d element(s) from state", len(self._elements))
        return self._elements

    async def get(self) -> dict[ElemID, Element]:
        """Current elements keyed by id."""
        return dict(await self._ensure_loaded())

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    # ------------------------------------------------------------------
    # Mutations (in memory until flush)
    # ------------------------------------------------------------------

    async def update(self, elements: Iterable[Element]) -> None:
        """Insert or replace *elements*."""
        current = await self._ensure_loaded()
        for element in elements:
            current[element.elem_id] = element
            self._dirty = True

    async def remove(self, elements: Iterable[Element | ElemID]) -> None:
        """Delete *elements* (or ids) from the state; unknown ids are ignored."""
        current = await self._ensure_loaded()
        for element in elements:
            elem_id = element if isinstance(element, ElemID) else element.elem_id
            if current.pop(elem_id, None) is not None:
                self._dirty = True

    async def override(self, elements: Iterable[Element]) -> None:
        """Replace the whole state with *elements*."""
        self._elements = {element.elem_id: element for element in elements}
        self._dirty = True

    # ------------------------------------------------------------------
    # Durability
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        """Persist the in-memory view. A no-op when nothing changed."""
        if not self._dirty or self._elements is None:
            return
        try:
            await self._backend.save(list(self._elements.values()))
        except StateStoreError:
            raise
        except Exception as exc:
            raise StateStoreError(f"Failed to flush state: {exc}") from exc
        self._dirty = False
        _logger.debug("Flushed %d element(s) to state", len(self._elements))

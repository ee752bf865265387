"""Adapter registry and adapter initialization."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping

from pyblueprint._constants import BUILTIN_ADAPTER, PRIMITIVE_TYPE_NAMES
from pyblueprint._redact import redact_config
from pyblueprint.adapters.base import Adapter, AdapterCreator
from pyblueprint.exceptions import BlueprintConfigError, DuplicateAdapterError, UnknownAdapterError
from pyblueprint.models.elem_id import ElemID, config_instance_id
from pyblueprint.models.elements import Element, InstanceElement, ObjectType

_logger = logging.getLogger(__name__)

FillConfig = Callable[[ObjectType], Awaitable[InstanceElement]]
"""Callback supplying an adapter configuration instance for a config type."""


class AdapterRegistry(Mapping[str, Adapter]):
    """Adapters keyed by the namespace they own.

    Lookups for an unregistered namespace raise instead of skipping the
    element: an element nobody owns cannot be applied.
    """

    def __init__(self, adapters: Mapping[str, Adapter] | None = None) -> None:
        self._adapters: dict[str, Adapter] = {}
        for namespace, adapter in (adapters or {}).items():
            self.register(namespace, adapter)

    def __getitem__(self, namespace: str) -> Adapter:
        return self._adapters[namespace]

    def __iter__(self) -> Iterator[str]:
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)

    def register(self, namespace: str, adapter: Adapter) -> None:
        if namespace == BUILTIN_ADAPTER or namespace in PRIMITIVE_TYPE_NAMES:
            raise BlueprintConfigError(f"Invalid adapter namespace: {namespace!r}")
        if namespace in self._adapters:
            raise DuplicateAdapterError(f"Adapter namespace {namespace!r} is already registered")
        self._adapters[namespace] = adapter

    def for_element(self, elem_id: ElemID) -> Adapter:
        """Adapter owning *elem_id*'s namespace."""
        adapter = self._adapters.get(elem_id.adapter)
        if adapter is None:
            raise UnknownAdapterError(
                f"No adapter registered for namespace {elem_id.adapter!r} (element {elem_id.full_name})",
                adapter=elem_id.adapter,
                elem_id=elem_id,
            )
        return adapter

    def ensure_covers(self, elem_ids: Iterable[ElemID]) -> None:
        """Raise if any of *elem_ids* belongs to an unregistered namespace."""
        missing = sorted({elem_id.adapter for elem_id in elem_ids if elem_id.adapter not in self._adapters})
        if missing:
            raise UnknownAdapterError(
                f"No adapter registered for namespace(s): {', '.join(repr(name) for name in missing)}",
                adapter=missing[0],
            )


def _normalize_config(creator: AdapterCreator, config: InstanceElement) -> InstanceElement:
    expected_type = creator.config_type.elem_id
    if config.type != expected_type:
        raise BlueprintConfigError(
            f"Configuration for adapter {creator.adapter!r} must be an instance of "
            f"{expected_type.full_name}, got {config.type.full_name}"
        )
    expected_id = config_instance_id(creator.adapter)
    if config.elem_id != expected_id:
        config = config.model_copy(update={"elem_id": expected_id})
    return config


async def init_adapters(
    elements: Mapping[ElemID, Element],
    creators: Iterable[AdapterCreator],
    fill_config: FillConfig,
) -> tuple[AdapterRegistry, dict[str, InstanceElement]]:
    """Create one adapter per creator.

    The configuration instance is taken from *elements* when the
    blueprints provide one; otherwise *fill_config* is asked for it.

    Returns
    -------
    tuple[AdapterRegistry, dict[str, InstanceElement]]
        The registry and the configurations obtained through *fill_config*,
        keyed by adapter namespace.
    """
    registry = AdapterRegistry()
    new_configs: dict[str, InstanceElement] = {}
    for creator in creators:
        config = elements.get(config_instance_id(creator.adapter))
        if not isinstance(config, InstanceElement):
            _logger.info("No configuration found for adapter %s, requesting one", creator.adapter)
            config = _normalize_config(creator, await fill_config(creator.config_type))
            new_configs[creator.adapter] = config
        _logger.debug(
            "Creating adapter %s with config %s", creator.adapter, redact_config(creator.config_type, config.value)
        )
        registry.register(creator.adapter, creator.create(config))
    return registry, new_configs

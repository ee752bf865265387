"""High-level async entry points: plan, apply and discover a workspace."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence
from functools import partial
from typing import Any

from pyblueprint._constants import CONFIG_BLUEPRINT_NAME
from pyblueprint.adapters.base import AdapterCreator
from pyblueprint.adapters.registry import FillConfig, init_adapters
from pyblueprint.config import WorkspaceConfig
from pyblueprint.core.apply import ReportProgress, apply_actions
from pyblueprint.core.blueprints import (
    BlueprintParser,
    JsonBlueprintParser,
    dump_blueprints,
    get_all_elements,
    load_blueprints,
)
from pyblueprint.core.discover import discover_all
from pyblueprint.core.merger import MergeResult, merge_elements
from pyblueprint.core.planner import get_plan
from pyblueprint.core.records import find_type_in_state, records_adapter
from pyblueprint.core.validator import ValidationRule, validate_elements
from pyblueprint.exceptions import ApplyError, BlueprintValidationError, UnsupportedActionError
from pyblueprint.models.blueprint import Blueprint
from pyblueprint.models.elements import Element, InstanceElement, ObjectType
from pyblueprint.models.plan import Plan, PlanAction, PlanItem
from pyblueprint.state.backends import FileStateBackend, StateBackend
from pyblueprint.state.store import StateStore

_logger = logging.getLogger(__name__)

ShouldApply = Callable[[Plan], Awaitable[bool]]


def _ignore_progress(_item: PlanItem) -> None:
    return None


async def _commit_to_state(state: StateStore, action: PlanAction, element: Element) -> None:
    match action:
        case PlanAction.ADD | PlanAction.MODIFY:
            await state.update([element])
        case PlanAction.REMOVE:
            await state.remove([element])
        case _:
            raise UnsupportedActionError(f"Unsupported action {action!r}")


class Workspace:
    """A set of blueprints reconciled against one tracked system.

    Every operation opens its own :class:`StateStore` and flushes it on
    every exit path. Operations on one workspace must not run
    concurrently; the state file has a single writer.

    Usage::

        workspace = Workspace(WorkspaceConfig.from_env(), [CrmAdapterCreator()])
        plan = await workspace.plan()
        await workspace.apply(fill_config=prompt_config, should_apply=confirm)
    """

    def __init__(
        self,
        config: WorkspaceConfig | None = None,
        creators: Iterable[AdapterCreator] = (),
        *,
        parser: BlueprintParser | None = None,
        state_backend: StateBackend | None = None,
        validation_rules: Sequence[ValidationRule] = (),
    ) -> None:
        self._config = config or WorkspaceConfig()
        self._creators = list(creators)
        self._parser = parser or JsonBlueprintParser()
        self._state_backend = state_backend or FileStateBackend(
            self._config.state_path,
            indent=2 if self._config.state_pretty else None,
        )
        self._validation_rules = list(validation_rules)

    @property
    def config(self) -> WorkspaceConfig:
        return self._config

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _open_state(self) -> StateStore:
        return StateStore(self._state_backend)

    def _resolve_blueprints(self, blueprints: Sequence[Blueprint] | None) -> Sequence[Blueprint]:
        if blueprints is not None:
            return blueprints
        return load_blueprints(self._config.blueprints_dir, self._config.blueprint_suffix)

    def _desired_elements(self, blueprints: Sequence[Blueprint] | None) -> list[Element]:
        config_types: list[Element] = [creator.config_type for creator in self._creators]
        parsed = get_all_elements(
            self._resolve_blueprints(blueprints),
            self._parser,
            suffix=self._config.blueprint_suffix,
        )
        return config_types + parsed

    def merge_and_validate(self, elements: Iterable[Element]) -> MergeResult:
        """Merge *elements* and fail with every validation error at once."""
        merged = merge_elements(elements)
        errors = validate_elements(merged, rules=self._validation_rules)
        if errors:
            raise BlueprintValidationError(errors)
        return merged

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def plan(self, blueprints: Sequence[Blueprint] | None = None) -> Plan:
        """Compute the plan for *blueprints* without applying it."""
        merged = self.merge_and_validate(self._desired_elements(blueprints))
        async with self._open_state() as state:
            return get_plan(await state.get(), merged)

    async def apply(
        self,
        blueprints: Sequence[Blueprint] | None = None,
        *,
        fill_config: FillConfig,
        should_apply: ShouldApply,
        report_progress: ReportProgress | None = None,
        force: bool = False,
    ) -> Plan:
        """Plan, confirm and apply *blueprints*.

        ``should_apply`` reviews the plan before any adapter is created;
        ``force`` skips it. Returns the computed plan whether or not it was
        applied.

        Raises
        ------
        BlueprintValidationError
            Before any side effect, listing every validation error.
        ApplyError
            After the state was flushed, if some items failed. Items that
            committed are kept in state.
        """
        merged = self.merge_and_validate(self._desired_elements(blueprints))
        async with self._open_state() as state:
            plan = get_plan(await state.get(), merged)
            if plan.is_empty:
                _logger.info("Nothing to apply")
                return plan
            if not force and not await should_apply(plan):
                _logger.info("Apply of %d plan item(s) declined", len(plan))
                return plan
            adapters, _ = await init_adapters(merged, self._creators, fill_config)
            result = await apply_actions(
                plan,
                adapters,
                report_progress or _ignore_progress,
                partial(_commit_to_state, state),
                max_concurrency=self._config.max_concurrency,
            )
        if not result.success:
            raise ApplyError(plan, result)
        return plan

    async def discover(
        self,
        blueprints: Sequence[Blueprint] | None = None,
        *,
        fill_config: FillConfig,
    ) -> list[Blueprint]:
        """Replace state with the adapters' live elements.

        Returns the output blueprints: the configurations obtained through
        *fill_config* (if any) as one ``config`` blueprint, followed by the
        discovered elements grouped by their path, or by namespace.
        """
        merged = self.merge_and_validate(self._desired_elements(blueprints))
        adapters, new_configs = await init_adapters(merged, self._creators, fill_config)
        async with self._open_state() as state:
            discovered = await discover_all(adapters)
            await state.override(self.merge_and_validate(discovered).elements)

        # TODO: keep adapter credentials out of the output blueprints once a
        # separate credentials store exists.
        outputs: list[Blueprint] = []
        if new_configs:
            configs = [new_configs[name] for name in sorted(new_configs)]
            outputs.append(
                Blueprint(
                    filename=f"{CONFIG_BLUEPRINT_NAME}{self._config.blueprint_suffix}",
                    buffer=self._parser.dump(configs),
                )
            )
        outputs.extend(dump_blueprints(discovered, self._parser, suffix=self._config.blueprint_suffix))
        return outputs

    # ------------------------------------------------------------------
    # Record operations
    # ------------------------------------------------------------------

    async def _find_type(self, type_id: str) -> ObjectType:
        async with self._open_state() as state:
            return await find_type_in_state(state, type_id)

    async def export_records(
        self,
        type_id: str,
        blueprints: Sequence[Blueprint] | None = None,
        *,
        fill_config: FillConfig,
    ) -> AsyncIterator[list[InstanceElement]]:
        """Stream batches of the live instances of a discovered type."""
        type_element = await self._find_type(type_id)
        merged = self.merge_and_validate(self._desired_elements(blueprints))
        adapters, _ = await init_adapters(merged, self._creators, fill_config)
        return records_adapter(adapters, type_element).get_instances_of_type(type_element)

    async def import_records(
        self,
        type_id: str,
        records: Sequence[dict[str, Any]],
        blueprints: Sequence[Blueprint] | None = None,
        *,
        fill_config: FillConfig,
    ) -> None:
        """Create *records* as instances of a discovered type."""
        type_element = await self._find_type(type_id)
        merged = self.merge_and_validate(self._desired_elements(blueprints))
        adapters, _ = await init_adapters(merged, self._creators, fill_config)
        await records_adapter(adapters, type_element).import_instances_of_type(type_element, records)

    async def delete_records(
        self,
        type_id: str,
        records: Sequence[dict[str, Any]],
        blueprints: Sequence[Blueprint] | None = None,
        *,
        fill_config: FillConfig,
    ) -> None:
        """Delete *records* of a discovered type."""
        type_element = await self._find_type(type_id)
        merged = self.merge_and_validate(self._desired_elements(blueprints))
        adapters, _ = await init_adapters(merged, self._creators, fill_config)
        await records_adapter(adapters, type_element).delete_instances_of_type(type_element, records)

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from pyblueprint.config import WorkspaceConfig
from pyblueprint.exceptions import (
    ApplyError,
    BlueprintConfigError,
    BlueprintValidationError,
    DiscoverError,
    ElementNotFoundError,
)
from pyblueprint.models.blueprint import Blueprint
from pyblueprint.models.elem_id import ElemID
from pyblueprint.models.plan import Plan
from pyblueprint.state.backends import MemoryStateBackend
from pyblueprint.workspace import Workspace

from tests._fakes import ConfigFiller, FakeAdapter, FakeCreator, FakeRecordsAdapter, instance, object_type

LEAD_TYPE: dict[str, Any] = {
    "kind": "object_type",
    "elem_id": "crm.Lead",
    "fields": {"name": {"type": "string"}, "score": {"type": "number"}},
}
LEAD_1: dict[str, Any] = {"kind": "instance", "elem_id": "crm.lead1", "type": "crm.Lead", "value": {"name": "Ada"}}
LEAD_2: dict[str, Any] = {"kind": "instance", "elem_id": "crm.lead2", "type": "crm.Lead", "value": {"name": "Grace"}}


def _blueprint(filename: str, *elements: dict[str, Any]) -> Blueprint:
    return Blueprint(filename=filename, buffer=json.dumps(list(elements)).encode())


class Gate:
    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.plans: list[Plan] = []

    async def __call__(self, plan: Plan) -> bool:
        self.plans.append(plan)
        return self.answer


def _workspace(adapter: FakeAdapter, backend: MemoryStateBackend | None = None) -> tuple[Workspace, FakeCreator]:
    creator = FakeCreator(adapter)
    return Workspace(creators=[creator], state_backend=backend or MemoryStateBackend()), creator


@pytest.mark.asyncio
async def test_plan_lists_changes_without_side_effects() -> None:
    adapter = FakeAdapter("crm")
    backend = MemoryStateBackend()
    workspace, creator = _workspace(adapter, backend)

    plan = await workspace.plan([_blueprint("crm/leads.bp.json", LEAD_TYPE, LEAD_1)])

    assert [item.describe() for item in plan] == ["add crm.Lead", "add crm.lead1"]
    assert adapter.calls == []
    assert creator.created_with == []
    assert backend.saves == 0


@pytest.mark.asyncio
async def test_apply_then_plan_is_empty() -> None:
    adapter = FakeAdapter("crm")
    backend = MemoryStateBackend()
    workspace, creator = _workspace(adapter, backend)
    blueprints = [_blueprint("crm/leads.bp.json", LEAD_TYPE, LEAD_1)]
    filler = ConfigFiller()
    gate = Gate(True)

    plan = await workspace.apply(blueprints, fill_config=filler, should_apply=gate)

    assert gate.plans == [plan]
    assert filler.requested == ["crm"]
    assert adapter.calls == [("add", "crm.Lead"), ("add", "crm.lead1")]
    assert [element.elem_id.full_name for element in backend.elements] == ["crm.Lead", "crm.lead1"]
    assert backend.saves == 1
    assert backend.elements[0].path == ("crm", "leads")

    assert (await workspace.plan(blueprints)).is_empty


@pytest.mark.asyncio
async def test_progress_is_reported_per_item() -> None:
    workspace, _ = _workspace(FakeAdapter("crm"))
    seen: list[str] = []

    await workspace.apply(
        [_blueprint("leads.bp.json", LEAD_TYPE, LEAD_1)],
        fill_config=ConfigFiller(),
        should_apply=Gate(True),
        report_progress=lambda item: seen.append(item.describe()),
    )

    assert seen == ["add crm.Lead", "add crm.lead1"]


@pytest.mark.asyncio
async def test_declined_plan_has_no_side_effects() -> None:
    adapter = FakeAdapter("crm")
    backend = MemoryStateBackend()
    workspace, creator = _workspace(adapter, backend)
    filler = ConfigFiller()

    plan = await workspace.apply([_blueprint("leads.bp.json", LEAD_TYPE)], fill_config=filler, should_apply=Gate(False))

    assert len(plan) == 1
    assert adapter.calls == []
    assert filler.requested == []
    assert creator.created_with == []
    assert backend.saves == 0


@pytest.mark.asyncio
async def test_force_skips_the_gate() -> None:
    adapter = FakeAdapter("crm")
    workspace, _ = _workspace(adapter)
    gate = Gate(False)

    await workspace.apply(
        [_blueprint("leads.bp.json", LEAD_TYPE)], fill_config=ConfigFiller(), should_apply=gate, force=True
    )

    assert gate.plans == []
    assert adapter.calls == [("add", "crm.Lead")]


@pytest.mark.asyncio
async def test_empty_plan_skips_gate_and_adapters() -> None:
    lead_type = object_type("crm", "Lead", {"name": "string", "score": "number"}, path=("leads",))
    workspace, creator = _workspace(FakeAdapter("crm"), MemoryStateBackend([lead_type]))
    gate = Gate(True)
    filler = ConfigFiller()

    plan = await workspace.apply([_blueprint("leads.bp.json", LEAD_TYPE)], fill_config=filler, should_apply=gate)

    assert plan.is_empty
    assert gate.plans == []
    assert filler.requested == []
    assert creator.created_with == []


@pytest.mark.asyncio
async def test_config_from_blueprints_avoids_prompt() -> None:
    adapter = FakeAdapter("crm")
    workspace, creator = _workspace(adapter)
    config = {"kind": "instance", "elem_id": "crm._config", "type": "crm", "value": {"username": "svc"}}
    filler = ConfigFiller()

    await workspace.apply(
        [_blueprint("config.bp.json", config), _blueprint("leads.bp.json", LEAD_TYPE)],
        fill_config=filler,
        should_apply=Gate(True),
    )

    assert filler.requested == []
    assert creator.created_with[0].value == {"username": "svc"}
    assert adapter.calls == [("add", "crm.Lead")]


@pytest.mark.asyncio
async def test_validation_errors_abort_before_any_side_effect() -> None:
    adapter = FakeAdapter("crm")
    backend = MemoryStateBackend()
    workspace, _ = _workspace(adapter, backend)
    gate = Gate(True)
    conflicting = dict(LEAD_1, value={"name": "Someone else"})
    orphan = {"kind": "instance", "elem_id": "crm.orphan", "type": "crm.Missing"}

    with pytest.raises(BlueprintValidationError) as excinfo:
        await workspace.apply(
            [_blueprint("a.bp.json", LEAD_TYPE, LEAD_1), _blueprint("b.bp.json", conflicting, orphan)],
            fill_config=ConfigFiller(),
            should_apply=gate,
        )

    assert len(excinfo.value.errors) == 2
    assert "crm.lead1" in str(excinfo.value)
    assert "crm.orphan" in str(excinfo.value)
    assert gate.plans == []
    assert adapter.calls == []
    assert backend.saves == 0


@pytest.mark.asyncio
async def test_partial_failure_keeps_committed_items() -> None:
    adapter = FakeAdapter("crm", fail_on=["crm.lead2"])
    backend = MemoryStateBackend()
    workspace, _ = _workspace(adapter, backend)
    blueprints = [_blueprint("leads.bp.json", LEAD_TYPE, LEAD_1, LEAD_2)]

    with pytest.raises(ApplyError) as excinfo:
        await workspace.apply(blueprints, fill_config=ConfigFiller(), should_apply=Gate(True))

    assert excinfo.value.result.failed == [ElemID("crm", "lead2")]
    assert "crm.lead2" in str(excinfo.value)
    assert [element.elem_id.full_name for element in backend.elements] == ["crm.Lead", "crm.lead1"]
    assert backend.saves == 1

    retry = await workspace.plan(blueprints)
    assert [item.describe() for item in retry] == ["add crm.lead2"]


@pytest.mark.asyncio
async def test_discover_overrides_state_and_round_trips() -> None:
    live = [
        object_type("crm", "Lead", {"name": "string", "score": "number"}),
        instance("crm", "lead1", "Lead", {"name": "Ada"}),
    ]
    adapter = FakeAdapter("crm", live)
    stale = object_type("crm", "Stale")
    backend = MemoryStateBackend([stale])
    workspace, _ = _workspace(adapter, backend)

    outputs = await workspace.discover([], fill_config=ConfigFiller())

    assert [blueprint.filename for blueprint in outputs] == ["config.bp.json", "crm.bp.json"]
    config = json.loads(outputs[0].buffer)
    assert config[0]["elem_id"] == "crm._config"
    assert [element.elem_id.full_name for element in backend.elements] == ["crm.Lead", "crm.lead1"]

    assert (await workspace.plan(outputs)).is_empty


@pytest.mark.asyncio
async def test_failed_discover_leaves_state_untouched() -> None:
    adapter = FakeAdapter("crm", discover_error=TimeoutError("slow"))
    stale = object_type("crm", "Stale")
    backend = MemoryStateBackend([stale])
    workspace, _ = _workspace(adapter, backend)

    with pytest.raises(DiscoverError):
        await workspace.discover([], fill_config=ConfigFiller())

    assert backend.elements == [stale]
    assert backend.saves == 0


@pytest.mark.asyncio
async def test_records_require_a_discovered_type() -> None:
    adapter = FakeRecordsAdapter("crm")
    workspace, creator = _workspace(adapter)
    filler = ConfigFiller()

    with pytest.raises(ElementNotFoundError, match="crm.Lead. Have you run discover yet?"):
        await workspace.export_records("crm.Lead", [], fill_config=filler)

    assert filler.requested == []
    assert creator.created_with == []


@pytest.mark.asyncio
async def test_record_operations_after_discover() -> None:
    lead_type = object_type("crm", "Lead", {"name": "string"})
    live = [lead_type, *(instance("crm", f"lead{i}", "Lead", {"name": f"n{i}"}) for i in range(3))]
    adapter = FakeRecordsAdapter("crm", live)
    workspace, _ = _workspace(adapter, MemoryStateBackend([lead_type]))
    filler = ConfigFiller()

    batches = [batch async for batch in await workspace.export_records("crm.Lead", [], fill_config=filler)]
    assert [len(batch) for batch in batches] == [2, 1]

    await workspace.import_records("crm.Lead", [{"name": "new"}], [], fill_config=filler)
    await workspace.delete_records("crm.Lead", [{"name": "old"}], [], fill_config=filler)
    assert adapter.imported == [{"name": "new"}]
    assert adapter.deleted == [{"name": "old"}]


@pytest.mark.asyncio
async def test_records_need_adapter_support() -> None:
    lead_type = object_type("crm", "Lead")
    workspace, _ = _workspace(FakeAdapter("crm"), MemoryStateBackend([lead_type]))

    with pytest.raises(BlueprintConfigError, match="record operations"):
        await workspace.import_records("crm.Lead", [{}], [], fill_config=ConfigFiller())


@pytest.mark.asyncio
async def test_workspace_from_directory_and_state_file(tmp_path: Path) -> None:
    source = tmp_path / "blueprints"
    source.mkdir()
    (source / "leads.bp.json").write_text(json.dumps([LEAD_TYPE, LEAD_1]), encoding="utf-8")
    state_path = tmp_path / "state" / "state.json"
    config = WorkspaceConfig(blueprints_dir=str(source), state_path=str(state_path), max_concurrency=1)
    adapter = FakeAdapter("crm")
    workspace = Workspace(config, [FakeCreator(adapter)])

    await workspace.apply(fill_config=ConfigFiller(), should_apply=Gate(True))

    snapshot = json.loads(state_path.read_text(encoding="utf-8"))
    assert [element["elem_id"] for element in snapshot["elements"]] == ["crm.Lead", "crm.lead1"]
    assert (await Workspace(config, [FakeCreator(FakeAdapter("crm"))]).plan()).is_empty

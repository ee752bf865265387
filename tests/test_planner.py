from __future__ import annotations

import logging

import pytest

from pyblueprint.core.planner import get_plan
from pyblueprint.exceptions import DependencyCycleError
from pyblueprint.models.elem_id import ElemID, config_instance_id
from pyblueprint.models.elements import Element, InstanceElement
from pyblueprint.models.plan import Plan, PlanAction

from tests._fakes import instance, object_type


def _by_id(*elements: Element) -> dict[ElemID, Element]:
    return {element.elem_id: element for element in elements}


def _steps(plan: Plan) -> list[tuple[str, str]]:
    return [(item.action.value, item.elem_id.full_name) for item in plan]


TYPE_A = object_type("crm", "TypeA", {"name": "string"})
INSTANCE_A1 = instance("crm", "InstanceA1", "TypeA", {"name": "one"})


def test_empty_state_adds_type_before_instance() -> None:
    plan = get_plan({}, _by_id(TYPE_A, INSTANCE_A1))

    assert _steps(plan) == [("add", "crm.TypeA"), ("add", "crm.InstanceA1")]
    assert plan.get(INSTANCE_A1.elem_id).dependencies == (TYPE_A.elem_id,)  # type: ignore[union-attr]


def test_removing_instance_only_removes_instance() -> None:
    plan = get_plan(_by_id(TYPE_A, INSTANCE_A1), _by_id(TYPE_A))
    assert _steps(plan) == [("remove", "crm.InstanceA1")]
    item = plan.items[0]
    assert item.before == INSTANCE_A1
    assert item.after is None


def test_new_referenced_type_is_added_before_referencing_modify() -> None:
    type_b = object_type("crm", "TypeB", {"size": "number"})
    new_type_a = object_type("crm", "TypeA", {"name": "string", "ref": "crm.TypeB"})

    plan = get_plan(_by_id(TYPE_A), _by_id(new_type_a, type_b))

    assert _steps(plan) == [("add", "crm.TypeB"), ("modify", "crm.TypeA")]
    assert plan.get(new_type_a.elem_id).dependencies == (type_b.elem_id,)  # type: ignore[union-attr]


def test_removals_run_in_reverse_dependency_order() -> None:
    plan = get_plan(_by_id(TYPE_A, INSTANCE_A1), {})
    assert _steps(plan) == [("remove", "crm.InstanceA1"), ("remove", "crm.TypeA")]
    assert plan.get(TYPE_A.elem_id).dependencies == (INSTANCE_A1.elem_id,)  # type: ignore[union-attr]


def test_modify_dropping_reference_goes_before_removal() -> None:
    type_b = object_type("crm", "TypeB")
    with_ref = object_type("crm", "TypeA", {"ref": "crm.TypeB"})
    without_ref = object_type("crm", "TypeA", {"name": "string"})

    plan = get_plan(_by_id(with_ref, type_b), _by_id(without_ref))

    assert _steps(plan) == [("modify", "crm.TypeA"), ("remove", "crm.TypeB")]


def test_plan_is_empty_when_state_matches() -> None:
    plan = get_plan(_by_id(TYPE_A, INSTANCE_A1), _by_id(TYPE_A, INSTANCE_A1))
    assert plan.is_empty
    assert plan.describe() == "No changes."


def test_provenance_alone_is_not_a_change() -> None:
    moved = TYPE_A.with_path(("elsewhere",))
    assert get_plan(_by_id(TYPE_A), _by_id(moved)).is_empty


def test_value_change_is_a_modify() -> None:
    changed = InstanceElement(elem_id=INSTANCE_A1.elem_id, type=INSTANCE_A1.type, value={"name": "two"})
    plan = get_plan(_by_id(TYPE_A, INSTANCE_A1), _by_id(TYPE_A, changed))
    [item] = plan.items
    assert item.action is PlanAction.MODIFY
    assert item.before == INSTANCE_A1
    assert item.after == changed


def test_bool_replacing_a_number_is_a_modify() -> None:
    lead = object_type("crm", "Lead", {"flag": "boolean"})
    before = instance("crm", "lead1", "Lead", {"flag": 1})
    after = instance("crm", "lead1", "Lead", {"flag": True})

    plan = get_plan(_by_id(lead, before), _by_id(lead, after))

    assert [item.describe() for item in plan] == ["modify crm.lead1"]


def test_independent_items_are_ordered_by_full_name() -> None:
    elements = [object_type("crm", name) for name in ("Zeta", "Alpha", "Mid")]
    elements.append(object_type("billing", "Invoice"))
    plan = get_plan({}, _by_id(*elements))
    assert [item.elem_id.full_name for item in plan] == ["billing.Invoice", "crm.Alpha", "crm.Mid", "crm.Zeta"]


def test_plan_is_deterministic() -> None:
    desired = _by_id(
        object_type("crm", "Account", {"name": "string"}),
        object_type("crm", "Lead", {"account": "crm.Account"}),
        instance("crm", "lead1", "Lead"),
        instance("crm", "acme", "Account", {"name": "ACME"}),
    )
    reversed_desired = dict(reversed(list(desired.items())))

    first = get_plan({}, desired)
    second = get_plan({}, reversed_desired)
    assert first.items == second.items
    assert _steps(first) == [
        ("add", "crm.Account"),
        ("add", "crm.Lead"),
        ("add", "crm.acme"),
        ("add", "crm.lead1"),
    ]


def test_applying_the_plan_reaches_the_desired_state() -> None:
    state = _by_id(TYPE_A, INSTANCE_A1, object_type("crm", "Old"))
    desired = _by_id(
        object_type("crm", "TypeA", {"name": "string", "extra": "number"}),
        instance("crm", "InstanceA2", "TypeA"),
    )

    for item in get_plan(state, desired):
        if item.action is PlanAction.REMOVE:
            del state[item.elem_id]
        else:
            state[item.elem_id] = item.element

    assert get_plan(state, desired).is_empty


def test_cycle_is_a_planning_error() -> None:
    type_a = object_type("crm", "TypeA", {"b": "crm.TypeB"})
    type_b = object_type("crm", "TypeB", {"a": "crm.TypeA"})

    with pytest.raises(DependencyCycleError) as excinfo:
        get_plan({}, _by_id(type_a, type_b))

    assert [elem_id.full_name for elem_id in excinfo.value.cycle] == ["crm.TypeA", "crm.TypeB", "crm.TypeA"]
    assert "crm.TypeA -> crm.TypeB -> crm.TypeA" in str(excinfo.value)


def test_removal_only_cycle_is_broken_at_smallest_member(caplog: pytest.LogCaptureFixture) -> None:
    account = object_type("crm", "Account", {"contact": "crm.Contact"})
    contact = object_type("crm", "Contact", {"account": "crm.Account"})

    with caplog.at_level(logging.WARNING, logger="pyblueprint.core.planner"):
        plan = get_plan(_by_id(account, contact), {})

    assert _steps(plan) == [("remove", "crm.Account"), ("remove", "crm.Contact")]
    assert plan.get(account.elem_id).dependencies == ()  # type: ignore[union-attr]
    assert plan.get(contact.elem_id).dependencies == (account.elem_id,)  # type: ignore[union-attr]
    assert "removing crm.Account before crm.Contact" in caplog.text


def test_cycle_through_a_modify_is_still_an_error() -> None:
    account = object_type("crm", "Account", {"contact": "crm.Contact"})
    contact = object_type("crm", "Contact", {"account": "crm.Account"})
    new_account = object_type("crm", "Account", {"contact": "crm.Contact", "name": "string"})
    new_contact = object_type("crm", "Contact", {"account": "crm.Account", "name": "string"})

    with pytest.raises(DependencyCycleError):
        get_plan(_by_id(account, contact), _by_id(new_account, new_contact))


def test_self_reference_is_not_a_cycle() -> None:
    tree = object_type("crm", "Node", {"parent": "crm.Node"})
    assert _steps(get_plan({}, _by_id(tree))) == [("add", "crm.Node")]


def test_unchanged_references_add_no_dependency() -> None:
    lead = instance("crm", "lead1", "TypeA")
    plan = get_plan(_by_id(TYPE_A), _by_id(TYPE_A, lead))
    [item] = plan.items
    assert item.dependencies == ()


def test_config_elements_are_never_planned() -> None:
    config_type = object_type("crm", "unused")
    config_type = config_type.model_copy(update={"elem_id": ElemID("crm")})
    config = InstanceElement(elem_id=config_instance_id("crm"), type=ElemID("crm"), value={"password": "x"})

    assert get_plan({}, _by_id(config_type, config)).is_empty
    assert get_plan(_by_id(config), {}).is_empty


def test_describe_lists_items_with_dependencies() -> None:
    text = get_plan({}, _by_id(TYPE_A, INSTANCE_A1)).describe()
    assert text.splitlines() == [
        "  1. add crm.TypeA",
        "  2. add crm.InstanceA1  (after crm.TypeA)",
    ]

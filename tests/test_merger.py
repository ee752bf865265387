from __future__ import annotations

import itertools

from pyblueprint.core.merger import merge_elements
from pyblueprint.models.elem_id import ElemID
from pyblueprint.models.elements import InstanceElement, ObjectType

from tests._fakes import instance, object_type


def test_single_fragment_passes_through() -> None:
    lead = object_type("crm", "Lead", {"name": "string"}, path=("crm", "lead"))
    merged = merge_elements([lead])
    assert merged[lead.elem_id] is lead
    assert merged.conflicts == []


def test_object_type_fields_are_unioned() -> None:
    first = object_type("crm", "Lead", {"name": "string"}, path=("a",))
    second = object_type("crm", "Lead", {"score": "number", "name": "string"}, path=("b",))

    merged = merge_elements([first, second])

    lead = merged[ElemID("crm", "Lead")]
    assert isinstance(lead, ObjectType)
    assert set(lead.fields) == {"name", "score"}
    assert lead.path == ("a",)
    assert merged.conflicts == []


def test_conflicting_field_definition_is_reported() -> None:
    first = object_type("crm", "Lead", {"score": "number"}, path=("a",))
    second = object_type("crm", "Lead", {"score": "string"}, path=("b",))

    merged = merge_elements([first, second])

    [conflict] = merged.conflicts
    assert conflict.elem_id == ElemID("crm", "Lead")
    assert conflict.field == "score"
    assert "number" in conflict.message
    assert "string" in conflict.message


def test_instance_values_merge_recursively() -> None:
    first = instance("crm", "lead1", "Lead", {"name": "Ada", "address": {"city": "London"}})
    second = instance("crm", "lead1", "Lead", {"address": {"zip": "N1"}, "name": "Ada"})

    merged = merge_elements([first, second])

    lead = merged[ElemID("crm", "lead1")]
    assert isinstance(lead, InstanceElement)
    assert lead.value == {"name": "Ada", "address": {"city": "London", "zip": "N1"}}
    assert merged.conflicts == []


def test_nested_conflict_uses_dotted_field_path() -> None:
    first = instance("crm", "lead1", "Lead", {"address": {"city": "London"}})
    second = instance("crm", "lead1", "Lead", {"address": {"city": "Paris"}})

    [conflict] = merge_elements([first, second]).conflicts
    assert conflict.field == "address.city"
    assert {conflict.first, conflict.second} == {"London", "Paris"}


def test_bool_and_number_are_different_values() -> None:
    first = instance("crm", "lead1", "Lead", {"active": True})
    second = instance("crm", "lead1", "Lead", {"active": 1})

    [conflict] = merge_elements([first, second]).conflicts
    assert conflict.field == "active"


def test_bool_inside_a_list_is_not_a_number() -> None:
    first = instance("crm", "lead1", "Lead", {"flags": [1, {"on": 0}]}, path=("a",))
    second = instance("crm", "lead1", "Lead", {"flags": [True, {"on": False}]}, path=("b",))

    [conflict] = merge_elements([first, second]).conflicts
    assert conflict.field == "flags"


def test_instance_type_mismatch_is_a_conflict() -> None:
    first = instance("crm", "x", "Lead")
    second = instance("crm", "x", "Account")

    [conflict] = merge_elements([first, second]).conflicts
    assert conflict.field == "type"


def test_kind_mismatch_is_a_conflict() -> None:
    as_type = object_type("crm", "Lead")
    as_instance = instance("crm", "Lead", "Other")

    [conflict] = merge_elements([as_type, as_instance]).conflicts
    assert conflict.field == "kind"


def test_merge_does_not_depend_on_fragment_order() -> None:
    fragments = [
        object_type("crm", "Lead", {"name": "string"}, path=("c",), annotations={"label": {"en": "Lead"}}),
        object_type("crm", "Lead", {"score": "number"}, path=("a",)),
        object_type("crm", "Lead", {"owner": "string"}, path=("b",), annotations={"label": {"fr": "Piste"}}),
        instance("crm", "lead1", "Lead", {"name": "Ada"}, path=("x",)),
        instance("crm", "lead1", "Lead", {"score": 3}, path=("y",)),
    ]

    results = []
    for permutation in itertools.permutations(fragments):
        merged = merge_elements(permutation)
        results.append([(element.semantic_dump(), element.path) for element in merged.values()])

    assert all(result == results[0] for result in results)
    lead = merge_elements(fragments)[ElemID("crm", "Lead")]
    assert lead.path == ("a",)
    assert isinstance(lead, ObjectType)
    assert lead.annotations == {"label": {"en": "Lead", "fr": "Piste"}}


def test_conflicts_are_all_collected() -> None:
    fragments = [
        instance("crm", "lead1", "Lead", {"name": "Ada", "score": 1}),
        instance("crm", "lead1", "Lead", {"name": "Grace", "score": 2}),
        object_type("crm", "Lead", {"name": "string"}),
        object_type("crm", "Lead", {"name": "number"}),
    ]

    conflicts = merge_elements(fragments).conflicts
    assert sorted((c.elem_id.full_name, c.field) for c in conflicts) == [
        ("crm.Lead", "name"),
        ("crm.lead1", "name"),
        ("crm.lead1", "score"),
    ]

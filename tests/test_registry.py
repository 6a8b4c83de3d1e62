import pytest
from pydantic import ValidationError

from sequential_planner.errors import OperationNotFoundError
from sequential_planner.models import InputParameter, OperationDescriptor
from sequential_planner.registry import CapabilityRegistry, default_registry

# ---------------------------------------------------------------------------
# Registration & lookup
# ---------------------------------------------------------------------------


def test_lookup_is_case_insensitive():
    registry = CapabilityRegistry()
    registry.register(OperationDescriptor(group="MathSkill", name="Add", description="Add two numbers."))

    assert registry.lookup("mathskill.add").qualified_name == "MathSkill.Add"
    assert registry.lookup("MATHSKILL.ADD").qualified_name == "MathSkill.Add"
    assert "mathSkill.aDD" in registry


def test_register_collision_last_write_wins():
    registry = CapabilityRegistry()
    registry.register(OperationDescriptor(group="MathSkill", name="Add", description="first"))
    registry.register(OperationDescriptor(group="mathskill", name="ADD", description="second"))

    assert len(registry) == 1
    assert registry.lookup("MathSkill.Add").description == "second"


def test_lookup_missing_raises():
    registry = CapabilityRegistry()
    with pytest.raises(OperationNotFoundError, match="Ghost.Do"):
        registry.lookup("Ghost.Do")
    assert registry.get("Ghost.Do") is None
    assert "Ghost.Do" not in registry


def test_find_resolves_bare_and_qualified_names(small_registry):
    assert small_registry.find("op1").qualified_name == "A.op1"
    assert small_registry.find("B.op2").qualified_name == "B.op2"
    assert small_registry.find("Ghost.Do") is None
    assert small_registry.find("ghost") is None


def test_find_bare_name_prefers_first_group():
    registry = CapabilityRegistry()
    registry.register(OperationDescriptor(group="Zeta", name="Run"))
    registry.register(OperationDescriptor(group="Alpha", name="Run"))

    assert registry.find("run").qualified_name == "Alpha.Run"


def test_qualified_name_never_matches_bare_fallback():
    registry = CapabilityRegistry()
    registry.register(OperationDescriptor(group="Alpha", name="Run"))

    assert registry.find("Other.Run") is None


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def test_all_descriptors_sorted_by_group_then_name():
    registry = CapabilityRegistry(
        [
            OperationDescriptor(group="b", name="z"),
            OperationDescriptor(group="A", name="y"),
            OperationDescriptor(group="a2", name="x"),
            OperationDescriptor(group="A", name="B"),
        ]
    )
    names = [d.qualified_name for d in registry.all_descriptors()]
    assert names == ["A.B", "A.y", "a2.x", "b.z"]


def test_all_groups_carry_descriptions_and_operations():
    registry = CapabilityRegistry()
    registry.register_group("TextSkill", "Transforms text.")
    registry.register_group("EmptySkill")
    registry.register(OperationDescriptor(group="TextSkill", name="Upper"))
    registry.register(OperationDescriptor(group="OtherSkill", name="Thing"))

    groups = {g.name: g for g in registry.all_groups()}
    assert [g.name for g in registry.all_groups()] == ["EmptySkill", "OtherSkill", "TextSkill"]
    assert groups["TextSkill"].description == "Transforms text."
    assert [op.name for op in groups["TextSkill"].operations] == ["Upper"]
    assert groups["EmptySkill"].operations == ()
    assert groups["OtherSkill"].description == ""


def test_operations_in_filters_by_group():
    registry = default_registry()
    names = [d.qualified_name for d in registry.operations_in(["mathskill"])]
    assert names == ["MathSkill.Add", "MathSkill.Subtract"]


def test_descriptor_is_immutable():
    descriptor = OperationDescriptor(
        group="FileIOSkill",
        name="Write",
        inputs=(InputParameter(name="path"),),
    )
    with pytest.raises(ValidationError):
        descriptor.description = "changed"


def test_default_registry_groups_are_described():
    registry = default_registry()
    groups = registry.all_groups()
    assert len(registry) > 0
    assert all(g.description for g in groups)
    assert all(g.operations for g in groups)

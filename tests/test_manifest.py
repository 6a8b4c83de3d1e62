from sequential_planner.manifest import (
    estimate_tokens,
    normalize_group_name,
    render_manifest,
    to_embedding_text,
    to_manual_line,
)
from sequential_planner.models import GroupDescriptor, InputParameter, OperationDescriptor

# ---------------------------------------------------------------------------
# Manual lines
# ---------------------------------------------------------------------------


def test_manual_line_exact_format():
    op = OperationDescriptor(group="A", name="op1", description="adds numbers")
    assert to_manual_line(op) == "A.op1:\n  description: adds numbers"


def test_manual_line_blank_description_is_kept():
    op = OperationDescriptor(group="A", name="op1")
    assert to_manual_line(op) == "A.op1:\n  description: "


def test_manual_line_for_group_uses_group_name():
    group = GroupDescriptor(name="MathSkill", description="Performs basic arithmetic.")
    assert to_manual_line(group) == "MathSkill:\n  description: Performs basic arithmetic."


def test_manifest_joins_with_blank_line():
    ops = [
        OperationDescriptor(group="A", name="op1", description="adds numbers"),
        OperationDescriptor(group="B", name="op2", description="sends email"),
    ]
    assert render_manifest(ops) == (
        "A.op1:\n  description: adds numbers\n\nB.op2:\n  description: sends email"
    )
    assert render_manifest([]) == ""


# ---------------------------------------------------------------------------
# Embedding text
# ---------------------------------------------------------------------------


def test_operation_embedding_text_excludes_inputs():
    op = OperationDescriptor(
        group="FileIOSkill",
        name="Write",
        description="Write text to a file.",
        inputs=(InputParameter(name="path", description="Destination file path."),),
    )
    text = to_embedding_text(op, strip_group_suffix=True)
    assert text == "FileIOSkill.Write:\n  description: Write text to a file."
    assert "Destination" not in text


def test_group_embedding_text_suffix_toggle():
    group = GroupDescriptor(name="MathSkill", description="Arithmetic.")
    assert to_embedding_text(group) == "MathSkill:\n  description: Arithmetic."
    assert to_embedding_text(group, strip_group_suffix=True) == "Math:\n  description: Arithmetic."


def test_normalize_group_name_variants():
    assert normalize_group_name("WriterPlugin") == "Writer"
    assert normalize_group_name("textSKILL") == "text"
    assert normalize_group_name("Skill") == "Skill"
    assert normalize_group_name("Calendar") == "Calendar"


# ---------------------------------------------------------------------------
# Token estimate
# ---------------------------------------------------------------------------


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2

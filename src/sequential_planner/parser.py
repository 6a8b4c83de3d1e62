# parser.py
# Plan markup <-> Plan.
#
# The model answers with
#
#   <plan>
#     <!-- comment -->
#     <Group.operation input="literal" other="$PRIOR" output_var="NAME"/>
#     ...
#   </plan>
#
# Every child element of <plan> is a step, in execution order. Parsing is
# all-or-nothing: any failure raises and no partial plan is returned.

import re
import xml.etree.ElementTree as ET
from xml.sax.saxutils import quoteattr

from sequential_planner.errors import MalformedPlanMarkupError, UnknownOperationError
from sequential_planner.models import Plan, Step, VariableReference
from sequential_planner.registry import CapabilityRegistry

PLAN_TAG = "plan"
FUNCTION_PREFIX = "function."
OUTPUT_ATTRIBUTES = ("output_var", "setContextVariable")
RESULT_ATTRIBUTE = "appendToResult"

_PLAN_PATTERN = re.compile(r"<plan\b(?:[^>]*/>|.*?</plan\s*>)", re.DOTALL | re.IGNORECASE)
_VARIABLE_PATTERN = re.compile(r"^\$(?P<name>[A-Za-z_][\w.]*)$")
_BARE_AMPERSAND = re.compile(r"&(?!(?:[A-Za-z]+|#\d+|#x[0-9A-Fa-f]+);)")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _extract_plan(text: str) -> str:
    match = _PLAN_PATTERN.search(text)
    if not match:
        raise MalformedPlanMarkupError("no <plan> element found", text)
    return _BARE_AMPERSAND.sub("&amp;", match.group(0))


def _operation_name(tag: str) -> str:
    if tag.lower().startswith(FUNCTION_PREFIX):
        return tag[len(FUNCTION_PREFIX):]
    return tag


def _matches_operation(step: Step, name: str) -> bool:
    wanted = name.lower()
    candidates = {step.requested_operation.lower()}
    if step.operation_ref:
        candidates.add(step.operation_ref.lower())
        candidates.add(step.operation_ref.rsplit(".", 1)[-1].lower())
    return wanted in candidates


def _producer_index(steps: list[Step], variable: str, operation: str | None = None) -> int | None:
    """Index of the most recent earlier step that outputs `variable`."""
    for index in range(len(steps) - 1, -1, -1):
        step = steps[index]
        if step.output_variable is None or step.output_variable.lower() != variable.lower():
            continue
        if operation is None or _matches_operation(step, operation):
            return index
    return None


def resolve_variable(steps: list[Step], name: str) -> VariableReference:
    """
    Bind `$name` to an earlier step.

    `$VAR` binds to the latest step with output variable VAR. `$op.VAR`
    additionally requires that step to run `op`. Anything else is left
    unbound (step_index None): the goal input or a context variable.
    """
    index = _producer_index(steps, name)
    if index is not None:
        return VariableReference(variable=name, step_index=index)

    if "." in name:
        operation, variable = name.rsplit(".", 1)
        index = _producer_index(steps, variable, operation)
        if index is not None:
            return VariableReference(variable=variable, step_index=index)

    return VariableReference(variable=name, step_index=None)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_plan(
    text: str,
    goal: str,
    registry: CapabilityRegistry,
    *,
    allow_missing_operations: bool = False,
) -> Plan:
    """
    Parse model output into a Plan.

    Raises MalformedPlanMarkupError when no well-formed <plan> element is
    present, and UnknownOperationError for an unregistered operation unless
    `allow_missing_operations` is set, in which case the step keeps a null
    operation reference.
    """
    markup = _extract_plan(text)
    try:
        root = ET.fromstring(markup)
    except ET.ParseError as exc:
        raise MalformedPlanMarkupError(str(exc), markup) from exc

    if root.tag.lower() != PLAN_TAG:
        raise MalformedPlanMarkupError(f"unexpected root element <{root.tag}>", markup)

    steps: list[Step] = []
    for element in root:
        name = _operation_name(element.tag)
        descriptor = registry.find(name)
        if descriptor is None and not allow_missing_operations:
            raise UnknownOperationError(name)

        literal_inputs: dict[str, str] = {}
        variable_inputs: dict[str, VariableReference] = {}
        output_variable: str | None = None
        result_key: str | None = None

        for attribute, value in element.attrib.items():
            if attribute in OUTPUT_ATTRIBUTES:
                output_variable = value
            elif attribute == RESULT_ATTRIBUTE:
                result_key = value
            else:
                match = _VARIABLE_PATTERN.match(value.strip())
                if match:
                    variable_inputs[attribute] = resolve_variable(steps, match.group("name"))
                else:
                    literal_inputs[attribute] = value

        if output_variable is None and result_key is not None:
            output_variable = result_key

        steps.append(
            Step(
                operation_ref=descriptor.qualified_name if descriptor else None,
                requested_operation=name,
                literal_inputs=literal_inputs,
                variable_inputs=variable_inputs,
                output_variable=output_variable,
                result_key=result_key,
            )
        )

    return Plan(goal=goal, steps=tuple(steps))


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _variable_token(earlier: list[Step], reference: VariableReference) -> str:
    """`$VAR`, qualified as `$op.VAR` when a later producer of VAR would shadow the bound step."""
    index = reference.step_index
    if index is None or _producer_index(earlier, reference.variable) == index:
        return f"${reference.variable}"
    producer = earlier[index]
    return f"${producer.operation_ref or producer.requested_operation}.{reference.variable}"


def render_plan_markup(plan: Plan) -> str:
    """Canonical markup for a plan; parse_plan reads it back to the same bindings."""
    lines = [f"<{PLAN_TAG}>"]
    for index, step in enumerate(plan.steps):
        attributes: list[str] = []
        for name, value in step.literal_inputs.items():
            attributes.append(f"{name}={quoteattr(value)}")
        for name, reference in step.variable_inputs.items():
            token = _variable_token(list(plan.steps[:index]), reference)
            attributes.append(f"{name}={quoteattr(token)}")
        if step.output_variable and step.output_variable != step.result_key:
            attributes.append(f"{OUTPUT_ATTRIBUTES[0]}={quoteattr(step.output_variable)}")
        if step.result_key:
            attributes.append(f"{RESULT_ATTRIBUTE}={quoteattr(step.result_key)}")

        tag = step.operation_ref or step.requested_operation
        lines.append(f"  <{tag} {' '.join(attributes)}/>" if attributes else f"  <{tag}/>")
    lines.append(f"</{PLAN_TAG}>")
    return "\n".join(lines)

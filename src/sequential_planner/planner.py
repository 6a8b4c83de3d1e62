# planner.py
# Sequential planner
#
# The planner owns the whole pipeline; the model is a passive responder that
# is called exactly once per planning attempt (twice in the two-pass mode).
#
# Control flow:
#   goal → relevance filter (operations, optionally groups first)
#   → manifest → prompt → one model call → plan parser → Plan
#
# All terminal output is delegated to display.py — no formatting here.

import threading

from sequential_planner import display
from sequential_planner.errors import (
    EmptyGoalError,
    ManifestTooLargeError,
    NoViablePlanError,
    PlanGenerationFailedError,
    PlannerError,
)
from sequential_planner.llm import CompletionClient
from sequential_planner.manifest import estimate_tokens, render_manifest
from sequential_planner.memory import SemanticMemory
from sequential_planner.models import OperationDescriptor, Plan, PlannerConfig
from sequential_planner.parser import parse_plan
from sequential_planner.registry import CapabilityRegistry
from sequential_planner.relevance import (
    RememberedKeys,
    check_cancelled,
    select_groups,
    select_groups_with_model,
    select_operations,
)

STOP_SEQUENCE = "<!-- END -->"

TEMPERATURE = 0.0

# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

PLAN_PROMPT_TEMPLATE = """\
Create an XML plan step by step, to satisfy the goal given, using only the \
operations listed below.

To create a plan, follow these steps:
0. The plan should be as short as possible.
1. From a <goal> create a <plan> as a series of <operations>.
2. A plan has one "input" parameter and one "output" result.
3. Use only the operations listed in [AVAILABLE OPERATIONS]. Do not invent operations.
4. Write each step as an element named after the operation, e.g. <Group.Operation .../>.
5. Pass literal values as attributes, e.g. input="some text".
6. To save a step's result for later steps, add output_var="NAME".
7. To use a saved result, pass "$NAME" as the attribute value. "$INPUT" is the goal's input.
8. To include a step's result in the final output, add appendToResult="RESULT__NAME".
9. You may add XML comments <!-- --> between steps to explain your reasoning.
10. Close the plan with </plan> and then write <!-- END -->.

[AVAILABLE OPERATIONS]

{{$available_functions}}

[END AVAILABLE OPERATIONS]

<goal>{{$input}}</goal>
"""


class SequentialPlanner:
    """
    Builds plans for natural-language goals from a capability registry.

    The planner keeps a default RememberedKeys session so repeated calls do
    not re-embed operations already written to the semantic store. Pass a
    separate session (see new_session) to isolate concurrent callers.

    Example:
        planner = SequentialPlanner(
            client=OpenRouterCompletionClient("anthropic/claude-3.5-haiku"),
            registry=default_registry(),
        )
        plan = planner.create_plan("Add 2 and 3, then print the result.")
    """

    def __init__(
        self,
        client: CompletionClient,
        registry: CapabilityRegistry,
        config: PlannerConfig | None = None,
        memory: SemanticMemory | None = None,
        prompt_template: str | None = None,
    ) -> None:
        self._client = client
        self._registry = registry
        self._config = config or PlannerConfig()
        self._memory = memory
        self._prompt_template = prompt_template or PLAN_PROMPT_TEMPLATE
        self._session = RememberedKeys()

    @property
    def config(self) -> PlannerConfig:
        return self._config

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @staticmethod
    def new_session() -> RememberedKeys:
        return RememberedKeys()

    # ------------------------------------------------------------------
    # Prompt assembly
    # ------------------------------------------------------------------

    def build_prompt(self, goal: str, manifest: str) -> str:
        return (
            self._prompt_template
            .replace("{{$available_functions}}", manifest)
            .replace("{{$input}}", goal)
        )

    def _manifest_for(self, operations: list[OperationDescriptor]) -> str:
        manifest = render_manifest(operations)
        display.manifest_built([d.qualified_name for d in operations], estimate_tokens(manifest))
        return manifest

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def _synthesize(self, goal: str, manifest: str, cancel_event: threading.Event | None) -> Plan:
        """Prompt → one model call → parse. Raises on every failure, never returns an empty plan."""
        prompt = self.build_prompt(goal, manifest)

        limit = self._config.max_prompt_tokens
        if limit is not None:
            estimated = estimate_tokens(prompt)
            if estimated > limit:
                raise ManifestTooLargeError(estimated, limit)

        check_cancelled(cancel_event, "model call")
        display.calling_model()
        try:
            response = self._client.complete(
                prompt,
                max_tokens=self._config.max_tokens,
                temperature=TEMPERATURE,
                stop=[STOP_SEQUENCE],
            )
        except PlannerError:
            raise
        except Exception as exc:
            raise PlanGenerationFailedError(goal, exc) from exc
        check_cancelled(cancel_event, "plan parsing")

        text = (response or "").strip()
        display.model_responded(len(text))

        plan = parse_plan(
            text,
            goal,
            self._registry,
            allow_missing_operations=self._config.allow_missing_operations,
        )
        if not plan.steps:
            raise NoViablePlanError(goal, manifest)

        display.plan_parsed(plan)
        return plan

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def create_plan(
        self,
        goal: str,
        *,
        session: RememberedKeys | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Plan:
        """Select relevant operations for `goal` and ask the model for a plan."""
        _require_goal(goal)
        display.goal_received(goal)

        operations = select_operations(
            self._registry,
            goal,
            self._config,
            memory=self._memory,
            remembered=session if session is not None else self._session,
            cancel_event=cancel_event,
        )
        return self._synthesize(goal, self._manifest_for(operations), cancel_event)

    def create_plan_with_group_filter(
        self,
        goal: str,
        *,
        session: RememberedKeys | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Plan:
        """
        Two-pass planning: pick relevant groups first, then operations within them.

        Groups come from the semantic store or from one extra model call,
        depending on config.group_filter.
        """
        _require_goal(goal)
        display.goal_received(goal)
        remembered = session if session is not None else self._session

        if self._config.group_filter == "model":
            groups = select_groups_with_model(
                self._registry,
                goal,
                self._client,
                self._config,
                cancel_event=cancel_event,
            )
        else:
            groups = select_groups(
                self._registry,
                goal,
                self._config,
                memory=self._memory,
                remembered=remembered,
                cancel_event=cancel_event,
            )
            display.groups_selected([g.name for g in groups])

        operations = select_operations(
            self._registry,
            goal,
            self._config,
            memory=self._memory,
            remembered=remembered,
            groups=[g.name for g in groups],
            cancel_event=cancel_event,
        )
        return self._synthesize(goal, self._manifest_for(operations), cancel_event)

    def create_plan_from_manifest(
        self,
        goal: str,
        manifest: str,
        *,
        cancel_event: threading.Event | None = None,
    ) -> Plan:
        """Plan against a caller-supplied manifest, skipping relevance filtering."""
        _require_goal(goal)
        display.goal_received(goal)
        return self._synthesize(goal, manifest, cancel_event)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_goal(goal: str | None) -> None:
    if goal is None or not goal.strip():
        raise EmptyGoalError()

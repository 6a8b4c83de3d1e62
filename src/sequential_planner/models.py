# models.py
# Data contracts for the sequential planner.
# Schema and validation only.

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InputParameter(BaseModel):
    """A declared input of an operation."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    default_value: str | None = None


class OperationDescriptor(BaseModel):
    """An invocable operation as the planner sees it. Never invoked here."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Operation name within its group.")
    group: str = Field(..., min_length=1, description="Owning group (skill / plugin) name.")
    description: str = Field(default="", description="Free text shown to the model.")
    inputs: tuple[InputParameter, ...] = ()

    @property
    def qualified_name(self) -> str:
        return f"{self.group}.{self.name}"


class GroupDescriptor(BaseModel):
    """A named namespace owning a set of operations."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    description: str = ""
    operations: tuple[OperationDescriptor, ...] = ()


class PlannerConfig(BaseModel):
    """
    Knobs for relevance filtering and plan synthesis.

    Name sets are case-insensitive and stored lower-cased. Exclusion always
    takes precedence over inclusion.
    """

    relevancy_threshold: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Minimum similarity score. None disables similarity filtering.",
    )
    max_relevant_operations: int = Field(default=100, ge=1)
    included_groups: frozenset[str] = frozenset()
    excluded_groups: frozenset[str] = frozenset()
    included_operations: frozenset[str] = frozenset()
    excluded_operations: frozenset[str] = frozenset()
    allow_missing_operations: bool = False
    max_tokens: int = Field(default=1024, ge=1, description="Model output budget.")
    max_prompt_tokens: int | None = Field(default=None, ge=1)
    strip_group_suffix: bool = Field(
        default=True,
        description="Strip a trailing 'skill'/'plugin' from group names in embedding text.",
    )
    group_filter: Literal["memory", "model"] = "memory"

    @field_validator(
        "included_groups",
        "excluded_groups",
        "included_operations",
        "excluded_operations",
        mode="before",
    )
    @classmethod
    def _lower_names(cls, value):
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = [value]
        return frozenset(str(name).strip().lower() for name in value)


class VariableReference(BaseModel):
    """Binding of a step input to a variable produced earlier."""

    model_config = ConfigDict(frozen=True)

    variable: str
    step_index: int | None = Field(
        default=None,
        description="Index of the producing step. None means the goal input or a context variable.",
    )


class Step(BaseModel):
    """One plan entry, in execution order."""

    model_config = ConfigDict(frozen=True)

    operation_ref: str | None = Field(
        ..., description="Qualified name of the resolved operation, None when tolerated as missing."
    )
    requested_operation: str = Field(..., description="Operation name exactly as the model wrote it.")
    literal_inputs: dict[str, str] = Field(default_factory=dict)
    variable_inputs: dict[str, VariableReference] = Field(default_factory=dict)
    output_variable: str | None = None
    result_key: str | None = None


class Plan(BaseModel):
    """An ordered sequence of steps produced for a goal. Re-planning yields a new Plan."""

    model_config = ConfigDict(frozen=True)

    goal: str
    steps: tuple[Step, ...] = ()

    @property
    def outputs(self) -> list[str]:
        return [step.result_key for step in self.steps if step.result_key]

    def to_markup(self) -> str:
        from sequential_planner.parser import render_plan_markup

        return render_plan_markup(self)


class MemoryRecord(BaseModel):
    """A remembered descriptor in the semantic store."""

    collection: str
    key: str
    embedding_text: str
    description: str = ""


class SearchResult(BaseModel):
    key: str
    score: float

# errors.py
# Failure taxonomy for the planner.
#
# Every failure is a typed exception carrying enough context to diagnose
# without re-running. `retryable` tells callers whether trying again with the
# same inputs can succeed.


class PlannerError(Exception):
    """Base class for all planner failures."""

    retryable = False


class EmptyGoalError(PlannerError):
    """Raised before any model call when the goal is empty or blank."""

    def __init__(self) -> None:
        super().__init__("The goal specified is empty.")


class PlanGenerationFailedError(PlannerError):
    """Raised when the model invocation itself fails. The cause is chained."""

    retryable = True

    def __init__(self, goal: str, cause: BaseException) -> None:
        self.goal = goal
        self.cause = cause
        super().__init__(f"Error creating plan for goal {goal!r}: {cause}")


class NoViablePlanError(PlannerError):
    """Raised when the model produced a plan with zero steps."""

    def __init__(self, goal: str, manifest: str) -> None:
        self.goal = goal
        self.manifest = manifest
        super().__init__(
            "Not possible to create plan for goal with available operations.\n"
            f"Goal: {goal}\n"
            f"Operations:\n{manifest}"
        )


class UnknownOperationError(PlannerError):
    """Raised when a plan step names an operation absent from the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Operation {name!r} is not in the registry.")


class MalformedPlanMarkupError(PlannerError):
    """Raised when the model response holds no parseable <plan> element."""

    def __init__(self, reason: str, markup: str = "") -> None:
        self.reason = reason
        self.markup = markup
        snippet = markup if len(markup) <= 400 else markup[:400] + "…"
        super().__init__(f"Failed to parse plan markup: {reason}\n{snippet}")


class StoreUnavailableError(PlannerError):
    """Raised when the semantic store cannot be read or written."""

    retryable = True

    def __init__(self, collection: str, reason: str) -> None:
        self.collection = collection
        self.reason = reason
        super().__init__(f"Semantic store unavailable for collection {collection!r}: {reason}")


class PlanningCancelledError(PlannerError):
    """Raised at the next suspend point once cancellation has been requested."""

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Planning cancelled before {stage}.")


class ManifestTooLargeError(PlannerError):
    """Raised when the assembled prompt exceeds the configured token budget."""

    def __init__(self, estimated_tokens: int, limit: int) -> None:
        self.estimated_tokens = estimated_tokens
        self.limit = limit
        super().__init__(
            f"Prompt needs ~{estimated_tokens} tokens but max_prompt_tokens is {limit}. "
            "Set a relevancy threshold or exclude groups to shrink the manifest."
        )


class OperationNotFoundError(PlannerError):
    """Raised by registry lookups for unknown qualified names."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Operation not available: {name}")

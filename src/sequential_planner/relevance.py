# relevance.py
# Relevance filter — narrows the registry to the operations worth showing the
# model for a goal.
#
# Selection is opt-in: without a goal, a semantic store, or a relevancy
# threshold every non-excluded operation is returned. With all three, the
# candidates are remembered in the store, one similarity search is issued, and
# explicitly included names are added back. Output order is always
# (group, name), never similarity order.

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, TypeVar

from sequential_planner import display
from sequential_planner.errors import (
    PlanGenerationFailedError,
    PlannerError,
    PlanningCancelledError,
    StoreUnavailableError,
)
from sequential_planner.llm import CompletionClient
from sequential_planner.manifest import render_manifest, to_embedding_text
from sequential_planner.memory import SemanticMemory
from sequential_planner.models import GroupDescriptor, OperationDescriptor, PlannerConfig, SearchResult
from sequential_planner.registry import CapabilityRegistry

OPERATION_COLLECTION = "Planning.OperationsManual"
GROUP_COLLECTION = "Planning.GroupsManual"

# Upper bound on concurrent remember upserts.
MAX_REMEMBER_WORKERS = 8

SELECT_GROUPS_PROMPT = """\
Select the groups that are relevant to the goal given.
[AVAILABLE GROUPS]

{{$available_groups}}

[END AVAILABLE GROUPS]

Output only the group names on one line, delimited by commas.
Begin!

<goal>{{$input}}</goal>
"""

GROUP_DELIMITER = ","

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


@dataclass
class RememberedKeys:
    """
    Keys already written to the semantic store during one planning session.

    Passed explicitly into the filter. Separate sessions remember
    independently; upserts are idempotent so overlap is harmless.
    """

    _keys: dict[str, set[str]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def pending(self, collection: str, keys: Iterable[str]) -> list[str]:
        with self._lock:
            known = self._keys.get(collection, set())
            return [k for k in keys if k not in known]

    def mark(self, collection: str, keys: Iterable[str]) -> None:
        with self._lock:
            self._keys.setdefault(collection, set()).update(keys)

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        collection, key = item
        with self._lock:
            return key in self._keys.get(collection, set())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def check_cancelled(cancel_event: threading.Event | None, stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise PlanningCancelledError(stage)


def _store_call(collection: str, fn: Callable[[], T]) -> T:
    """Run a store call, surfacing any non-planner failure as StoreUnavailableError."""
    try:
        return fn()
    except PlannerError:
        raise
    except Exception as exc:
        raise StoreUnavailableError(collection, str(exc) or type(exc).__name__) from exc


def _operation_sort_key(descriptor: OperationDescriptor) -> tuple[str, str]:
    return descriptor.group.lower(), descriptor.name.lower()


def available_operations(
    registry: CapabilityRegistry,
    config: PlannerConfig,
    groups: Iterable[str] | None = None,
) -> list[OperationDescriptor]:
    """Registry operations minus excluded groups/operations, optionally limited to `groups`."""
    wanted = {g.lower() for g in groups} if groups is not None else None
    return [
        d
        for d in registry.all_descriptors()
        if d.group.lower() not in config.excluded_groups
        and d.qualified_name.lower() not in config.excluded_operations
        and (wanted is None or d.group.lower() in wanted)
    ]


def available_groups(registry: CapabilityRegistry, config: PlannerConfig) -> list[GroupDescriptor]:
    return [g for g in registry.all_groups() if g.name.lower() not in config.excluded_groups]


def remember(
    memory: SemanticMemory,
    collection: str,
    entries: dict[str, tuple[str, str]],
    remembered: RememberedKeys,
    cancel_event: threading.Event | None = None,
) -> int:
    """
    Write `entries` (key -> (embedding_text, description)) to the store.

    Keys already remembered this session are skipped without touching the
    store. Remaining keys are checked with `get` and upserted when absent;
    upserts run concurrently and all finish before this returns. Returns the
    number of upserts issued.
    """
    pending = remembered.pending(collection, entries)
    if not pending:
        return 0

    def _remember_one(key: str) -> bool:
        check_cancelled(cancel_event, f"remembering {key}")
        if _store_call(collection, lambda: memory.get(collection, key)) is not None:
            return False
        text, description = entries[key]
        _store_call(collection, lambda: memory.upsert(collection, key, text, description))
        return True

    workers = min(MAX_REMEMBER_WORKERS, len(pending))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_remember_one, key) for key in pending]

    # Every write has settled once the pool exits.
    for future in futures:
        error = future.exception()
        if error is not None:
            raise error

    remembered.mark(collection, pending)
    return sum(1 for future in futures if future.result())


def _search(
    memory: SemanticMemory,
    collection: str,
    goal: str,
    config: PlannerConfig,
    cancel_event: threading.Event | None,
) -> list[SearchResult]:
    check_cancelled(cancel_event, "similarity search")
    return _store_call(
        collection,
        lambda: memory.search(
            collection,
            goal,
            config.max_relevant_operations,
            config.relevancy_threshold,
        ),
    )


# ---------------------------------------------------------------------------
# Operation-level selection
# ---------------------------------------------------------------------------


def select_operations(
    registry: CapabilityRegistry,
    goal: str | None,
    config: PlannerConfig,
    *,
    memory: SemanticMemory | None = None,
    remembered: RememberedKeys | None = None,
    groups: Iterable[str] | None = None,
    cancel_event: threading.Event | None = None,
) -> list[OperationDescriptor]:
    """
    Operations to expose for `goal`, ordered by (group, name).

    `groups` restricts the similarity candidates to operations of those
    groups (the output of a preceding group-level pass). Included operations
    are added back even outside those groups; excluded ones never appear.
    """
    candidates = available_operations(registry, config, groups)

    if not candidates or not goal or memory is None or config.relevancy_threshold is None:
        selected = {d.qualified_name.lower(): d for d in candidates}
    else:
        selected = _similar_operations(memory, goal, config, candidates, remembered, cancel_event)

    for descriptor in available_operations(registry, config):
        key = descriptor.qualified_name.lower()
        if key in config.included_operations:
            selected.setdefault(key, descriptor)

    return sorted(selected.values(), key=_operation_sort_key)


def _similar_operations(
    memory: SemanticMemory,
    goal: str,
    config: PlannerConfig,
    candidates: list[OperationDescriptor],
    remembered: RememberedKeys | None,
    cancel_event: threading.Event | None,
) -> dict[str, OperationDescriptor]:
    remembered = remembered if remembered is not None else RememberedKeys()
    remember(
        memory,
        OPERATION_COLLECTION,
        {
            d.qualified_name: (to_embedding_text(d), d.description or d.qualified_name)
            for d in candidates
        },
        remembered,
        cancel_event,
    )

    by_key = {d.qualified_name.lower(): d for d in candidates}
    selected: dict[str, OperationDescriptor] = {}
    for result in _search(memory, OPERATION_COLLECTION, goal, config, cancel_event):
        descriptor = by_key.get(result.key.lower())
        if descriptor is not None:
            display.relevance_hit(descriptor.qualified_name, result.score)
            selected[result.key.lower()] = descriptor
    return selected


# ---------------------------------------------------------------------------
# Group-level selection
# ---------------------------------------------------------------------------


def select_groups(
    registry: CapabilityRegistry,
    goal: str | None,
    config: PlannerConfig,
    *,
    memory: SemanticMemory | None = None,
    remembered: RememberedKeys | None = None,
    cancel_event: threading.Event | None = None,
) -> list[GroupDescriptor]:
    """Coarse selection of whole groups, ordered by name."""
    candidates = available_groups(registry, config)

    if not candidates or not goal or memory is None or config.relevancy_threshold is None:
        return candidates

    remembered = remembered if remembered is not None else RememberedKeys()
    remember(
        memory,
        GROUP_COLLECTION,
        {
            g.name: (
                to_embedding_text(g, strip_group_suffix=config.strip_group_suffix),
                g.description or g.name,
            )
            for g in candidates
        },
        remembered,
        cancel_event,
    )

    by_key = {g.name.lower(): g for g in candidates}
    selected: dict[str, GroupDescriptor] = {}
    for result in _search(memory, GROUP_COLLECTION, goal, config, cancel_event):
        group = by_key.get(result.key.lower())
        if group is not None:
            display.relevance_hit(group.name, result.score)
            selected[result.key.lower()] = group

    for key, group in by_key.items():
        if key in config.included_groups:
            selected.setdefault(key, group)

    return sorted(selected.values(), key=lambda g: g.name.lower())


def parse_group_selection(response: str, groups: list[GroupDescriptor]) -> list[GroupDescriptor]:
    """
    Match a comma-separated model answer against known groups.

    Unknown or malformed names are dropped silently.
    """
    by_key = {g.name.lower(): g for g in groups}
    first_line = next((line for line in response.strip().splitlines() if line.strip()), "")
    selected: dict[str, GroupDescriptor] = {}
    for raw in first_line.split(GROUP_DELIMITER):
        name = raw.strip().strip("\"'`.").strip()
        group = by_key.get(name.lower())
        if group is not None:
            selected[name.lower()] = group
    return sorted(selected.values(), key=lambda g: g.name.lower())


def select_groups_with_model(
    registry: CapabilityRegistry,
    goal: str,
    client: CompletionClient,
    config: PlannerConfig,
    *,
    cancel_event: threading.Event | None = None,
) -> list[GroupDescriptor]:
    """Ask the model which groups look relevant. One model call."""
    candidates = available_groups(registry, config)
    prompt = (
        SELECT_GROUPS_PROMPT
        .replace("{{$available_groups}}", render_manifest(candidates))
        .replace("{{$input}}", goal)
    )

    check_cancelled(cancel_event, "group selection")
    try:
        response = client.complete(prompt, max_tokens=config.max_tokens, temperature=0.0, stop=[])
    except PlannerError:
        raise
    except Exception as exc:
        raise PlanGenerationFailedError(goal, exc) from exc
    check_cancelled(cancel_event, "group selection result")

    selected = {g.name.lower(): g for g in parse_group_selection(response, candidates)}
    for group in candidates:
        if group.name.lower() in config.included_groups:
            selected.setdefault(group.name.lower(), group)

    display.groups_selected([g.name for g in selected.values()])
    return sorted(selected.values(), key=lambda g: g.name.lower())

# registry.py
# Capability registry — descriptors of every operation the planner may use.
#
# Names are case-insensitive. Registering an operation whose qualified name
# already exists replaces the earlier descriptor (last write wins). The
# registry is built once and only read while planning.

from typing import Iterable

from sequential_planner.errors import OperationNotFoundError
from sequential_planner.models import GroupDescriptor, InputParameter, OperationDescriptor


def _sort_key(descriptor: OperationDescriptor) -> tuple[str, str]:
    return descriptor.group.lower(), descriptor.name.lower()


class CapabilityRegistry:
    """In-memory lookup of operation descriptors grouped by namespace."""

    def __init__(self, descriptors: Iterable[OperationDescriptor] = ()) -> None:
        self._operations: dict[str, OperationDescriptor] = {}
        self._group_descriptions: dict[str, tuple[str, str]] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_group(self, name: str, description: str = "") -> None:
        """Declare a group or update its description."""
        self._group_descriptions[name.lower()] = (name, description)

    def register(self, descriptor: OperationDescriptor) -> None:
        self._operations[descriptor.qualified_name.lower()] = descriptor
        self._group_descriptions.setdefault(descriptor.group.lower(), (descriptor.group, ""))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, qualified_name: str) -> OperationDescriptor | None:
        return self._operations.get(qualified_name.strip().lower())

    def lookup(self, qualified_name: str) -> OperationDescriptor:
        descriptor = self.get(qualified_name)
        if descriptor is None:
            raise OperationNotFoundError(qualified_name)
        return descriptor

    def find(self, name: str) -> OperationDescriptor | None:
        """
        Resolve a name as written by the model.

        Accepts `Group.operation` or a bare `operation`. A bare name resolves
        to the first match in (group, name) order.
        """
        name = name.strip()
        descriptor = self.get(name)
        if descriptor is not None or "." in name:
            return descriptor

        wanted = name.lower()
        for candidate in self.all_descriptors():
            if candidate.name.lower() == wanted:
                return candidate
        return None

    def all_descriptors(self) -> list[OperationDescriptor]:
        return sorted(self._operations.values(), key=_sort_key)

    def operations_in(self, groups: Iterable[str]) -> list[OperationDescriptor]:
        wanted = {g.lower() for g in groups}
        return [d for d in self.all_descriptors() if d.group.lower() in wanted]

    def all_groups(self) -> list[GroupDescriptor]:
        owned: dict[str, list[OperationDescriptor]] = {}
        for descriptor in self.all_descriptors():
            owned.setdefault(descriptor.group.lower(), []).append(descriptor)

        groups = [
            GroupDescriptor(
                name=name,
                description=description,
                operations=tuple(owned.get(key, ())),
            )
            for key, (name, description) in self._group_descriptions.items()
        ]
        return sorted(groups, key=lambda g: g.name.lower())

    def __contains__(self, qualified_name: object) -> bool:
        return isinstance(qualified_name, str) and self.get(qualified_name) is not None

    def __len__(self) -> int:
        return len(self._operations)


# ---------------------------------------------------------------------------
# Demo catalog
# ---------------------------------------------------------------------------

GROUPS: dict[str, str] = {
    "ConsoleSkill":  "Writes text to the operator console.",
    "WebSearchSkill": "Searches the public web.",
    "TextSkill":     "Transforms and condenses text.",
    "FileIOSkill":   "Reads and writes local files.",
    "HttpSkill":     "Sends HTTP requests to remote services.",
    "MathSkill":     "Performs basic arithmetic.",
    "TimeSkill":     "Reports the current date and time.",
}


def _op(group: str, name: str, description: str, *inputs: tuple[str, str]) -> OperationDescriptor:
    return OperationDescriptor(
        group=group,
        name=name,
        description=description,
        inputs=tuple(InputParameter(name=n, description=d) for n, d in inputs),
    )


OPERATIONS: list[OperationDescriptor] = [
    _op("ConsoleSkill", "Echo", "Print a message to the console.", ("input", "The message to print.")),
    _op("WebSearchSkill", "Search", "Search the web and return the top results.", ("input", "The search query.")),
    _op("TextSkill", "Summarize", "Summarize a long text into a few sentences.", ("input", "The text to summarize.")),
    _op("TextSkill", "Uppercase", "Convert a text to uppercase.", ("input", "The text to convert.")),
    _op(
        "TextSkill",
        "Concat",
        "Concatenate two texts.",
        ("input", "The first text."),
        ("input2", "The second text."),
    ),
    _op(
        "FileIOSkill",
        "Write",
        "Write text to a file on disk.",
        ("path", "Destination file path."),
        ("content", "The text to write."),
    ),
    _op("FileIOSkill", "Read", "Read the contents of a file.", ("path", "Source file path.")),
    _op(
        "HttpSkill",
        "Post",
        "Send an HTTP POST request with a JSON payload.",
        ("url", "The target URL."),
        ("payload", "The JSON body."),
    ),
    _op("HttpSkill", "Get", "Send an HTTP GET request and return the response body.", ("url", "The target URL.")),
    _op("MathSkill", "Add", "Add two numbers.", ("input", "The first number."), ("amount", "The number to add.")),
    _op(
        "MathSkill",
        "Subtract",
        "Subtract a number from another.",
        ("input", "The starting number."),
        ("amount", "The number to subtract."),
    ),
    _op("TimeSkill", "Today", "Get the current date."),
]


def default_registry() -> CapabilityRegistry:
    """Registry pre-filled with the demo catalog used by the CLI."""
    registry = CapabilityRegistry()
    for name, description in GROUPS.items():
        registry.register_group(name, description)
    for descriptor in OPERATIONS:
        registry.register(descriptor)
    return registry

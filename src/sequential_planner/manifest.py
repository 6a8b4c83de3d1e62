# manifest.py
# Renders descriptors into the text the model reads (manual lines) and the
# text the semantic store embeds.
#
# Manual line format is fixed:
#   "{name}:\n  description: {description}"
# Entries in a manifest are separated by a blank line.

import math
from typing import Iterable

from sequential_planner.models import GroupDescriptor, OperationDescriptor

Descriptor = OperationDescriptor | GroupDescriptor

MANIFEST_SEPARATOR = "\n\n"

# Suffixes removed from group names in embedding text when enabled.
GROUP_SUFFIXES = ("skill", "plugin")

# Rough characters-per-token ratio for budget checks.
CHARS_PER_TOKEN = 4


def _display_name(descriptor: Descriptor) -> str:
    if isinstance(descriptor, OperationDescriptor):
        return descriptor.qualified_name
    return descriptor.name


def normalize_group_name(name: str) -> str:
    """Drop one trailing 'skill'/'plugin' (any case). Never returns an empty name."""
    lowered = name.lower()
    for suffix in GROUP_SUFFIXES:
        if lowered.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return name


def to_manual_line(descriptor: Descriptor) -> str:
    return f"{_display_name(descriptor)}:\n  description: {descriptor.description or ''}"


def to_embedding_text(descriptor: Descriptor, *, strip_group_suffix: bool = False) -> str:
    """
    Text used to embed a descriptor for similarity search.

    Operation text carries the description only; input metadata is left out.
    For groups, `strip_group_suffix` removes a trailing 'skill'/'plugin' from
    the name.
    """
    name = _display_name(descriptor)
    if strip_group_suffix and isinstance(descriptor, GroupDescriptor):
        name = normalize_group_name(name)
    return f"{name}:\n  description: {descriptor.description or ''}"


def render_manifest(descriptors: Iterable[Descriptor]) -> str:
    return MANIFEST_SEPARATOR.join(to_manual_line(d) for d in descriptors)


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)

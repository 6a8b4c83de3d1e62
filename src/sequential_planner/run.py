# run.py
# Command-line entry point: parses flags, builds the planner, runs each goal.
#
# PLANNER_MODEL accepts any model id listed at https://openrouter.ai/models

import argparse

from openai import OpenAIError

from sequential_planner import config, display
from sequential_planner.errors import PlannerError
from sequential_planner.llm import OpenRouterCompletionClient, create_openai_client
from sequential_planner.memory import HashingEmbeddingModel, OpenAIEmbeddingModel, VolatileMemoryStore
from sequential_planner.planner import SequentialPlanner
from sequential_planner.registry import default_registry

# Fallback goals when none are passed on the command line.
GOALS = [
    "Write a short summary of the latest news on transformer attention and print it.",
    "Get the sum of 5 and 14, then log just the result to the console.",
    "Concat the text '5 - 14 = ' with the difference of 5 and 14.",
    "Send a GET request to https://en.wikipedia.org/wiki/Tree and summarize the response body.",
    "Search for Python packaging best practices and save the summary to ./notes/packaging.txt.",
]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sequential-planner",
        description="Turn natural-language goals into ordered operation plans.",
    )
    parser.add_argument("goals", nargs="*", help="Goals to plan for. Defaults to the demo goals.")
    parser.add_argument("--threshold", type=float, default=None, help="Relevancy threshold in [0, 1].")
    parser.add_argument("--two-pass", action="store_true", help="Select groups before operations.")
    parser.add_argument("--group-filter", choices=["memory", "model"], default=None)
    parser.add_argument("--allow-missing", action="store_true", help="Keep steps naming unknown operations.")
    parser.add_argument("--show-markup", action="store_true", help="Print the canonical plan markup.")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output.")
    return parser


def _build_memory(client):
    if config.embeddings_backend() == "hashing":
        return VolatileMemoryStore(HashingEmbeddingModel())
    return VolatileMemoryStore(OpenAIEmbeddingModel(client, config.embedding_model()))


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    display.set_quiet(args.quiet)

    planner_config = config.planner_config_from_env(
        relevancy_threshold=args.threshold,
        group_filter=args.group_filter,
        allow_missing_operations=args.allow_missing or None,
    )

    try:
        openai_client = create_openai_client()
    except OpenAIError as exc:
        display.halt(f"Could not create the model client: {exc}")
        return 1

    registry = default_registry()
    model = config.planner_model()
    planner = SequentialPlanner(
        client=OpenRouterCompletionClient(model, client=openai_client),
        registry=registry,
        config=planner_config,
        memory=_build_memory(openai_client),
    )

    filtering = (
        "off (all operations)"
        if planner_config.relevancy_threshold is None
        else f"threshold {planner_config.relevancy_threshold}"
    )
    if args.two_pass:
        filtering += f", groups via {planner_config.group_filter}"
    display.banner(model, len(registry), len(registry.all_groups()), filtering)

    failures = 0
    for goal in args.goals or GOALS:
        try:
            if args.two_pass:
                plan = planner.create_plan_with_group_filter(goal)
            else:
                plan = planner.create_plan(goal)
        except PlannerError as exc:
            failures += 1
            display.halt(str(exc), retryable=exc.retryable)
            continue
        if args.show_markup:
            display.plan_markup(plan.to_markup())

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())

import pytest
from pydantic import ValidationError

from sequential_planner import config

PLANNER_VARS = [
    "PLANNER_RELEVANCY_THRESHOLD",
    "PLANNER_MAX_RELEVANT_OPERATIONS",
    "PLANNER_MAX_TOKENS",
    "PLANNER_MAX_PROMPT_TOKENS",
    "PLANNER_ALLOW_MISSING_OPERATIONS",
    "PLANNER_STRIP_GROUP_SUFFIX",
    "PLANNER_GROUP_FILTER",
    "PLANNER_INCLUDED_GROUPS",
    "PLANNER_EXCLUDED_GROUPS",
    "PLANNER_INCLUDED_OPERATIONS",
    "PLANNER_EXCLUDED_OPERATIONS",
    "PLANNER_EMBEDDINGS",
    "PLANNER_HTTP_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in PLANNER_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment():
    cfg = config.planner_config_from_env()
    assert cfg.relevancy_threshold is None
    assert cfg.max_relevant_operations == 100
    assert cfg.max_tokens == 1024
    assert cfg.max_prompt_tokens is None
    assert cfg.allow_missing_operations is False
    assert cfg.strip_group_suffix is True
    assert cfg.group_filter == "memory"
    assert cfg.included_groups == frozenset()


def test_environment_values_are_read(monkeypatch):
    monkeypatch.setenv("PLANNER_RELEVANCY_THRESHOLD", "0.75")
    monkeypatch.setenv("PLANNER_MAX_RELEVANT_OPERATIONS", "12")
    monkeypatch.setenv("PLANNER_ALLOW_MISSING_OPERATIONS", "yes")
    monkeypatch.setenv("PLANNER_STRIP_GROUP_SUFFIX", "false")
    monkeypatch.setenv("PLANNER_GROUP_FILTER", "model")
    monkeypatch.setenv("PLANNER_EXCLUDED_GROUPS", "HttpSkill, FileIOSkill")
    monkeypatch.setenv("PLANNER_INCLUDED_OPERATIONS", "ConsoleSkill.Echo")

    cfg = config.planner_config_from_env()

    assert cfg.relevancy_threshold == 0.75
    assert cfg.max_relevant_operations == 12
    assert cfg.allow_missing_operations is True
    assert cfg.strip_group_suffix is False
    assert cfg.group_filter == "model"
    assert cfg.excluded_groups == frozenset({"httpskill", "fileioskill"})
    assert cfg.included_operations == frozenset({"consoleskill.echo"})


def test_malformed_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("PLANNER_RELEVANCY_THRESHOLD", "high")
    monkeypatch.setenv("PLANNER_MAX_TOKENS", "lots")

    cfg = config.planner_config_from_env()

    assert cfg.relevancy_threshold is None
    assert cfg.max_tokens == 1024


def test_out_of_range_threshold_rejected(monkeypatch):
    monkeypatch.setenv("PLANNER_RELEVANCY_THRESHOLD", "1.5")
    with pytest.raises(ValidationError):
        config.planner_config_from_env()


def test_overrides_win_and_none_is_ignored(monkeypatch):
    monkeypatch.setenv("PLANNER_RELEVANCY_THRESHOLD", "0.2")
    monkeypatch.setenv("PLANNER_GROUP_FILTER", "model")

    cfg = config.planner_config_from_env(relevancy_threshold=0.9, group_filter=None)

    assert cfg.relevancy_threshold == 0.9
    assert cfg.group_filter == "model"


def test_embeddings_backend_and_timeout(monkeypatch):
    assert config.embeddings_backend() == "openai"
    assert config.http_timeout() == config.DEFAULT_HTTP_TIMEOUT

    monkeypatch.setenv("PLANNER_EMBEDDINGS", "Hashing")
    monkeypatch.setenv("PLANNER_HTTP_TIMEOUT", "5")

    assert config.embeddings_backend() == "hashing"
    assert config.http_timeout() == 5.0

from unittest.mock import patch

import pytest
from openai import OpenAIError

from sequential_planner import run


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PLANNER_RELEVANCY_THRESHOLD", "PLANNER_GROUP_FILTER", "PLANNER_EMBEDDINGS"):
        monkeypatch.delenv(name, raising=False)


@patch("sequential_planner.run.create_openai_client")
@patch("sequential_planner.run.OpenRouterCompletionClient")
def test_main_plans_each_goal(mock_client_cls, mock_openai):
    mock_client_cls.return_value.complete.return_value = (
        '<plan><MathSkill.Add input="5" amount="14" output_var="SUM"/>'
        '<ConsoleSkill.Echo input="$SUM"/></plan>'
    )

    code = run.main(["--quiet", "--show-markup", "Add 5 and 14", "Print it"])

    assert code == 0
    assert mock_client_cls.return_value.complete.call_count == 2


@patch("sequential_planner.run.create_openai_client")
@patch("sequential_planner.run.OpenRouterCompletionClient")
def test_main_reports_failures(mock_client_cls, mock_openai):
    mock_client_cls.return_value.complete.return_value = "<plan></plan>"

    assert run.main(["--quiet", "Fly to the moon"]) == 1


@patch("sequential_planner.run.create_openai_client")
@patch("sequential_planner.run.OpenRouterCompletionClient")
def test_main_two_pass_with_hashing_store(mock_client_cls, mock_openai, monkeypatch):
    monkeypatch.setenv("PLANNER_EMBEDDINGS", "hashing")
    mock_client_cls.return_value.complete.return_value = "<plan><TimeSkill.Today/></plan>"

    code = run.main(["--quiet", "--two-pass", "--threshold", "0.0", "what is the current date"])

    assert code == 0


@patch("sequential_planner.run.create_openai_client")
def test_main_reports_client_construction_failure(mock_openai):
    mock_openai.side_effect = OpenAIError("The api_key client option must be set")

    assert run.main(["--quiet", "Add 5 and 14"]) == 1

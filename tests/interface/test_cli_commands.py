"""Tests for CLI commands: help, session, review, add, deck, analytics and config."""

import json
import logging

import pytest
import yaml
from typer.testing import CliRunner

from cadence.application import config as config_module
from cadence.interface.cli import app

runner = CliRunner()

LEDGER = """\
decks:
  - id: d1
    name: Weekly sync
    total_cards: 2
cards:
  - id: c1
    question: Who owns the migration?
    answer: Priya
    deck_id: d1
    difficulty: 4
    next_review: 2020-01-01T00:00:00Z
  - id: c2
    question: When is the launch?
    answer: April 2
    deck_id: d1
    interval: 40
    repetitions: 5
    next_review: 2999-01-01T00:00:00Z
    last_reviewed: 2020-01-01T00:00:00Z
reviews: []
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "CONFIG_FILES", [tmp_path / "none.toml"])
    monkeypatch.delenv("CADENCE_LEDGER_PATH", raising=False)
    monkeypatch.delenv("CADENCE_SESSION_LIMIT", raising=False)
    monkeypatch.delenv("CADENCE_VERBOSE", raising=False)
    yield
    logging.getLogger("cadence").setLevel(logging.NOTSET)


@pytest.fixture
def ledger_path(tmp_path):
    path = tmp_path / "ledger.yaml"
    path.write_text(LEDGER)
    return path


def invoke(ledger_path, *args):
    return runner.invoke(app, ["--ledger", str(ledger_path), *args])


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "spaced-repetition" in result.stdout
    assert "session" in result.stdout
    assert "review" in result.stdout


# --- Session ---


def test_session_lists_due_cards(ledger_path):
    result = invoke(ledger_path, "session")

    assert result.exit_code == 0
    assert "Due now: 1 cards" in result.stdout
    assert "c1" in result.stdout
    assert "c2" not in result.stdout


def test_session_json(ledger_path):
    result = invoke(ledger_path, "session", "--json")

    assert result.exit_code == 0
    cards = json.loads(result.stdout)
    assert [c["id"] for c in cards] == ["c1"]


def test_session_nothing_due(ledger_path):
    result = invoke(ledger_path, "session", "--deck", "other")

    assert result.exit_code == 0
    assert "Nothing due" in result.stdout


# --- Review ---


def test_review_updates_snapshot(ledger_path):
    result = invoke(ledger_path, "review", "c1", "5", "--time", "8", "--json")

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["new_interval"] == 1
    assert payload["new_ease_factor"] == 2.6
    assert payload["matured"] is False

    saved = yaml.safe_load(ledger_path.read_text())
    card = next(c for c in saved["cards"] if c["id"] == "c1")
    assert card["repetitions"] == 1
    assert card["times_reviewed"] == 1
    assert len(saved["reviews"]) == 1
    assert saved["reviews"][0]["rating"] == 5


def test_review_unknown_card_fails(ledger_path):
    result = invoke(ledger_path, "review", "ghost", "3")

    assert result.exit_code == 1
    assert "Card not found" in result.stdout


def test_review_rejects_non_positive_time(ledger_path):
    result = invoke(ledger_path, "review", "c1", "3", "--time", "0")

    assert result.exit_code == 2
    assert "Invalid review" in result.stdout


# --- Add ---


def test_add_card_to_deck(ledger_path):
    result = invoke(ledger_path, "add", "What is the budget?", "40k", "--deck", "d1")

    assert result.exit_code == 0
    assert "(3 cards)" in result.stdout

    saved = yaml.safe_load(ledger_path.read_text())
    assert len(saved["cards"]) == 3
    assert saved["decks"][0]["total_cards"] == 3


def test_add_to_unknown_deck_fails(ledger_path):
    result = invoke(ledger_path, "add", "Q", "A", "--deck", "nope")
    assert result.exit_code == 1


# --- Decks ---


def test_fresh_ledger_deck_then_card(tmp_path):
    path = tmp_path / "new" / "ledger.yaml"

    created = invoke(path, "deck", "create", "Kickoff", "--description", "Project start")
    assert created.exit_code == 0
    assert "Created deck deck_" in created.stdout

    listed = json.loads(invoke(path, "deck", "list", "--json").stdout)
    assert [d["name"] for d in listed] == ["Kickoff"]
    deck_id = listed[0]["id"]

    added = invoke(path, "add", "Who sponsors it?", "Dana", "--deck", deck_id)
    assert added.exit_code == 0
    assert "(1 cards)" in added.stdout

    saved = yaml.safe_load(path.read_text())
    assert saved["decks"][0]["description"] == "Project start"
    assert saved["cards"][0]["deck_id"] == deck_id


def test_deck_create_rejects_long_name(ledger_path):
    result = invoke(ledger_path, "deck", "create", "x" * 101)

    assert result.exit_code == 2
    assert "Invalid deck" in result.stdout


def test_deck_list_text(ledger_path):
    result = invoke(ledger_path, "deck", "list")

    assert result.exit_code == 0
    assert "d1  Weekly sync  (2 cards, 0 mature)" in result.stdout


def test_deck_list_empty(tmp_path):
    result = invoke(tmp_path / "empty.yaml", "deck", "list")

    assert result.exit_code == 0
    assert "No decks yet" in result.stdout


# --- Analytics ---


def test_stats_json(ledger_path):
    result = invoke(ledger_path, "stats", "--json")

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["total_cards"] == 2
    assert data["due_today"] == 1
    assert data["new_cards"] == 1
    assert data["average_retention"] == 0.0


def test_forecast_days(ledger_path):
    result = invoke(ledger_path, "forecast", "--days", "3", "--json")

    assert result.exit_code == 0
    schedule = json.loads(result.stdout)
    assert len(schedule) == 3
    # c1 is overdue from an earlier day and is not rolled forward
    assert sum(day["due_count"] for day in schedule) == 0


def test_mastery(ledger_path):
    result = invoke(ledger_path, "mastery")

    assert result.exit_code == 0
    assert "Mature: 1/2 (50.0%)" in result.stdout
    assert "~8 days" in result.stdout


def test_retention_of_unreviewed_card(ledger_path):
    result = invoke(ledger_path, "retention", "c1")

    assert result.exit_code == 0
    assert result.stdout.strip() == "0.00"


# --- Config ---


def test_config_show(ledger_path):
    result = invoke(ledger_path, "config", "show")

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["ledger_path"] == str(ledger_path.resolve())
    assert data["session_limit"] == 20


def test_missing_ledger_exits_with_usage_error():
    result = runner.invoke(app, ["stats"])

    assert result.exit_code == 2
    assert "No ledger configured" in result.stdout


# --- Logging ---


def test_log_level_follows_config_verbose(ledger_path, monkeypatch):
    monkeypatch.setenv("CADENCE_VERBOSE", "2")

    result = invoke(ledger_path, "config", "show")

    assert result.exit_code == 0
    assert json.loads(result.stdout)["verbose"] == 2
    assert logging.getLogger("cadence").level == logging.DEBUG


def test_verbose_flag_overrides_config(ledger_path, monkeypatch):
    monkeypatch.setenv("CADENCE_VERBOSE", "0")

    result = runner.invoke(app, ["-v", "--ledger", str(ledger_path), "config", "show"])

    assert result.exit_code == 0
    assert logging.getLogger("cadence").level == logging.INFO

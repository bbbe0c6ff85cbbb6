"""Tests for CLI commands: help, cards, due, review, config, serve."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from focusforge.domain.cards.errors import InvalidQuality, NotFound
from focusforge.interface.cli import app, parse_quality

runner = CliRunner()


@pytest.fixture
def data_file(mock_home, tmp_path):
    return tmp_path / "cards.json"


def invoke(data_file, *args, input=None):
    return runner.invoke(app, ["--data-file", str(data_file), *args], input=input)


def add(data_file, question, answer):
    result = invoke(data_file, "cards", "add", question, answer)
    assert result.exit_code == 0, result.output
    return result.stdout.strip().rsplit(" ", 1)[-1]


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "focusforge: spaced-repetition flashcards" in result.stdout
    assert "review" in result.stdout
    assert "cards" in result.stdout


# --- Cards ---


def test_add_and_list_json(data_file):
    card_id = add(data_file, "Capital of France?", "Paris")

    result = invoke(data_file, "cards", "list", "--json")

    assert result.exit_code == 0
    [card] = json.loads(result.stdout)
    assert card["id"] == card_id
    assert card["question"] == "Capital of France?"
    assert card["interval"] == 0
    assert card["ease_factor"] == 2.5
    assert card["last_review_date"] is None


def test_list_empty(data_file):
    result = invoke(data_file, "cards", "list")
    assert result.exit_code == 0
    assert "No flashcards yet!" in result.stdout


def test_add_rejects_blank_text(data_file):
    result = invoke(data_file, "cards", "add", "   ", "Paris")

    assert result.exit_code == 1
    assert "Error" in result.output
    assert not data_file.exists()


def test_delete_with_force(data_file):
    card_id = add(data_file, "Q", "A")

    result = invoke(data_file, "cards", "delete", card_id, "--force")

    assert result.exit_code == 0
    assert json.loads(invoke(data_file, "cards", "list", "--json").stdout) == []


def test_delete_declined(data_file):
    card_id = add(data_file, "Q", "A")

    result = invoke(data_file, "cards", "delete", card_id, input="n\n")

    assert result.exit_code == 1
    assert len(json.loads(invoke(data_file, "cards", "list", "--json").stdout)) == 1


def test_delete_unknown_card(data_file):
    result = invoke(data_file, "cards", "delete", "nope", "-f")

    assert result.exit_code == 1
    assert "nope" in result.output


def test_import_deck(data_file, tmp_path):
    deck = tmp_path / "deck.yaml"
    deck.write_text("cards:\n  - question: Q1\n    answer: A1\n  - Front: Q2\n    Back: A2\n")

    result = invoke(data_file, "cards", "import", str(deck))

    assert result.exit_code == 0
    assert "Imported 2 cards from deck.yaml" in result.stdout
    cards = json.loads(invoke(data_file, "cards", "list", "--json").stdout)
    assert sorted(c["question"] for c in cards) == ["Q1", "Q2"]


def test_import_bad_deck_imports_nothing(data_file, tmp_path):
    deck = tmp_path / "deck.yaml"
    deck.write_text("cards:\n  - question: Q1\n    answer: A1\n  - question: Q2\n")

    result = invoke(data_file, "cards", "import", str(deck))

    assert result.exit_code == 1
    assert "Card #2" in result.output
    assert not data_file.exists()


# --- Due ---


def test_due_json(data_file):
    add(data_file, "Q1", "A1")
    add(data_file, "Q2", "A2")

    result = invoke(data_file, "due", "--json")

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["due"] == 2
    assert data["new"] == 2
    assert data["overdue"] == 0
    assert len(data["queue"]) == 2


def test_due_nothing(data_file):
    result = invoke(data_file, "due")
    assert result.exit_code == 0
    assert "No flashcards due for review today!" in result.stdout


# --- Review ---


def test_review_single_card(data_file):
    add(data_file, "Capital of France?", "Paris")

    result = invoke(data_file, "review", input="\ngood\n")

    assert result.exit_code == 0, result.output
    assert "Card 1 of 1" in result.stdout
    assert "Paris" in result.stdout
    assert "Review Complete!" in result.stdout

    [card] = json.loads(invoke(data_file, "cards", "list", "--json").stdout)
    assert card["interval"] == 1
    assert card["last_review_date"] is not None
    assert json.loads(invoke(data_file, "due", "--json").stdout)["due"] == 0


def test_review_reprompts_on_bad_rating(data_file):
    add(data_file, "Q", "A")

    result = invoke(data_file, "review", input="\n9\n5\n")

    assert result.exit_code == 0, result.output
    assert "Review Complete!" in result.stdout
    [card] = json.loads(invoke(data_file, "cards", "list", "--json").stdout)
    assert card["ease_factor"] == 2.6


def test_review_quit_keeps_unrated_cards_due(data_file):
    add(data_file, "Q1", "A1")
    add(data_file, "Q2", "A2")

    result = invoke(data_file, "review", input="\n4\n\nq\n")

    assert result.exit_code == 0, result.output
    assert "Stopped after 1 cards." in result.stdout
    assert json.loads(invoke(data_file, "due", "--json").stdout)["due"] == 1


def test_review_with_limit(data_file):
    for i in range(3):
        add(data_file, f"Q{i}", f"A{i}")

    result = invoke(data_file, "review", "--limit", "1", input="\n0\n")

    assert result.exit_code == 0, result.output
    assert "Card 1 of 1" in result.stdout


def test_review_nothing_due(data_file):
    result = invoke(data_file, "review")
    assert result.exit_code == 0
    assert "No flashcards due for review today!" in result.stdout


def test_parse_quality():
    assert parse_quality("again") == 0
    assert parse_quality(" Easy ") == 5
    assert parse_quality("3") == 3
    with pytest.raises(InvalidQuality):
        parse_quality("6")
    with pytest.raises(InvalidQuality):
        parse_quality("meh")


# --- Config ---


def test_config_show_masks_secrets(data_file, monkeypatch):
    monkeypatch.setenv("FOCUSFORGE_FIRESTORE_TOKEN", "secret-token")

    result = invoke(data_file, "config", "show")

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["firestore_token"] == "***"
    assert data["firestore_api_key"] is None
    assert data["data_file"] == str(data_file.resolve())


def test_config_path(mock_home):
    result = runner.invoke(app, ["config", "path"])
    assert result.exit_code == 0
    assert result.stdout.strip().endswith("focusforge/config.toml")


# --- Server ---


@patch("uvicorn.run")
def test_serve_command(mock_run):
    result = runner.invoke(app, ["serve", "--port", "9000"])
    assert result.exit_code == 0
    mock_run.assert_called_with("focusforge.server:app", host="127.0.0.1", port=9000, reload=False)


def test_unknown_timezone_is_rejected(data_file):
    result = invoke(data_file, "--timezone", "Mars/Base", "due")
    assert result.exit_code != 0


def test_review_skips_card_deleted_mid_session(data_file):
    add(data_file, "Q", "A")

    with patch(
        "focusforge.infrastructure.adapters.local_store.LocalCardStore.update",
        new_callable=AsyncMock,
        side_effect=NotFound("gone"),
    ):
        result = invoke(data_file, "review", input="\n4\n")

    assert result.exit_code == 0, result.output
    assert "no longer exists; skipping it" in result.stdout
    assert "Review Complete!" in result.stdout

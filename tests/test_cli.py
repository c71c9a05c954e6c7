"""Tests for the freshtrack command line."""

import io
import json
from unittest.mock import patch

import pytest

from freshtrack.cli import main


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with patch("freshtrack.cli.load_dotenv"):
        yield


@pytest.fixture
def run(tmp_path, capsys):
    db_path = str(tmp_path / "pantry.db")

    def _run(*argv, stdin=None):
        if stdin is not None:
            with patch("sys.stdin", io.StringIO(stdin)):
                main(["--db", db_path, *argv])
        else:
            main(["--db", db_path, *argv])
        return capsys.readouterr()

    return _run


def test_no_command_exits(capsys):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 1


def test_resolve_json(run):
    out = run("resolve", "Bnna", "chiken", "--json").out
    assert json.loads(out) == [
        {"input": "Bnna", "canonicalName": "banana", "confidence": 0.95},
        {"input": "chiken", "canonicalName": "chicken", "confidence": 0.86},
    ]


def test_parse_file(run, tmp_path):
    receipt = tmp_path / "receipt.txt"
    receipt.write_text("2x Bnna $1.99\nTOTAL $1.99\n", encoding="utf-8")
    data = json.loads(run("parse", str(receipt), "--json").out)
    assert [(d["canonicalName"], d["quantity"]) for d in data] == [("banana", 2)]


def test_parse_stdin_text_output(run):
    out = run("parse", stdin="Milk 3.49\nEggs 2.99\n").out
    assert "Parsed 2 item(s)" in out
    assert "milk" in out


def test_add_then_list(run):
    assert "as chicken" in run("add", "Chicken", "-q", "2", "-u", "lb").out
    run("add", "Garlic")
    data = json.loads(run("list", "--json").out)
    assert [d["canonicalName"] for d in data] == ["chicken", "garlic"]
    assert data[0]["quantity"] == 2.0
    assert data[0]["unit"] == "lb"
    assert data[0]["urgencyScore"] == 5


def test_add_invalid_quantity(run):
    with pytest.raises(SystemExit) as exc:
        run("add", "milk", "-q", "0")
    assert exc.value.code == 1


def test_add_invalid_expiration(run, capsys):
    with pytest.raises(SystemExit):
        run("add", "milk", "--expires", "soon")
    assert "overrideExpirationDate" in capsys.readouterr().err


def test_import_receipt_from_stdin(run):
    out = run("import-receipt", stdin="2x Bnna $1.99\nMilk 3.49\nSUBTOTAL 5.48\n").out
    assert "Imported 2 item(s)" in out
    data = json.loads(run("export").out)
    assert {d["canonicalName"] for d in data} == {"banana", "milk"}
    assert all(d["source"] == "receipt" for d in data)


def test_urgent_json(run):
    run("add", "milk")
    run("add", "fish")
    run("add", "garlic")
    data = json.loads(run("urgent", "-n", "2", "--json").out)
    assert [d["canonicalName"] for d in data] == ["fish", "milk"]


def test_list_empty(run):
    assert "The pantry is empty." in run("list").out


def test_remove(run):
    run("add", "milk")
    item_id = json.loads(run("export").out)[0]["id"]
    assert f"Removed {item_id}" in run("remove", item_id).out
    with pytest.raises(SystemExit) as exc:
        run("remove", item_id)
    assert exc.value.code == 1


def test_shelf_life_local(run):
    data = json.loads(run("shelf-life", "chicken", "Bnna", "--local").out)
    assert data["provider"] == "fallback"
    assert data["shelfLifeByCanonical"] == {"chicken": 2, "banana": 5}


def test_recipes_without_generator(run):
    run("add", "chicken")
    run("add", "spinach")
    data = json.loads(run("recipes", "--json").out)
    assert data["source"] == "fallback"
    assert data["rankedIngredients"][0]["canonicalName"] == "chicken"
    assert data["recipes"][0]["pantryIngredientsUsed"] == ["chicken", "spinach"]


def test_recipes_empty_pantry(run):
    with pytest.raises(SystemExit) as exc:
        run("recipes")
    assert exc.value.code == 1


def test_migrate_legacy_records(run, tmp_path):
    export = tmp_path / "pantry.json"
    export.write_text(json.dumps([
        {"id": "old-1", "name": "Tomatoes", "quantity": 3},
        {"id": "old-2"},
    ]), encoding="utf-8")
    assert "Imported 1 of 2 record(s)." in run("migrate", str(export)).out
    data = json.loads(run("export").out)
    assert data[0]["id"] == "old-1"
    assert data[0]["canonicalName"] == "tomato"
    assert data[0]["displayName"] == "Tomatoes"


def test_migrate_rejects_non_list(run, tmp_path):
    export = tmp_path / "pantry.json"
    export.write_text('{"items": []}', encoding="utf-8")
    with pytest.raises(SystemExit):
        run("migrate", str(export))


def test_migrate_uses_configured_shelf_life(run, tmp_path):
    config = tmp_path / "freshtrack.toml"
    config.write_text("[shelf_life.days]\ntomato = 3\n", encoding="utf-8")
    export = tmp_path / "pantry.json"
    export.write_text(json.dumps([
        {"id": "old-1", "name": "Tomatoes", "quantity": 3, "purchaseDate": "2024-01-01"},
    ]), encoding="utf-8")
    run("--config", str(config), "migrate", str(export))
    data = json.loads(run("export").out)
    assert data[0]["computedExpirationDate"] == "2024-01-04T00:00:00Z"


def test_list_ordered_by_urgency(run):
    run("add", "garlic")
    run("add", "milk", "--expires", "2000-01-01")
    run("add", "fish")
    out = run("list").out.splitlines()
    assert out[0] == "Pantry (3 item(s)):"
    assert [line.split()[0] for line in out[1:]] == ["milk", "fish", "garlic"]
    assert "overdue" in out[1]

"""Tests for the receipt review-and-commit workflow."""

from datetime import datetime, timedelta, timezone

import pytest

from freshtrack.exceptions import InvalidQuantityError, SessionClosedError
from freshtrack.expiration import ExpirationCalculator
from freshtrack.models import ItemSource, ParsedReceiptLine
from freshtrack.pantry import Pantry
from freshtrack.receipt import ReceiptImportSession

NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
RECEIPT = "2x Bnna $1.99\nZucchini 1.49\nMilk 3.49\nTOTAL $6.97"


@pytest.fixture
def calculator():
    return ExpirationCalculator(clock=lambda: NOW)


@pytest.fixture
def session(calculator):
    return ReceiptImportSession.from_text(
        RECEIPT, purchase_date="2024-06-01", calculator=calculator
    )


def test_from_text_parses_lines(session):
    assert [l.canonical_name for l in session.lines] == ["banana", "zucchini", "milk"]


def test_lines_returns_copy(session):
    session.lines.clear()
    assert len(session.lines) == 3


def test_low_confidence(session):
    assert [l.canonical_name for l in session.low_confidence()] == ["zucchini"]
    assert [l.canonical_name for l in session.low_confidence(0.99)] == [
        "banana", "zucchini",
    ]


class TestEdit:
    def test_edit_fields(self, session):
        edited = session.edit(1, display_name="Courgette", quantity=2, unit=" kg ")
        assert edited.display_name == "Courgette"
        assert edited.quantity == 2.0
        assert edited.unit == "kg"
        assert edited.canonical_name == "zucchini"
        assert session.lines[1] == edited

    def test_blank_display_name_falls_back_to_canonical(self, session):
        assert session.edit(0, display_name="  ").display_name == "banana"

    def test_blank_unit_becomes_item(self, session):
        assert session.edit(0, unit="").unit == "item"

    @pytest.mark.parametrize("quantity", [0, -1, "lots"])
    def test_invalid_quantity(self, session, quantity):
        with pytest.raises(InvalidQuantityError):
            session.edit(0, quantity=quantity)
        assert session.lines[0].quantity == 2

    def test_bad_index(self, session):
        with pytest.raises(IndexError):
            session.edit(9, quantity=1)


def test_remove(session):
    removed = session.remove(1)
    assert removed.canonical_name == "zucchini"
    assert [l.canonical_name for l in session.lines] == ["banana", "milk"]


class TestCommit:
    def test_creates_receipt_items(self, session, calculator):
        items = session.commit()
        assert [i.canonical_name for i in items] == ["banana", "zucchini", "milk"]
        assert all(i.source is ItemSource.RECEIPT for i in items)
        assert all(i.created_at == NOW for i in items)
        banana = items[0]
        assert banana.quantity == 2
        assert banana.purchase_date == datetime(2024, 6, 1, tzinfo=timezone.utc)
        assert banana.computed_expiration_date == datetime(
            2024, 6, 6, tzinfo=timezone.utc
        )

    def test_keeps_reviewed_canonical_name(self, session):
        session.edit(1, display_name="Courgette")
        items = session.commit()
        assert items[1].display_name == "Courgette"
        assert items[1].canonical_name == "zucchini"

    def test_adds_to_pantry(self, session):
        pantry = Pantry()
        items = session.commit(pantry)
        assert len(pantry) == 3
        assert all(i.id in pantry for i in items)

    def test_missing_purchase_date_uses_now(self, calculator):
        session = ReceiptImportSession(
            [ParsedReceiptLine("Milk", "milk", "milk", confidence=1.0)], calculator
        )
        item = session.commit()[0]
        assert item.purchase_date == NOW
        assert item.computed_expiration_date == NOW + timedelta(days=7)

    def test_empty_session_commits_nothing(self, calculator):
        assert ReceiptImportSession([], calculator).commit() == []

    def test_closed_after_commit(self, session):
        session.commit()
        assert session.closed
        with pytest.raises(SessionClosedError):
            session.lines
        with pytest.raises(SessionClosedError):
            session.commit()
        with pytest.raises(SessionClosedError):
            session.edit(0, quantity=1)


def test_abandon_closes_without_items(session):
    pantry = Pantry()
    session.abandon()
    assert session.closed
    assert len(pantry) == 0
    with pytest.raises(SessionClosedError):
        session.commit(pantry)
    with pytest.raises(SessionClosedError):
        session.abandon()

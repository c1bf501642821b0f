"""
tests/unit/test_export_service.py — Unit tests for the export renderers.

Renderers are pure: they get an export context dict and return strings.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone

import pytest

from backend.warikan.errors import AppError, ErrorCode
from backend.warikan.models.currency import CURRENCIES
from backend.warikan.models.event import Category
from backend.warikan.services import export_service

JPY = CURRENCIES["JPY"]
USD = CURRENCIES["USD"]


def _ctx(**overrides) -> dict:
    ctx = {
        "names": ["Alice", "Bob", "Carol"],
        "paid": [None, None, None],
        "total": 9000,
        "tip": 0,
        "tip_rate": 0,
        "per": 3000,
        "details": [3000, 3000, 3000],
        "settlements": [],
        "memo": "Dinner",
        "currency": JPY,
        "category": Category.FOOD,
    }
    ctx.update(overrides)
    return ctx


def _paid_ctx(**overrides) -> dict:
    """Alice paid everything, including a 10% tip."""
    base = dict(
        paid=[9900, 0, None],
        tip=900,
        tip_rate=0.1,
        per=3300,
        details=[3300, 3300, 3300],
        settlements=[
            {"from": 1, "to": 0, "amount": 3300},
            {"from": 2, "to": 0, "amount": 3300},
        ],
    )
    base.update(overrides)
    return _ctx(**base)


def _rows(body: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(body)))


# ═══════════════════════════════════════════════════════════════════════════
# Formatting helpers
# ═══════════════════════════════════════════════════════════════════════════

def test_format_amount_uses_currency_symbol():
    assert export_service.format_amount(3000, JPY) == "¥3000"
    assert export_service.format_amount(12.5, USD) == "$12.5"


def test_format_amount_drops_trailing_zero_of_whole_floats():
    assert export_service.format_amount(3000.0, JPY) == "¥3000"


@pytest.mark.parametrize("rate,expected", [(0.1, "10%"), (0.15, "15%"), (0.05, "5%")])
def test_format_rate(rate, expected):
    assert export_service.format_rate(rate) == expected


def test_has_recorded_payments_ignores_none_and_zero():
    assert not export_service.has_recorded_payments(_ctx(paid=[None, 0, None]))
    assert export_service.has_recorded_payments(_ctx(paid=[None, 1, None]))


# ═══════════════════════════════════════════════════════════════════════════
# Share text
# ═══════════════════════════════════════════════════════════════════════════

class TestShareText:

    def test_without_payments_lists_owed_amounts(self):
        text = export_service.render_share_text(_ctx())
        assert text.splitlines() == [
            "[Warikan]",
            "3 people, total ¥9000",
            "Per person: ¥3000",
            "Alice: ¥3000 Bob: ¥3000 Carol: ¥3000",
            "Memo: Dinner",
        ]

    def test_with_payments_lists_paid_and_transfers(self):
        text = export_service.render_share_text(_paid_ctx())
        assert text.splitlines() == [
            "[Warikan]",
            "3 people, total ¥9000",
            "Tip (10%): ¥900",
            "Memo: Dinner",
            "Alice: ¥9900 paid",
            "Bob: ¥0 paid",
            "Carol: ¥0 paid",
            "",
            "[Transfers]",
            "Bob -> Alice: ¥3300",
            "Carol -> Alice: ¥3300",
        ]

    def test_balanced_payments_need_no_settlement(self):
        text = export_service.render_share_text(_ctx(paid=[3000, 3000, 3000]))
        assert text.endswith("No settlement needed")
        assert "[Transfers]" not in text

    def test_empty_memo_is_omitted(self):
        text = export_service.render_share_text(_ctx(memo=""))
        assert "Memo" not in text

    def test_missing_names_fall_back_to_person_n(self):
        text = export_service.render_share_text(_ctx(names=["Alice"]))
        assert "Person 2: ¥3000" in text
        assert "Person 3: ¥3000" in text


def test_share_link_percent_encodes_text():
    link = export_service.build_share_link("a b\nc")
    assert link == "https://line.me/R/msg/text/?a%20b%0Ac"


def test_share_link_encodes_utf8_and_keeps_unreserved_marks():
    link = export_service.build_share_link("¥(ok)!")
    assert link.endswith("%C2%A5(ok)!")


# ═══════════════════════════════════════════════════════════════════════════
# CSV
# ═══════════════════════════════════════════════════════════════════════════

class TestCsv:

    def test_without_payments(self):
        rows = _rows(export_service.render_csv(_ctx()))
        assert rows == [
            ["Item", "Value"],
            ["Currency", "Japanese yen"],
            ["People", "3"],
            ["Total", "¥9000"],
            ["Tip", "None"],
            ["Per person", "¥3000"],
            ["Memo", "Dinner"],
            ["Category", "food"],
            ["", ""],
            ["Owed amounts", ""],
            ["Alice", "¥3000"],
            ["Bob", "¥3000"],
            ["Carol", "¥3000"],
        ]

    def test_with_payments_has_transfer_section(self):
        rows = _rows(export_service.render_csv(_paid_ctx()))
        assert ["Tip", "10% (¥900)"] in rows
        assert ["Payments", ""] in rows
        assert ["Alice", "¥9900"] in rows
        assert ["Carol", "¥0"] in rows
        assert rows[-2:] == [
            ["Bob -> Alice", "¥3300"],
            ["Carol -> Alice", "¥3300"],
        ]

    def test_balanced_payments_row(self):
        rows = _rows(export_service.render_csv(_ctx(paid=[3000, 3000, 3000])))
        assert rows[-1] == ["No settlement needed", "Everyone's payments match"]

    def test_cells_with_commas_are_quoted(self):
        body = export_service.render_csv(_ctx(memo='Dinner, "drinks"'))
        assert 'Memo,"Dinner, ""drinks"""' in body.splitlines()
        assert ["Memo", 'Dinner, "drinks"'] in _rows(body)

    def test_no_category(self):
        rows = _rows(export_service.render_csv(_ctx(category=None)))
        assert ["Category", ""] in rows


# ═══════════════════════════════════════════════════════════════════════════
# Payment payload
# ═══════════════════════════════════════════════════════════════════════════

class TestPaymentPayload:

    NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_payload_fields(self):
        payload = export_service.build_payment_payload(
            "paypay", 3300, "Alice", JPY, memo="", now=self.NOW,
        )
        assert json.loads(payload) == {
            "method": "paypay",
            "amount": 3300,
            "recipient": "Alice",
            "currency": "JPY",
            "memo": "Warikan settlement",
            "timestamp": "2026-01-01T00:00:00+00:00",
        }

    def test_memo_is_kept(self):
        payload = export_service.build_payment_payload("cash", 1, "Bob", USD, memo="Lunch", now=self.NOW)
        assert json.loads(payload)["memo"] == "Lunch"
        assert json.loads(payload)["currency"] == "USD"

    def test_non_ascii_is_not_escaped(self):
        payload = export_service.build_payment_payload("linepay", 500, "太郎", JPY, now=self.NOW)
        assert "太郎" in payload

    def test_unknown_method_raises(self):
        with pytest.raises(AppError) as exc_info:
            export_service.build_payment_payload("bitcoin", 100, "Alice", JPY)
        assert exc_info.value.code == ErrorCode.INVALID_PAYMENT_METHOD
        assert exc_info.value.http_status == 400
        assert exc_info.value.field == "method"

    @pytest.mark.parametrize("method", list(export_service.PAYMENT_METHODS))
    def test_every_registered_method_is_accepted(self, method):
        payload = export_service.build_payment_payload(method, 100, "Alice", JPY, now=self.NOW)
        assert json.loads(payload)["method"] == method

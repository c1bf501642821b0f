"""
services/export_service.py — Human- and machine-readable renderings of a split.

Pure formatters. They read the numbers produced by the allocator and the
settlement engine and never change them.

Every renderer takes an export context dict:

    {
        "names":       list[str],          # by participant index
        "paid":        list[number|None],  # by participant index
        "total":       int,                # before tip
        "tip":         int,
        "tip_rate":    float,
        "per":         int,
        "details":     list[int],
        "settlements": list[{"from", "to", "amount"}],
        "memo":        str,
        "currency":    Currency,
        "category":    Category | None,
    }

Two shapes, chosen by whether anyone has recorded a payment (> 0):
  - payments recorded → who paid what, then the transfer list
  - nothing recorded  → the per-person owed amounts
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from urllib.parse import quote

from backend.warikan.errors import AppError, ErrorCode
from backend.warikan.models.currency import Currency

SHARE_HEADER = "[Warikan]"
LINE_SHARE_URL = "https://line.me/R/msg/text/?"
CSV_FILENAME = "warikan.csv"
DEFAULT_PAYMENT_MEMO = "Warikan settlement"

# id → display name
PAYMENT_METHODS: dict[str, str] = {
    "cash":    "Cash",
    "credit":  "Credit card",
    "paypay":  "PayPay",
    "linepay": "LINE Pay",
    "venmo":   "Venmo",
    "paypal":  "PayPal",
    "other":   "Other",
}


# ── Formatting helpers ─────────────────────────────────────────────────────

def format_amount(amount, currency: Currency) -> str:
    """`¥3000`, `$12.5`. Whole floats drop their `.0`."""
    if isinstance(amount, float) and amount.is_integer():
        amount = int(amount)
    return f"{currency.symbol}{amount}"


def format_rate(rate: float) -> str:
    """0.1 → '10%'."""
    return f"{rate * 100:g}%"


def _name(ctx: dict, index: int) -> str:
    names = ctx["names"]
    if index < len(names) and names[index]:
        return names[index]
    return f"Person {index + 1}"


def has_recorded_payments(ctx: dict) -> bool:
    return any(p is not None and p > 0 for p in ctx["paid"])


def _people(ctx: dict) -> int:
    return len(ctx["details"])


# ── Share text ─────────────────────────────────────────────────────────────

def render_share_text(ctx: dict) -> str:
    """Plain-text summary for chat apps and the clipboard."""
    cur = ctx["currency"]
    lines = [
        SHARE_HEADER,
        f"{_people(ctx)} people, total {format_amount(ctx['total'], cur)}",
    ]
    if ctx["tip"]:
        lines.append(f"Tip ({format_rate(ctx['tip_rate'])}): {format_amount(ctx['tip'], cur)}")

    if has_recorded_payments(ctx):
        if ctx["memo"]:
            lines.append(f"Memo: {ctx['memo']}")
        for i in range(_people(ctx)):
            paid = ctx["paid"][i] if i < len(ctx["paid"]) else None
            lines.append(f"{_name(ctx, i)}: {format_amount(paid or 0, cur)} paid")
        lines.append("")
        if ctx["settlements"]:
            lines.append("[Transfers]")
            for s in ctx["settlements"]:
                lines.append(
                    f"{_name(ctx, s['from'])} -> {_name(ctx, s['to'])}: "
                    f"{format_amount(s['amount'], cur)}"
                )
        else:
            lines.append("No settlement needed")
    else:
        lines.append(f"Per person: {format_amount(ctx['per'], cur)}")
        lines.append(" ".join(
            f"{_name(ctx, i)}: {format_amount(d, cur)}"
            for i, d in enumerate(ctx["details"])
        ))
        if ctx["memo"]:
            lines.append(f"Memo: {ctx['memo']}")

    return "\n".join(lines)


def build_share_link(text: str) -> str:
    """LINE "send message" URL carrying text (encoded like encodeURIComponent)."""
    return LINE_SHARE_URL + quote(text, safe="!~*'()")


# ── CSV ────────────────────────────────────────────────────────────────────

def _csv_rows(ctx: dict) -> list[list]:
    cur = ctx["currency"]
    category = ctx.get("category")
    tip_cell = (
        f"{format_rate(ctx['tip_rate'])} ({format_amount(ctx['tip'], cur)})"
        if ctx["tip"] else "None"
    )

    rows: list[list] = [
        ["Item", "Value"],
        ["Currency", cur.name],
        ["People", _people(ctx)],
        ["Total", format_amount(ctx["total"], cur)],
        ["Tip", tip_cell],
    ]

    if has_recorded_payments(ctx):
        rows += [
            ["Memo", ctx["memo"]],
            ["Category", category.value if category else ""],
            ["", ""],
            ["Payments", ""],
        ]
        for i in range(_people(ctx)):
            paid = ctx["paid"][i] if i < len(ctx["paid"]) else None
            rows.append([_name(ctx, i), format_amount(paid or 0, cur)])
        rows += [["", ""], ["Transfers", ""]]
        if ctx["settlements"]:
            for s in ctx["settlements"]:
                rows.append([
                    f"{_name(ctx, s['from'])} -> {_name(ctx, s['to'])}",
                    format_amount(s["amount"], cur),
                ])
        else:
            rows.append(["No settlement needed", "Everyone's payments match"])
    else:
        rows += [
            ["Per person", format_amount(ctx["per"], cur)],
            ["Memo", ctx["memo"]],
            ["Category", category.value if category else ""],
            ["", ""],
            ["Owed amounts", ""],
        ]
        for i, d in enumerate(ctx["details"]):
            rows.append([_name(ctx, i), format_amount(d, cur)])

    return rows


def render_csv(ctx: dict) -> str:
    """Tabular export; cells containing commas or quotes are quoted by csv."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerows(_csv_rows(ctx))
    return buf.getvalue()


# ── Payment QR payload ─────────────────────────────────────────────────────

def build_payment_payload(
        method: str,
        amount: int,
        recipient: str,
        currency: Currency,
        memo: str = "",
        now: datetime | None = None,
) -> str:
    """
    JSON document encoded into a payment QR code for one transfer.

    Raises:
        AppError(INVALID_PAYMENT_METHOD, 400) -- unknown method id.
    """
    if method not in PAYMENT_METHODS:
        raise AppError(
            ErrorCode.INVALID_PAYMENT_METHOD,
            f"'{method}' is not a supported payment method. "
            f"Valid values: {', '.join(PAYMENT_METHODS)}.",
            400,
            field="method",
        )

    now = now or datetime.now(timezone.utc)
    return json.dumps(
        {
            "method": method,
            "amount": amount,
            "recipient": recipient,
            "currency": currency.code,
            "memo": memo or DEFAULT_PAYMENT_MEMO,
            "timestamp": now.isoformat(),
        },
        ensure_ascii=False,
    )

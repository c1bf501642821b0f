"""
models/currency.py — Supported display currencies.

Not a table: a fixed registry. `rate` is the externally supplied factor that
converts one JPY unit into the currency (the app's base currency is JPY).
Rates are configuration, never fetched; convert_amount() in
allocation_service is the only place they are applied.
"""

from __future__ import annotations

from typing import NamedTuple


class Currency(NamedTuple):
    code: str
    symbol: str
    name: str
    rate: float


CURRENCIES: dict[str, Currency] = {
    c.code: c
    for c in (
        Currency("JPY", "¥", "Japanese yen",      1),
        Currency("USD", "$", "US dollar",         0.0067),
        Currency("EUR", "€", "Euro",              0.0062),
        Currency("GBP", "£", "Pound sterling",    0.0053),
        Currency("KRW", "₩", "South Korean won",  8.9),
        Currency("CNY", "¥", "Chinese yuan",      0.048),
    )
}


def get_currency(code: str | None, default: str = "JPY") -> Currency:
    """Returns the registered currency for code, falling back to default."""
    return CURRENCIES.get((code or default).upper(), CURRENCIES[default])

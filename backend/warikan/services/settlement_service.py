"""
services/settlement_service.py — Turns owed shares and payments into transfers.

Layer rules:
  - No Flask imports, no session, no I/O.
  - Works on participant indices; callers map ids/names to indices and back.
  - Never raises. Input whose total debt differs from total credit (e.g. an
    even-mode allocation that does not add up to the total) is settled as far
    as it goes and the leftover side is left unmatched.

Algorithm (greedy largest-debtor / largest-creditor matching):
  1. balance[i] = paid[i] - details[i]   (missing/None paid counts as 0)
  2. Debtors are balances below -EPSILON, most negative first.
     Creditors are balances above +EPSILON, largest first.
  3. Match the head debtor with the head creditor for min(debt, credit),
     emit a transfer, drop whichever side reached (near) zero, repeat.

Each step clears at least one participant, so for N participants at most
N-1 transfers are produced. The result is deterministic but is NOT a
minimum-transaction-count solution in general.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from backend.warikan.services.allocation_service import Number, round_half_away, to_decimal

# Tolerance for treating a balance as settled.
EPSILON = Decimal("0.01")


def compute_balances(
        details: Sequence[Number],
        paid: Sequence[Number | None],
) -> list[Decimal]:
    """Returns paid[i] - details[i] per participant, with absent payments as 0."""
    balances: list[Decimal] = []
    for i, owed in enumerate(details):
        amount = paid[i] if i < len(paid) else None
        balances.append(to_decimal(amount or 0) - to_decimal(owed))
    return balances


def settle(
        details: Sequence[Number],
        paid: Sequence[Number | None],
) -> list[dict]:
    """
    Computes the transfers that settle every participant's balance.

    Args:
        details: Owed amount per participant index (from allocate()).
        paid:    Amount already paid per participant index; None = not recorded.

    Returns:
        List of {"from": int, "to": int, "amount": int}. Empty when everyone
        is already within EPSILON of zero.
    """
    balances = compute_balances(details, paid)

    # Python's sort is stable: equal balances keep index order.
    debtors = sorted(
        [[i, bal] for i, bal in enumerate(balances) if bal < -EPSILON],
        key=lambda x: x[1],
    )
    creditors = sorted(
        [[i, bal] for i, bal in enumerate(balances) if bal > EPSILON],
        key=lambda x: x[1],
        reverse=True,
    )

    transfers: list[dict] = []
    i = j = 0

    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        amount = min(-debtor[1], creditor[1])
        transfers.append({
            "from": debtor[0],
            "to": creditor[0],
            "amount": round_half_away(amount),
        })

        debtor[1] += amount
        creditor[1] -= amount

        if abs(debtor[1]) < EPSILON:
            i += 1
        if abs(creditor[1]) < EPSILON:
            j += 1

    return transfers


def apply_settlements(
        paid: Sequence[Number | None],
        transfers: Sequence[dict],
) -> list[Number]:
    """
    Returns the paid vector after the transfers have been carried out.

    The sender has now contributed `amount` more towards the shared cost and
    the receiver has been reimbursed `amount`.
    """
    result: list[Number] = [p or 0 for p in paid]
    needed = max((max(t["from"], t["to"]) for t in transfers), default=-1) + 1
    result.extend([0] * (needed - len(result)))
    for t in transfers:
        result[t["from"]] += t["amount"]
        result[t["to"]] -= t["amount"]
    return result

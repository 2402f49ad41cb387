"""Counted balances derived from the movement ledger.

Balances are never stored; every read folds the ledger rows again. Quantities
are summed as ``Decimal`` so the result does not depend on row order or on the
database's numeric handling.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from app.tally.db.models import LOCATION_STORE, LOCATION_WAREHOUSE

ZERO = Decimal("0")


@dataclass
class BarcodeBalance:
    barcode: str
    store: Decimal = ZERO
    warehouse: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.store + self.warehouse

    def add(self, location_tag: str, quantity: Decimal) -> None:
        if location_tag == LOCATION_WAREHOUSE:
            self.warehouse += quantity
        else:
            self.store += quantity


@dataclass
class AggregateSnapshot:
    balances: dict[str, BarcodeBalance] = field(default_factory=dict)

    def by_location(self) -> dict[tuple[str, str], Decimal]:
        result: dict[tuple[str, str], Decimal] = {}
        for barcode, balance in self.balances.items():
            result[(barcode, LOCATION_STORE)] = balance.store
            result[(barcode, LOCATION_WAREHOUSE)] = balance.warehouse
        return result

    def total_for(self, barcode: str) -> Decimal:
        balance = self.balances.get(barcode)
        return balance.total if balance else ZERO

    def sorted_balances(self) -> list[BarcodeBalance]:
        return [self.balances[key] for key in sorted(self.balances)]


def aggregate(rows: Iterable[tuple[str, str, Decimal]]) -> AggregateSnapshot:
    snapshot = AggregateSnapshot()
    for barcode, location_tag, quantity in rows:
        balance = snapshot.balances.get(barcode)
        if balance is None:
            balance = BarcodeBalance(barcode=barcode)
            snapshot.balances[barcode] = balance
        balance.add(location_tag, Decimal(quantity))
    return snapshot


def barcode_key(code: str | None) -> str:
    """Comparison key for barcodes: trimmed, numeric codes without leading zeros."""
    if code is None:
        return ""
    value = code.strip()
    if value.isascii() and value.isdigit():
        return value.lstrip("0") or "0"
    return value

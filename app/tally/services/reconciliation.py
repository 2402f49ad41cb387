from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from decimal import Decimal

from app.tally.db.models import CatalogEntry
from app.tally.services.aggregation import ZERO, AggregateSnapshot, BarcodeBalance, barcode_key

UNREGISTERED_PRODUCT_CODE = "UNREGISTERED"
REPORT_COLUMNS = [
    "barcode",
    "product_code",
    "description",
    "system_balance",
    "counted_total",
    "counted_store",
    "counted_warehouse",
    "difference",
]
REPORT_DELIMITER = ";"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class ReconciliationRow:
    barcode: str
    product_code: str
    description: str
    system_balance: Decimal
    counted_store: Decimal
    counted_warehouse: Decimal
    registered: bool

    @property
    def counted_total(self) -> Decimal:
        return self.counted_store + self.counted_warehouse

    @property
    def difference(self) -> Decimal:
        return self.counted_total - self.system_balance


@dataclass(frozen=True)
class ReconciliationSummary:
    total_products: int
    counted_products: int
    missing_products: int
    unregistered_items: int
    rows_with_difference: int


def _merge_by_key(snapshot: AggregateSnapshot) -> dict[str, BarcodeBalance]:
    merged: dict[str, BarcodeBalance] = {}
    for balance in snapshot.sorted_balances():
        key = barcode_key(balance.barcode)
        current = merged.get(key)
        if current is None:
            merged[key] = BarcodeBalance(barcode=balance.barcode, store=balance.store, warehouse=balance.warehouse)
        else:
            current.store += balance.store
            current.warehouse += balance.warehouse
    return merged


def reconcile(catalog: list[CatalogEntry], snapshot: AggregateSnapshot) -> list[ReconciliationRow]:
    """Cross-reference counted balances with the session catalog.

    Every catalog entry yields one row (counted as zero when never scanned) and
    every counted code without a catalog entry yields an unregistered row.
    A counted code matches the first catalog entry, by product code, whose
    barcode (or product code when it has none) has the same comparison key.
    """
    counted = _merge_by_key(snapshot)
    rows: list[ReconciliationRow] = []
    matched: set[str] = set()
    for entry in sorted(catalog, key=lambda item: item.product_code):
        code = entry.barcode or entry.product_code
        key = barcode_key(code)
        balance = counted.get(key) if key not in matched else None
        if balance is not None:
            matched.add(key)
        rows.append(
            ReconciliationRow(
                barcode=code,
                product_code=entry.product_code,
                description=entry.description,
                system_balance=Decimal(str(entry.system_balance)),
                counted_store=balance.store if balance else ZERO,
                counted_warehouse=balance.warehouse if balance else ZERO,
                registered=True,
            )
        )
    for key, balance in counted.items():
        if key in matched:
            continue
        rows.append(
            ReconciliationRow(
                barcode=balance.barcode,
                product_code=UNREGISTERED_PRODUCT_CODE,
                description=f"Unregistered item ({balance.barcode})",
                system_balance=ZERO,
                counted_store=balance.store,
                counted_warehouse=balance.warehouse,
                registered=False,
            )
        )
    rows.sort(key=lambda row: (-abs(row.difference), row.barcode, row.product_code))
    return rows


def summarize(rows: list[ReconciliationRow]) -> ReconciliationSummary:
    registered = [row for row in rows if row.registered]
    counted = sum(1 for row in registered if row.counted_total != ZERO)
    return ReconciliationSummary(
        total_products=len(registered),
        counted_products=counted,
        missing_products=len(registered) - counted,
        unregistered_items=len(rows) - len(registered),
        rows_with_difference=sum(1 for row in rows if row.difference != ZERO),
    )


def format_quantity(value: Decimal) -> str:
    if value == ZERO:
        return "0"
    return format(value.normalize(), "f")


def render_report(rows: list[ReconciliationRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=REPORT_DELIMITER, lineterminator="\n")
    writer.writerow(REPORT_COLUMNS)
    for row in rows:
        writer.writerow(
            [
                row.barcode,
                row.product_code,
                row.description,
                format_quantity(row.system_balance),
                format_quantity(row.counted_total),
                format_quantity(row.counted_store),
                format_quantity(row.counted_warehouse),
                format_quantity(row.difference),
            ]
        )
    return buffer.getvalue()


def report_filename(session_name: str) -> str:
    stem = "_".join(session_name.split()) or "session"
    stem = _UNSAFE_FILENAME_CHARS.sub("", stem).strip("._") or "session"
    return f"{stem}_FINAL.csv"

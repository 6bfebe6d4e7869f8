#!/usr/bin/env python3
"""
Synthetic Voucher Ledger Generator
==================================
Generates a sequence-numbered voucher ledger for local runs of the locator
against the in-memory gateway.

Partitions modelled (point of sale / voucher type):
  0001 / 011  Invoice C       -- ~2 vouchers per business day over 2024-2025
  0001 / 013  Credit note C   -- sparse, a handful per month
  0002 / 011  Invoice C       -- empty (no vouchers issued yet)

Voucher numbers start at 1 and dates never decrease with the number, which
is what the binary search relies on.

Run:
    python scripts/generate_ledger.py

Output: data/ledger.json
"""
from __future__ import annotations

import random
from datetime import date, timedelta
from pathlib import Path

from faker import Faker

from voucher_locator.utils.helpers import save_json

fake = Faker("en_US")
Faker.seed(42)
random.seed(42)

START = date(2024, 1, 1)
END   = date(2025, 12, 31)
CAE_VALIDITY_DAYS = 10

# ── Partitions ────────────────────────────────────────────────────────────────

PARTITIONS = [
    {"point_of_sale": 1, "voucher_type": 11, "per_day": (0, 4),  "amount": (1_500.0, 250_000.0)},
    {"point_of_sale": 1, "voucher_type": 13, "per_day": (0, 1),  "amount": (500.0, 30_000.0), "skip_ratio": 0.8},
    {"point_of_sale": 2, "voucher_type": 11, "per_day": (0, 0),  "amount": (0.0, 0.0)},
]

DOC_TYPES = [(80, 11), (86, 11), (96, 8), (99, 0)]   # (DocTipo, digits of DocNro)


def _voucher(number: int, day: date, pos: int, cbte_tipo: int, amount_range: tuple[float, float]) -> dict:
    doc_tipo, digits = random.choice(DOC_TYPES)
    total = round(random.uniform(*amount_range), 2)
    return {
        "CbteDesde": number,
        "CbteHasta": number,
        "PtoVta": pos,
        "CbteTipo": cbte_tipo,
        "Concepto": random.choice([1, 2, 3]),
        "DocTipo": doc_tipo,
        "DocNro": fake.random_number(digits=digits, fix_len=True) if digits else 0,
        "CbteFch": day.strftime("%Y%m%d"),
        "ImpTotal": total,
        "ImpNeto": total,
        "MonId": "PES",
        "MonCotiz": 1,
        "Resultado": "A",
        "CodAutorizacion": str(fake.random_number(digits=14, fix_len=True)),
        "CAE": str(fake.random_number(digits=14, fix_len=True)),
        "CAEFchVto": (day + timedelta(days=CAE_VALIDITY_DAYS)).strftime("%Y%m%d"),
    }


def generate_partition(part: dict) -> list[dict]:
    vouchers: list[dict] = []
    day = START
    while day <= END:
        if day.weekday() < 5 and random.random() >= part.get("skip_ratio", 0.0):
            for _ in range(random.randint(*part["per_day"])):
                vouchers.append(
                    _voucher(len(vouchers) + 1, day, part["point_of_sale"], part["voucher_type"], part["amount"])
                )
        day += timedelta(days=1)
    return vouchers


def main() -> None:
    out = Path("data/ledger.json")
    partitions = []
    for part in PARTITIONS:
        vouchers = generate_partition(part)
        partitions.append({
            "point_of_sale": part["point_of_sale"],
            "voucher_type": part["voucher_type"],
            "vouchers": vouchers,
        })
        label = f"{part['point_of_sale']:04d}-{part['voucher_type']:03d}"
        first = vouchers[0]["CbteFch"] if vouchers else "-"
        last = vouchers[-1]["CbteFch"] if vouchers else "-"
        print(f"  {label}: {len(vouchers):>5} vouchers  ({first} .. {last})")

    save_json({"source_system": "synthetic electronic invoicing ledger", "partitions": partitions}, out)
    print(f"  Wrote ledger -> {out}")


if __name__ == "__main__":
    main()

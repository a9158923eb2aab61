# foamcrm/pricing/rates.py
"""Versioned insulation rate table.

Closed-cell and open-cell foam are priced from R-value brackets. The R-value
of a layer is always derived from its thickness with ``R_PER_INCH`` before the
bracket lookup, so the thickness labels on the brackets are informational
only. Hybrid assemblies, batt and blown-in are priced per inch of thickness.

The table is built once per request (from the catalog tables or from the
defaults below) and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable, Mapping

from flask import current_app

DEFAULT_VERSION = '2025-09'

R_PER_INCH = MappingProxyType({
    'closed_cell': Decimal('7.0'),
    'open_cell':   Decimal('3.8'),
    'batt':        Decimal('3.2'),
    'blown_in':    Decimal('2.5'),
})

# (min R, max R, $/sqft, thickness label); material + labor
_CLOSED_CELL = [
    ('0',  '7',    '1.80', '1"'),
    ('8',  '13',   '2.30', '1.5"'),
    ('14', '15.9', '2.80', '2"'),
    ('16', '19',   '3.60', '2.5"'),
    ('20', '21.9', '3.90', '3"'),
    ('22', '30.9', '5.70', '4"'),
    ('31', '38.9', '6.80', '5"'),
    ('39', '49.9', '8.70', '7"'),
    ('50', '999',  '8.70', '7+"'),
]

_OPEN_CELL = [
    ('0',  '15',   '1.65', '3.5"'),
    ('16', '21',   '1.90', '5.5"'),
    ('22', '28',   '2.20', '7"'),
    ('29', '30.9', '2.40', '8"'),
    ('31', '34',   '2.60', '9"'),
    ('35', '38',   '2.90', '10"'),
    ('39', '45',   '3.30', '12"'),
    ('46', '49',   '3.50', '13"'),
    ('50', '999',  '3.50', '13+"'),
]

# Hybrid layers use the foam rates below: 8.70 / 7" closed-cell and
# 1.65 / 3.5" open-cell, published rounded to three places. Batt is the
# 0.80 R-13 rate over a 3.5" batt, blown-in the 0.90 R-19 rate over 7.6".
_PER_INCH = {
    'closed_cell': '1.243',
    'open_cell':   '0.471',
    'batt':        '0.229',
    'blown_in':    '0.118',
}


def _field(row, key):
    return row.get(key) if isinstance(row, dict) else getattr(row, key)


@dataclass(frozen=True)
class Bracket:
    min_r_value: Decimal
    max_r_value: Decimal
    price_per_sqft: Decimal
    thickness: str | None = None

    def contains(self, r_value: Decimal) -> bool:
        return self.min_r_value <= r_value <= self.max_r_value

    def to_dict(self) -> dict:
        return {
            'min_r_value': float(self.min_r_value),
            'max_r_value': float(self.max_r_value),
            'price_per_sqft': float(self.price_per_sqft),
            'thickness': self.thickness,
        }


@dataclass(frozen=True)
class RateTable:
    version: str
    brackets: Mapping[str, tuple[Bracket, ...]]
    per_inch: Mapping[str, Decimal]

    def __post_init__(self) -> None:
        # Freeze the mappings handed in by the caller
        object.__setattr__(self, 'brackets', MappingProxyType(
            {k: tuple(v) for k, v in self.brackets.items()}))
        object.__setattr__(self, 'per_inch', MappingProxyType(dict(self.per_inch)))

    def bracket_for(self, insulation_type: str, r_value: Decimal) -> Bracket | None:
        for bracket in self.brackets.get(insulation_type, ()):
            if bracket.contains(r_value):
                return bracket
        return None

    def price_per_inch(self, insulation_type: str) -> Decimal | None:
        return self.per_inch.get(insulation_type)

    def to_dict(self) -> dict:
        return {
            'version': self.version,
            'r_per_inch': {k: float(v) for k, v in R_PER_INCH.items()},
            'brackets': {
                kind: [b.to_dict() for b in rows]
                for kind, rows in self.brackets.items()
            },
            'per_inch': {k: float(v) for k, v in self.per_inch.items()},
        }

    @classmethod
    def from_rows(cls, version: str, bracket_rows: Iterable, per_inch_rows: Iterable) -> RateTable:
        """Build a table from catalog rows (ORM objects or plain dicts)."""
        brackets: dict[str, list[Bracket]] = {}
        for row in bracket_rows:
            brackets.setdefault(_field(row, 'insulation_type'), []).append(Bracket(
                min_r_value=Decimal(str(_field(row, 'min_r_value'))),
                max_r_value=Decimal(str(_field(row, 'max_r_value'))),
                price_per_sqft=Decimal(str(_field(row, 'price_per_sqft'))),
                thickness=_field(row, 'thickness_label'),
            ))
        for rows in brackets.values():
            rows.sort(key=lambda b: b.min_r_value)
        per_inch = {}
        for row in per_inch_rows:
            per_inch[_field(row, 'insulation_type')] = Decimal(str(_field(row, 'price_per_inch')))
        return cls(version=version, brackets=brackets, per_inch=per_inch)


def _bracket_rows(kind: str, rows: list) -> list[dict]:
    return [
        {
            'insulation_type': kind,
            'min_r_value': float(lo),
            'max_r_value': float(hi),
            'price_per_sqft': Decimal(price),
            'thickness_label': label,
        }
        for lo, hi, price, label in rows
    ]


def default_rows() -> tuple[list[dict], list[dict]]:
    """Built-in catalog rows, used for seeding and as the fallback table."""
    brackets = _bracket_rows('closed_cell', _CLOSED_CELL) + _bracket_rows('open_cell', _OPEN_CELL)
    per_inch = [{'insulation_type': k, 'price_per_inch': Decimal(v)} for k, v in _PER_INCH.items()]
    return brackets, per_inch


def default_rate_table(version: str = DEFAULT_VERSION) -> RateTable:
    brackets, per_inch = default_rows()
    return RateTable.from_rows(version, brackets, per_inch)


def load_rate_table(version: str | None = None) -> RateTable:
    """Return the catalog table for ``version``, or the defaults when the
    catalog holds no rows for it."""
    from foamcrm.models import RateBracket, PerInchRate

    version = version or current_app.config.get('RATE_TABLE_VERSION', DEFAULT_VERSION)
    brackets = RateBracket.query.filter_by(version=version).all()
    per_inch = PerInchRate.query.filter_by(version=version).all()
    if not brackets and not per_inch:
        return default_rate_table(version)
    return RateTable.from_rows(version, brackets, per_inch)

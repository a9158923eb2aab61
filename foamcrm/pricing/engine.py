# foamcrm/pricing/engine.py
"""Unit price and line cost for a single measurement.

Precedence: a manager override always wins; otherwise the insulation type
decides between an R-value bracket lookup (closed/open cell) and per-inch
rates (hybrid, batt, blown-in). A type with no matching bracket or rate is
priced at zero rather than raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from foamcrm.errors import ValidationError
from foamcrm.pricing.rates import R_PER_INCH, RateTable

CENTS = Decimal('0.01')
UNIT_PLACES = Decimal('0.0001')
ZERO = Decimal('0')


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_cents(value) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def r_value_label(r_value: Decimal | None) -> str | None:
    if r_value is None or r_value <= 0:
        return None
    return f"R-{r_value.quantize(Decimal('1'), rounding=ROUND_HALF_UP)}"


def _inches(value) -> str:
    d = to_decimal(value).normalize()
    return f'{d:f}"'


@dataclass(frozen=True)
class PriceQuote:
    unit_price: Decimal
    line_cost: Decimal
    r_value: Decimal | None
    source: str
    description: str = ''

    @property
    def r_value_label(self) -> str | None:
        return r_value_label(self.r_value)

    def to_dict(self) -> dict:
        return {
            'unit_price': float(self.unit_price),
            'line_cost': float(self.line_cost),
            'r_value': float(self.r_value) if self.r_value is not None else None,
            'r_value_label': self.r_value_label,
            'source': self.source,
            'description': self.description,
        }


def resolve_r_value(insulation_type: str, thickness_inches=None,
                    closed_cell_inches=None, open_cell_inches=None) -> Decimal | None:
    """Numeric R-value from the thickness fields.

    Hybrid R-value is the sum of both layers. Returns None when the type has
    no thickness to derive from.
    """
    if insulation_type == 'hybrid':
        cc = to_decimal(closed_cell_inches)
        oc = to_decimal(open_cell_inches)
        if cc <= 0 and oc <= 0:
            return None
        return cc * R_PER_INCH['closed_cell'] + oc * R_PER_INCH['open_cell']
    per_inch = R_PER_INCH.get(insulation_type)
    if per_inch is None or thickness_inches is None:
        return None
    return to_decimal(thickness_inches) * per_inch


def describe_hybrid(closed_cell_inches, open_cell_inches) -> str:
    parts = []
    cc = to_decimal(closed_cell_inches)
    oc = to_decimal(open_cell_inches)
    if cc > 0:
        parts.append(f"{_inches(cc)} Closed Cell ({r_value_label(cc * R_PER_INCH['closed_cell'])})")
    if oc > 0:
        parts.append(f"{_inches(oc)} Open Cell ({r_value_label(oc * R_PER_INCH['open_cell'])})")
    return ' + '.join(parts)


def unit_price_for(rates: RateTable, insulation_type: str, thickness_inches=None,
                   closed_cell_inches=None, open_cell_inches=None) -> tuple[Decimal, str, str]:
    """Rate-table unit price, ignoring overrides: (price, source, description)."""
    if insulation_type == 'hybrid':
        cc_rate = rates.price_per_inch('closed_cell') or ZERO
        oc_rate = rates.price_per_inch('open_cell') or ZERO
        price = to_decimal(closed_cell_inches) * cc_rate + to_decimal(open_cell_inches) * oc_rate
        return price, 'hybrid', describe_hybrid(closed_cell_inches, open_cell_inches)

    if insulation_type in ('closed_cell', 'open_cell'):
        r_value = resolve_r_value(insulation_type, thickness_inches)
        label = insulation_type.replace('_', ' ').title()
        if r_value is None:
            return ZERO, 'none', label
        bracket = rates.bracket_for(insulation_type, r_value)
        if bracket is None:
            return ZERO, 'none', label
        return bracket.price_per_sqft, 'bracket', f"{_inches(thickness_inches)} {label} ({r_value_label(r_value)})"

    if insulation_type in ('batt', 'blown_in'):
        rate = rates.price_per_inch(insulation_type)
        label = 'Batt' if insulation_type == 'batt' else 'Blown-In'
        if rate is None or thickness_inches is None:
            return ZERO, 'none', label
        return to_decimal(thickness_inches) * rate, 'per_inch', f"{_inches(thickness_inches)} {label}"

    return ZERO, 'none', ''


def quote(area, insulation_type: str, rates: RateTable, *, thickness_inches=None,
          closed_cell_inches=None, open_cell_inches=None,
          override_unit_price=None) -> PriceQuote:
    """Price one surface: unit price per sq ft and line cost rounded to cents."""
    area = to_decimal(area)
    if area <= 0:
        raise ValidationError('Area must be greater than zero', field='square_feet')

    r_value = resolve_r_value(insulation_type, thickness_inches,
                              closed_cell_inches, open_cell_inches)

    if override_unit_price is not None:
        override = to_decimal(override_unit_price)
        if override < 0:
            raise ValidationError('Override unit price cannot be negative',
                                  field='override_unit_price')
        _, _, description = unit_price_for(rates, insulation_type, thickness_inches,
                                           closed_cell_inches, open_cell_inches)
        return PriceQuote(
            unit_price=override,
            line_cost=to_cents(override * area),
            r_value=r_value,
            source='override',
            description=description,
        )

    price, source, description = unit_price_for(rates, insulation_type, thickness_inches,
                                                closed_cell_inches, open_cell_inches)
    price = price.quantize(UNIT_PLACES, rounding=ROUND_HALF_UP)
    return PriceQuote(
        unit_price=price,
        line_cost=to_cents(price * area),
        r_value=r_value,
        source=source,
        description=description,
    )


def quote_measurement(measurement, rates: RateTable) -> PriceQuote:
    return quote(
        measurement.square_feet,
        measurement.insulation_type,
        rates,
        thickness_inches=measurement.thickness_inches,
        closed_cell_inches=measurement.closed_cell_inches,
        open_cell_inches=measurement.open_cell_inches,
        override_unit_price=measurement.override_unit_price,
    )

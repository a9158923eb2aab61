from decimal import Decimal

import pytest

from foamcrm.errors import ValidationError
from foamcrm.pricing.engine import quote, resolve_r_value
from foamcrm.pricing.rates import RateTable, default_rate_table

RATES = default_rate_table()


def test_hybrid_sums_per_inch_rates():
    q = quote(80, 'hybrid', RATES, closed_cell_inches=2, open_cell_inches=3)
    assert q.unit_price == Decimal('3.899')
    assert q.line_cost == Decimal('311.92')
    assert q.source == 'hybrid'
    # 2 x 7.0 + 3 x 3.8
    assert q.r_value == Decimal('25.4')
    assert q.r_value_label == 'R-25'
    assert q.description == '2" Closed Cell (R-14) + 3" Open Cell (R-11)'


def test_closed_cell_bracket_from_thickness():
    q = quote(100, 'closed_cell', RATES, thickness_inches=2)
    assert q.r_value == Decimal('14.0')
    assert q.unit_price == Decimal('2.80')
    assert q.line_cost == Decimal('280.00')
    assert q.source == 'bracket'


def test_open_cell_bracket_from_thickness():
    q = quote(10, 'open_cell', RATES, thickness_inches=5.5)
    assert q.r_value_label == 'R-21'
    assert q.unit_price == Decimal('1.90')
    assert q.line_cost == Decimal('19.00')


def test_bracket_gap_prices_at_zero():
    # 1.1" closed cell is R-7.7, between the R-7 and R-8 brackets
    q = quote(50, 'closed_cell', RATES, thickness_inches=1.1)
    assert q.unit_price == 0
    assert q.line_cost == 0
    assert q.source == 'none'


def test_fiberglass_per_inch():
    q = quote(100, 'batt', RATES, thickness_inches=3.5)
    assert q.unit_price == Decimal('0.8015')
    assert q.line_cost == Decimal('80.15')
    assert quote(100, 'blown_in', RATES, thickness_inches=10).line_cost == Decimal('118.00')


@pytest.mark.parametrize('kind,fields', [
    ('closed_cell', {'thickness_inches': 3}),
    ('open_cell', {'thickness_inches': 8}),
    ('hybrid', {'closed_cell_inches': 1, 'open_cell_inches': 4}),
    ('batt', {'thickness_inches': 6}),
    ('blown_in', {'thickness_inches': 12}),
])
def test_override_always_wins(kind, fields):
    q = quote(100, kind, RATES, override_unit_price=Decimal('5.00'), **fields)
    assert q.source == 'override'
    assert q.unit_price == Decimal('5.00')
    assert q.line_cost == Decimal('500.00')


def test_zero_override_is_still_an_override():
    q = quote(100, 'closed_cell', RATES, thickness_inches=3, override_unit_price=0)
    assert q.source == 'override'
    assert q.line_cost == 0


def test_rejects_bad_inputs():
    with pytest.raises(ValidationError):
        quote(0, 'closed_cell', RATES, thickness_inches=2)
    with pytest.raises(ValidationError) as exc:
        quote(10, 'closed_cell', RATES, thickness_inches=2, override_unit_price=-1)
    assert exc.value.field == 'override_unit_price'


def test_hybrid_r_value_is_sum_of_layers():
    assert resolve_r_value('hybrid', closed_cell_inches=1.5, open_cell_inches=0) == Decimal('10.50')
    assert resolve_r_value('hybrid', closed_cell_inches=0, open_cell_inches=0) is None


def test_rate_table_is_read_only():
    with pytest.raises(TypeError):
        RATES.per_inch['hybrid'] = Decimal('9')
    with pytest.raises(AttributeError):
        RATES.version = 'other'


def test_rate_table_from_catalog_rows():
    table = RateTable.from_rows(
        'test',
        [{'insulation_type': 'open_cell', 'min_r_value': 0, 'max_r_value': 50,
          'price_per_sqft': '2.00', 'thickness_label': None}],
        [{'insulation_type': 'closed_cell', 'price_per_inch': '1.000'},
         {'insulation_type': 'open_cell', 'price_per_inch': '0.500'}],
    )
    assert quote(10, 'open_cell', table, thickness_inches=3).line_cost == Decimal('20.00')
    assert quote(10, 'hybrid', table, closed_cell_inches=1, open_cell_inches=2).unit_price == Decimal('2')
    # No closed-cell brackets in this catalog
    assert quote(10, 'closed_cell', table, thickness_inches=2).unit_price == 0


def test_open_cell_gap_between_r15_and_r16():
    # 4" open cell is R-15.2
    q = quote(10, 'open_cell', RATES, thickness_inches=4)
    assert q.r_value_label == 'R-15'
    assert q.unit_price == 0
    assert q.source == 'none'

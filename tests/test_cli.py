from decimal import Decimal

from foamcrm import db
from foamcrm.estimates.utils import create_estimate
from foamcrm.models import Estimate, PerInchRate, RateBracket
from foamcrm.pricing.rates import load_rate_table


def test_seed_writes_catalog(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['rates', 'seed'])

    assert result.exit_code == 0, result.output
    assert 'Seeded rate table 2025-09' in result.output
    assert RateBracket.query.filter_by(version='2025-09').count() == 18
    assert PerInchRate.query.filter_by(version='2025-09').count() == 4

    # reseeding replaces rather than duplicates
    runner.invoke(args=['rates', 'seed'])
    assert RateBracket.query.count() == 18


def test_catalog_rows_drive_pricing(app):
    app.test_cli_runner().invoke(args=['rates', 'seed', '--version', '2026-01'])
    row = RateBracket.query.filter_by(version='2026-01', insulation_type='closed_cell',
                                      min_r_value=14).one()
    row.price_per_sqft = Decimal('3.10')
    db.session.commit()

    table = load_rate_table('2026-01')
    assert table.bracket_for('closed_cell', Decimal('14')).price_per_sqft == Decimal('3.10')


def test_show_filters_by_type(app):
    result = app.test_cli_runner().invoke(args=['rates', 'show', '--type', 'batt'])
    assert result.exit_code == 0
    assert 'batt' in result.output
    assert 'closed_cell' not in result.output


def test_recalc_command(app, job, manager, add_measurement):
    add_measurement(job, height=10, width=10, thickness_inches=2)
    est = create_estimate(job.id, manager)
    Estimate.query.filter_by(id=est.id).update({'subtotal': 0, 'total_amount': 0})
    db.session.commit()

    result = app.test_cli_runner().invoke(args=['estimates', 'recalc', str(est.id)])

    assert result.exit_code == 0, result.output
    assert 'subtotal=280.00' in result.output
    assert db.session.get(Estimate, est.id).subtotal == Decimal('280.00')

# foamcrm/cli.py
"""``flask rates`` and ``flask estimates`` maintenance commands."""

import click
from flask import current_app
from flask.cli import with_appcontext

from foamcrm import db
from foamcrm.estimates.totals import recalculate_estimate
from foamcrm.models import PerInchRate, RateBracket
from foamcrm.pricing.rates import default_rows, load_rate_table


@click.group("rates")
def rates_cli() -> None:
    """Insulation rate table commands."""


@rates_cli.command("seed")
@with_appcontext
@click.option("--version", "version", default=None, help="Catalog version to (re)write")
def seed_command(version) -> None:
    """Write the built-in rate table into the catalog tables."""
    version = version or current_app.config["RATE_TABLE_VERSION"]
    brackets, per_inch = default_rows()
    RateBracket.query.filter_by(version=version).delete()
    PerInchRate.query.filter_by(version=version).delete()
    db.session.add_all(RateBracket(version=version, **row) for row in brackets)
    db.session.add_all(PerInchRate(version=version, **row) for row in per_inch)
    db.session.commit()
    click.echo(f"Seeded rate table {version}: {len(brackets)} brackets, {len(per_inch)} per-inch rates")


@rates_cli.command("show")
@with_appcontext
@click.option("--type", "insulation_type", default=None, help="Only this insulation type")
def show_command(insulation_type) -> None:
    table = load_rate_table()
    click.echo(f"Rate table {table.version}")
    for kind, rows in table.brackets.items():
        if insulation_type and kind != insulation_type:
            continue
        for b in rows:
            click.echo(f"  {kind:<12} R{b.min_r_value}-R{b.max_r_value}  ${b.price_per_sqft}/sqft  {b.thickness or ''}")
    for kind, price in table.per_inch.items():
        if insulation_type and kind != insulation_type:
            continue
        click.echo(f"  {kind:<12} ${price}/sqft per inch")


@click.group("estimates")
def estimates_cli() -> None:
    """Estimate maintenance commands."""


@estimates_cli.command("recalc")
@with_appcontext
@click.argument("estimate_id", type=int)
def recalc_command(estimate_id: int) -> None:
    totals = recalculate_estimate(estimate_id)
    click.echo(f"Estimate {estimate_id}: subtotal={totals.subtotal} total={totals.total_amount}")

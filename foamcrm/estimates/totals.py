# foamcrm/estimates/totals.py
"""Estimate subtotal/total aggregation.

This is the only place estimate money is derived. Line items shown to users
come from the same ``price_lines`` call, so display and stored totals cannot
drift apart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from foamcrm import db
from foamcrm.errors import AggregationError, CrmError, NotFoundError, ValidationError
from foamcrm.models import Estimate, Job, Measurement
from foamcrm.pricing.engine import PriceQuote, quote_measurement, to_cents, to_decimal
from foamcrm.pricing.rates import RateTable, load_rate_table

logger = logging.getLogger(__name__)

MAX_MARKUP_PERCENT = Decimal('100')


@dataclass
class Totals:
    subtotal: Decimal
    markup_percentage: Decimal
    total_amount: Decimal
    lines: list[tuple[Measurement, PriceQuote]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'subtotal': float(self.subtotal),
            'markup_percentage': float(self.markup_percentage),
            'total_amount': float(self.total_amount),
        }


def validate_markup(value) -> Decimal:
    try:
        markup = to_decimal(value)
    except ArithmeticError:
        raise ValidationError('Markup percentage must be a number', field='markup_percentage')
    if not markup.is_finite():
        raise ValidationError('Markup percentage must be a finite number',
                              field='markup_percentage')
    if not Decimal('0') <= markup <= MAX_MARKUP_PERCENT:
        raise ValidationError('Markup percentage must be between 0 and 100',
                              field='markup_percentage')
    return markup


def priced_measurements(job_id) -> list[Measurement]:
    return (
        Measurement.query
        .filter(Measurement.job_id == job_id, Measurement.square_feet > 0)
        .order_by(Measurement.id)
        .all()
    )


def price_lines(measurements, rates: RateTable) -> list[tuple[Measurement, PriceQuote]]:
    return [(m, quote_measurement(m, rates)) for m in measurements]


def compute_totals(measurements, rates: RateTable, markup_percentage=0) -> Totals:
    lines = price_lines(measurements, rates)
    subtotal = to_cents(sum((q.line_cost for _, q in lines), Decimal('0')))
    markup = to_decimal(markup_percentage)
    total = to_cents(subtotal * (1 + markup / 100))
    return Totals(subtotal=subtotal, markup_percentage=markup, total_amount=total, lines=lines)


def recalculate_estimate(estimate_id, rates: RateTable | None = None, commit: bool = True) -> Totals:
    """Recompute and store one estimate's totals from its job's measurements.

    One read of the measurements and one write of the estimate. If anything
    fails the stored totals are not touched.
    """
    estimate = db.session.get(Estimate, estimate_id)
    if estimate is None:
        raise NotFoundError('Estimate', estimate_id)

    job = db.session.get(Job, estimate.job_id) if estimate.job_id is not None else None
    if job is None:
        logger.error('Could not locate job for estimate %s', estimate_id)
        raise AggregationError('Could not locate job for estimate', estimate_id=estimate_id)

    rates = rates or load_rate_table()
    try:
        totals = compute_totals(priced_measurements(job.id), rates, estimate.markup_percentage)
    except CrmError as exc:
        logger.error('Totals recompute failed for estimate %s: %s', estimate_id, exc)
        raise AggregationError(f'Could not price measurements: {exc.message}',
                               estimate_id=estimate_id)

    estimate.subtotal = totals.subtotal
    estimate.total_amount = totals.total_amount
    if commit:
        db.session.commit()
    logger.info('Estimate %s totals: subtotal=%s total=%s (%d lines, rates %s)',
                estimate_id, totals.subtotal, totals.total_amount, len(totals.lines), rates.version)
    return totals


def recalculate_job_estimates(job_id, rates: RateTable | None = None) -> dict[int, Totals]:
    """Refresh the stored totals of every estimate of the job; caller commits.

    Approved estimates are included so their totals always match the line
    items shown for them.
    """
    rates = rates or load_rate_table()
    estimates = Estimate.query.filter_by(job_id=job_id).order_by(Estimate.id).all()
    return {e.id: recalculate_estimate(e.id, rates=rates, commit=False) for e in estimates}

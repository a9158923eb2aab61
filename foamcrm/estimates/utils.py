# foamcrm/estimates/utils.py

"""Estimate helpers used by the estimates and jobs blueprints."""

import logging
from datetime import datetime

from flask import current_app

from foamcrm import db
from foamcrm.errors import NotFoundError, ValidationError
from foamcrm.estimates.totals import (
    compute_totals,
    priced_measurements,
    recalculate_estimate,
    recalculate_job_estimates,
    validate_markup,
)
from foamcrm.guard import actor_id, require_estimate_edit, require_manager
from foamcrm.measurements.service import get_job, set_override
from foamcrm.models import Estimate, Measurement
from foamcrm.pricing.rates import load_rate_table

logger = logging.getLogger(__name__)


def get_estimate(estimate_id) -> Estimate:
    estimate = db.session.get(Estimate, estimate_id)
    if estimate is None:
        raise NotFoundError('Estimate', estimate_id)
    return estimate


def next_estimate_number(job_id) -> str:
    count = Estimate.query.filter_by(job_id=job_id).count()
    return f'EST-{job_id:05d}-{count + 1:02d}'


def create_estimate(job_id, actor, markup_percentage=None, notes='') -> Estimate:
    """Create a draft estimate for the job with freshly aggregated totals."""
    job = get_job(job_id)
    if markup_percentage is None:
        markup_percentage = current_app.config.get('ESTIMATE_MARKUP_PERCENT', 0)
    markup = validate_markup(markup_percentage)

    estimate = Estimate(
        job_id            = job.id,
        estimate_number   = next_estimate_number(job.id),
        status            = 'draft',
        markup_percentage = markup,
        notes             = notes or '',
        created_by        = actor_id(actor),
    )
    db.session.add(estimate)
    db.session.flush()  # obtain estimate.id
    recalculate_estimate(estimate.id, commit=False)
    db.session.commit()
    logger.info('Estimate %s (%s) created for job %s', estimate.id,
                estimate.estimate_number, job.id)
    return estimate


def estimate_details(estimate_id) -> dict:
    """Estimate plus its priced line items, from the aggregation code path."""
    estimate = get_estimate(estimate_id)
    rates = load_rate_table()
    totals = compute_totals(priced_measurements(estimate.job_id), rates,
                            estimate.markup_percentage)
    items = []
    for measurement, q in totals.lines:
        items.append({
            'measurement_id': measurement.id,
            'room_name': measurement.room_name,
            'surface_type': measurement.surface_type,
            'insulation_type': measurement.insulation_type,
            'square_feet': measurement.square_feet,
            'is_locked': measurement.is_locked,
            **q.to_dict(),
        })
    return {
        'estimate': estimate.to_dict(),
        'line_items': items,
        'rate_table_version': rates.version,
    }


def update_estimate(estimate_id, data: dict, actor) -> Estimate:
    estimate = get_estimate(estimate_id)
    require_estimate_edit(actor, estimate)
    if 'notes' in data:
        estimate.notes = data.get('notes') or ''
    if 'markup_percentage' in data:
        estimate.markup_percentage = validate_markup(data['markup_percentage'])
    recalculate_estimate(estimate.id, commit=False)
    db.session.commit()
    return estimate


def regenerate_totals(estimate_id, actor):
    estimate = get_estimate(estimate_id)
    require_estimate_edit(actor, estimate)
    return recalculate_estimate(estimate.id)


def apply_price_overrides(estimate_id, price_overrides: dict, actor):
    """Set manager overrides for several measurements, then re-aggregate.

    ``price_overrides`` maps measurement id to a unit price (or None to clear).
    Nothing is written unless every override is valid.
    """
    require_manager(actor, 'set price overrides')
    estimate = get_estimate(estimate_id)
    if not isinstance(price_overrides, dict) or not price_overrides:
        raise ValidationError('price_overrides must be a non-empty object',
                              field='price_overrides')

    now = datetime.utcnow()
    for raw_id, price in price_overrides.items():
        try:
            measurement_id = int(raw_id)
        except (TypeError, ValueError):
            raise ValidationError(f'Invalid measurement id: {raw_id}', field='price_overrides')
        measurement = db.session.get(Measurement, measurement_id)
        if measurement is None or measurement.job_id != estimate.job_id:
            raise NotFoundError('Measurement on this estimate', measurement_id)
        set_override(measurement, price, actor, now=now)

    rates = load_rate_table()
    totals = recalculate_job_estimates(estimate.job_id, rates=rates)[estimate.id]
    db.session.commit()
    logger.info('Price overrides updated on estimate %s: %d measurements',
                estimate_id, len(price_overrides))
    return totals

# foamcrm/measurements/service.py
"""Create/update/delete measurements behind the lock guard.

Each mutation re-aggregates every estimate of the job and commits once, so a
measurement change and the totals it implies land together.
"""

from __future__ import annotations

import logging
from datetime import datetime

from foamcrm import db
from foamcrm.errors import ForbiddenError, NotFoundError
from foamcrm.estimates.totals import recalculate_job_estimates
from foamcrm.guard import (
    actor_id,
    can_edit_measurements,
    is_manager,
    require_manager,
    require_measurement_edit,
)
from foamcrm.measurements.validation import clean_measurement, validate_override
from foamcrm.models import Job, Measurement

logger = logging.getLogger(__name__)


def get_job(job_id) -> Job:
    job = db.session.get(Job, job_id)
    if job is None:
        raise NotFoundError('Job', job_id)
    return job


def get_measurement(measurement_id) -> Measurement:
    measurement = db.session.get(Measurement, measurement_id)
    if measurement is None:
        raise NotFoundError('Measurement', measurement_id)
    return measurement


def set_override(measurement: Measurement, price, actor, now: datetime | None = None) -> None:
    """Apply a manager override (None clears it); caller commits."""
    require_manager(actor, 'set price overrides')
    measurement.override_unit_price = validate_override(price)
    if measurement.override_unit_price is None:
        measurement.override_set_by = None
        measurement.override_set_at = None
    else:
        measurement.override_set_by = actor_id(actor)
        measurement.override_set_at = now or datetime.utcnow()
    logger.info('Override on measurement %s set to %s by user %s',
                measurement.id, measurement.override_unit_price, actor_id(actor))


def create_measurement(job_id, data: dict, actor) -> tuple[Measurement, list[str]]:
    job = get_job(job_id)
    require_measurement_edit(actor, job.id)
    values, warnings = clean_measurement(data, job.framing_size)
    measurement = Measurement(job_id=job.id, **values)
    if data.get('override_unit_price') is not None:
        set_override(measurement, data['override_unit_price'], actor)
    db.session.add(measurement)
    db.session.flush()
    recalculate_job_estimates(job.id)
    db.session.commit()
    logger.info('Measurement %s created on job %s', measurement.id, job.id)
    return measurement, warnings


def update_measurement(measurement_id, data: dict, actor) -> tuple[Measurement, list[str]]:
    measurement = get_measurement(measurement_id)
    require_measurement_edit(actor, measurement.job_id)
    job = get_job(measurement.job_id)

    warnings: list[str] = []
    survey_fields = set(data) - {'override_unit_price'}
    if survey_fields:
        values, warnings = clean_measurement(data, job.framing_size, existing=measurement)
        for key, value in values.items():
            setattr(measurement, key, value)
    if 'override_unit_price' in data:
        set_override(measurement, data['override_unit_price'], actor)

    recalculate_job_estimates(job.id)
    db.session.commit()
    logger.info('Measurement %s updated by user %s', measurement.id, actor_id(actor))
    return measurement, warnings


def delete_measurement(measurement_id, actor) -> None:
    measurement = get_measurement(measurement_id)
    require_measurement_edit(actor, measurement.job_id)
    if measurement.is_locked:
        raise ForbiddenError('Locked measurements cannot be deleted',
                             locked_by_estimate_id=measurement.locked_by_estimate_id)
    job_id = measurement.job_id
    db.session.delete(measurement)
    db.session.flush()
    recalculate_job_estimates(job_id)
    db.session.commit()
    logger.info('Measurement %s deleted from job %s by user %s',
                measurement_id, job_id, actor_id(actor))


def delete_job(job_id, actor) -> None:
    """Delete a job with its measurements and estimates (manager only)."""
    require_manager(actor, 'delete jobs')
    job = get_job(job_id)
    if job.locked_by_estimate_id is not None:
        job.locked_by_estimate_id = None
        db.session.flush()
    db.session.delete(job)
    db.session.commit()
    logger.info('Job %s deleted by user %s', job_id, actor_id(actor))


def lock_status(job_id, actor) -> dict:
    job = get_job(job_id)
    decision = can_edit_measurements(actor, job.id)
    return {**decision.to_dict(), 'is_manager': is_manager(actor)}

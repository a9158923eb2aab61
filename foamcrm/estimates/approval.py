# foamcrm/estimates/approval.py
"""Estimate approval state machine and the measurement locks it drives.

States: draft -> pending_approval -> approved | rejected. Only managers may
approve or reject. Approving locks every measurement of the job on behalf of
the estimate; rejecting releases only the locks that estimate holds.

Status changes are conditional UPDATEs (``WHERE status != 'approved'``) so two
concurrent approvals cannot both succeed; everything for one transition is
committed together.
"""

from __future__ import annotations

import logging
from datetime import datetime

from foamcrm import db
from foamcrm.errors import ConflictError, NotFoundError, ValidationError
from foamcrm.guard import actor_id, require_estimate_edit, require_manager
from foamcrm.models import Estimate, Job, Measurement

logger = logging.getLogger(__name__)

ACTIONS = ('approve', 'reject')


def _get_estimate(estimate_id) -> Estimate:
    estimate = db.session.get(Estimate, estimate_id)
    if estimate is None:
        raise NotFoundError('Estimate', estimate_id)
    return estimate


def lock_measurements(job_id, estimate_id, now: datetime) -> int:
    """Lock every measurement of the job for ``estimate_id``; caller commits."""
    previous = (
        Estimate.query
        .filter(Estimate.job_id == job_id,
                Estimate.id != estimate_id,
                Estimate.locks_measurements.is_(True))
        .update({'locks_measurements': False}, synchronize_session=False)
    )
    if previous:
        logger.info('Estimate %s takes over measurement lock of job %s', estimate_id, job_id)
    count = (
        Measurement.query
        .filter_by(job_id=job_id)
        .update({'is_locked': True,
                 'locked_by_estimate_id': estimate_id,
                 'locked_at': now}, synchronize_session=False)
    )
    Job.query.filter_by(id=job_id).update(
        {'locked_by_estimate_id': estimate_id}, synchronize_session=False)
    return count


def unlock_measurements(job_id, estimate_id) -> int:
    """Release locks held by ``estimate_id`` only; caller commits."""
    count = (
        Measurement.query
        .filter_by(job_id=job_id, locked_by_estimate_id=estimate_id)
        .update({'is_locked': False,
                 'locked_by_estimate_id': None,
                 'locked_at': None}, synchronize_session=False)
    )
    Job.query.filter_by(id=job_id, locked_by_estimate_id=estimate_id).update(
        {'locked_by_estimate_id': None}, synchronize_session=False)
    return count


def approve_estimate(estimate_id, actor, now: datetime | None = None) -> dict:
    require_manager(actor, 'approve estimates')
    estimate = _get_estimate(estimate_id)
    job = db.session.get(Job, estimate.job_id)
    if job is None:
        raise NotFoundError('Job for estimate', estimate_id)

    now = now or datetime.utcnow()
    updated = (
        Estimate.query
        .filter(Estimate.id == estimate_id, Estimate.status != 'approved')
        .update({'status': 'approved',
                 'approved_by': actor_id(actor),
                 'approved_at': now,
                 'locks_measurements': True,
                 'updated_at': now}, synchronize_session=False)
    )
    if not updated:
        db.session.rollback()
        raise ConflictError('Estimate is already approved', estimate_id=estimate_id)

    locked = lock_measurements(job.id, estimate_id, now)
    job.workflow_status = 'send_to_customer'
    db.session.commit()

    logger.info('Estimate %s approved by user %s; %d measurements locked on job %s',
                estimate_id, actor_id(actor), locked, job.id)
    db.session.refresh(estimate)
    return {'estimate': estimate.to_dict(),
            'measurements_locked': True,
            'measurements_updated': locked}


def reject_estimate(estimate_id, actor, now: datetime | None = None) -> dict:
    require_manager(actor, 'reject estimates')
    estimate = _get_estimate(estimate_id)

    now = now or datetime.utcnow()
    Estimate.query.filter_by(id=estimate_id).update(
        {'status': 'rejected',
         'approved_by': actor_id(actor),
         'approved_at': now,
         'locks_measurements': False,
         'updated_at': now}, synchronize_session=False)
    unlocked = unlock_measurements(estimate.job_id, estimate_id)
    db.session.commit()

    logger.info('Estimate %s rejected by user %s; %d measurements unlocked',
                estimate_id, actor_id(actor), unlocked)
    db.session.refresh(estimate)
    return {'estimate': estimate.to_dict(),
            'measurements_locked': False,
            'measurements_updated': unlocked}


def apply_action(estimate_id, actor, action: str) -> dict:
    if action not in ACTIONS:
        raise ValidationError('Invalid action. Must be "approve" or "reject"', field='action')
    if action == 'approve':
        return approve_estimate(estimate_id, actor)
    return reject_estimate(estimate_id, actor)


def submit_for_approval(estimate_id, actor) -> Estimate:
    """Move a draft or rejected estimate to pending_approval."""
    estimate = _get_estimate(estimate_id)
    require_estimate_edit(actor, estimate)
    if estimate.status not in ('draft', 'rejected'):
        raise ConflictError(f'Estimate is {estimate.status} and cannot be submitted',
                            estimate_id=estimate_id)
    updated = (
        Estimate.query
        .filter(Estimate.id == estimate_id, Estimate.status.in_(('draft', 'rejected')))
        .update({'status': 'pending_approval', 'updated_at': datetime.utcnow()},
                synchronize_session=False)
    )
    if not updated:
        db.session.rollback()
        raise ConflictError('Estimate status changed concurrently', estimate_id=estimate_id)
    db.session.commit()
    logger.info('Estimate %s submitted for approval by user %s', estimate_id, actor_id(actor))
    db.session.refresh(estimate)
    return estimate

# foamcrm/guard.py
"""Authorization and measurement lock checks.

Every mutating endpoint goes through here instead of checking roles itself.
Only the literal ``manager`` role is privileged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app, request

from foamcrm import db
from foamcrm.errors import ForbiddenError
from foamcrm.models import Measurement, User, MANAGER_ROLE

logger = logging.getLogger(__name__)

EDITABLE_ESTIMATE_STATUSES = ('draft', 'rejected')


@dataclass(frozen=True)
class LockDecision:
    can_edit: bool
    reason: str | None = None
    locked_by_estimate_id: int | None = None

    def to_dict(self) -> dict:
        return {
            'can_edit': self.can_edit,
            'reason': self.reason,
            'locked_by_estimate_id': self.locked_by_estimate_id,
        }


def get_user_role(user_id) -> str | None:
    user = db.session.get(User, user_id) if user_id is not None else None
    return user.role if user else None


def is_manager(actor) -> bool:
    """``actor`` may be a User or a bare user id."""
    role = actor.role if isinstance(actor, User) else get_user_role(actor)
    return role == MANAGER_ROLE


def current_actor() -> User:
    """Resolve the acting user from the header set by the auth layer."""
    header = current_app.config.get('ACTOR_HEADER', 'X-User-Id')
    raw = request.headers.get(header)
    try:
        user_id = int(raw) if raw else None
    except ValueError:
        user_id = None
    user = db.session.get(User, user_id) if user_id is not None else None
    if user is None:
        raise ForbiddenError('Authentication required')
    return user


def job_lock_holder(job_id) -> int | None:
    """Id of the estimate locking this job's measurements, if any are locked."""
    row = (
        Measurement.query
        .with_entities(Measurement.locked_by_estimate_id)
        .filter_by(job_id=job_id, is_locked=True)
        .first()
    )
    return row[0] if row else None


def can_edit_measurements(actor, job_id) -> LockDecision:
    if is_manager(actor):
        return LockDecision(True)
    holder = job_lock_holder(job_id)
    if holder is not None:
        return LockDecision(False, 'Measurements are locked by an approved estimate', holder)
    return LockDecision(True)


def require_measurement_edit(actor, job_id) -> None:
    decision = can_edit_measurements(actor, job_id)
    if not decision.can_edit:
        logger.warning('Measurement edit denied for user %s on job %s (locked by estimate %s)',
                       getattr(actor, 'id', actor), job_id, decision.locked_by_estimate_id)
        raise ForbiddenError(decision.reason, locked_by_estimate_id=decision.locked_by_estimate_id)


def can_edit_estimate(actor, estimate) -> LockDecision:
    if is_manager(actor) or estimate.status in EDITABLE_ESTIMATE_STATUSES:
        return LockDecision(True)
    if estimate.status == 'approved':
        return LockDecision(
            False,
            'Estimate is approved and locked. Contact a manager to request changes.',
            estimate.id if estimate.locks_measurements else None,
        )
    return LockDecision(False, 'Estimate is pending approval and cannot be modified.')


def require_estimate_edit(actor, estimate) -> None:
    decision = can_edit_estimate(actor, estimate)
    if not decision.can_edit:
        logger.warning('Estimate %s edit denied for user %s (status %s)',
                       estimate.id, getattr(actor, 'id', actor), estimate.status)
        raise ForbiddenError(decision.reason, locked_by_estimate_id=decision.locked_by_estimate_id)


def require_manager(actor, action: str) -> None:
    if not is_manager(actor):
        logger.warning("User %s (role: %s) attempted manager-only action '%s'",
                       getattr(actor, 'id', actor), getattr(actor, 'role', 'N/A'), action)
        raise ForbiddenError(f'Only managers can {action}')


def actor_id(actor):
    return actor.id if isinstance(actor, User) else actor

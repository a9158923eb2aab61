# foamcrm/jobs/routes.py

from flask import Blueprint, request, jsonify
from foamcrm import db
from foamcrm.errors import ValidationError
from foamcrm.estimates.totals import price_lines
from foamcrm.estimates.utils import create_estimate
from foamcrm.guard import current_actor
from foamcrm.measurements.service import (
    create_measurement,
    delete_job,
    get_job,
    lock_status,
)
from foamcrm.models import Job, Measurement, FRAMING_SIZES
from foamcrm.pricing.rates import load_rate_table

bp = Blueprint('jobs', __name__, url_prefix='/jobs')


def _job_dict(job):
    return {
        'id'                    : job.id,
        'job_name'              : job.job_name,
        'service_type'          : job.service_type,
        'framing_size'          : job.framing_size,
        'workflow_status'       : job.workflow_status,
        'locked_by_estimate_id' : job.locked_by_estimate_id,
    }


@bp.route('', methods=['POST'])
def create_job():
    current_actor()
    data = request.get_json() or {}
    name = (data.get('job_name') or '').strip()
    if not name:
        raise ValidationError('job_name is required', field='job_name')
    framing = data.get('framing_size', '2x6')
    if framing not in FRAMING_SIZES:
        raise ValidationError(f"framing_size must be one of: {', '.join(FRAMING_SIZES)}",
                              field='framing_size')
    job = Job(job_name=name, framing_size=framing,
              service_type=data.get('service_type', 'insulation'))
    db.session.add(job)
    db.session.commit()
    return jsonify(success=True, job=_job_dict(job)), 201


@bp.route('/<int:job_id>')
def view_job(job_id):
    job = get_job(job_id)
    return jsonify(success=True, job=_job_dict(job))


@bp.route('/<int:job_id>', methods=['DELETE'])
def remove_job(job_id):
    delete_job(job_id, current_actor())
    return jsonify(success=True)


@bp.route('/<int:job_id>/measurements')
def list_measurements(job_id):
    """Measurements with their computed unit price and line cost."""
    job = get_job(job_id)
    rows = (Measurement.query.filter_by(job_id=job.id)
            .order_by(Measurement.id).all())
    priced = dict(price_lines([m for m in rows if m.square_feet > 0], load_rate_table()))
    out = []
    for m in rows:
        item = m.to_dict()
        q = priced.get(m)
        item['unit_price'] = float(q.unit_price) if q else 0.0
        item['line_cost'] = float(q.line_cost) if q else 0.0
        out.append(item)
    return jsonify(success=True, measurements=out)


@bp.route('/<int:job_id>/measurements', methods=['POST'])
def add_measurement(job_id):
    data = request.get_json() or {}
    measurement, warnings = create_measurement(job_id, data, current_actor())
    return jsonify(success=True, measurement=measurement.to_dict(), warnings=warnings), 201


@bp.route('/<int:job_id>/lock-status')
def job_lock_status(job_id):
    return jsonify(success=True, **lock_status(job_id, current_actor()))


@bp.route('/<int:job_id>/estimates', methods=['POST'])
def add_estimate(job_id):
    data = request.get_json(silent=True) or {}
    estimate = create_estimate(
        job_id,
        current_actor(),
        markup_percentage=data.get('markup_percentage'),
        notes=data.get('notes', ''),
    )
    return jsonify(success=True, estimate=estimate.to_dict()), 201

# foamcrm/estimates/routes.py

from flask import Blueprint, request, jsonify
from foamcrm.errors import ValidationError
from foamcrm.estimates.approval import (
    apply_action,
    approve_estimate,
    reject_estimate,
    submit_for_approval,
)
from foamcrm.estimates.utils import (
    apply_price_overrides,
    estimate_details,
    get_estimate,
    regenerate_totals,
    update_estimate,
)
from foamcrm.guard import current_actor

bp = Blueprint('estimates', __name__)


@bp.route('/<int:estimate_id>')
def view_estimate(estimate_id):
    return jsonify(success=True, **estimate_details(estimate_id))


@bp.route('/<int:estimate_id>', methods=['PUT'])
def edit_estimate(estimate_id):
    data = request.get_json() or {}
    est = update_estimate(estimate_id, data, current_actor())
    return jsonify(success=True, estimate=est.to_dict())


@bp.route('/<int:estimate_id>/recalculate', methods=['POST'])
def recalculate(estimate_id):
    totals = regenerate_totals(estimate_id, current_actor())
    return jsonify(success=True, **totals.to_dict())


@bp.route('/<int:estimate_id>/items', methods=['PATCH'])
def update_items(estimate_id):
    """
    Manager price overrides.
    Body: { price_overrides: { <measurement_id>: <unit price or null>, … } }
    """
    data = request.get_json() or {}
    totals = apply_price_overrides(estimate_id, data.get('price_overrides'), current_actor())
    return jsonify(success=True, updated_measurements=len(data['price_overrides']),
                   **totals.to_dict())


@bp.route('/<int:estimate_id>/submit', methods=['POST'])
def submit(estimate_id):
    est = submit_for_approval(estimate_id, current_actor())
    return jsonify(success=True, estimate=est.to_dict())


@bp.route('/<int:estimate_id>/approve', methods=['POST'])
def approve(estimate_id):
    result = approve_estimate(estimate_id, current_actor())
    return jsonify(success=True, message='Estimate approved successfully', data=result)


@bp.route('/<int:estimate_id>/reject', methods=['POST'])
def reject(estimate_id):
    result = reject_estimate(estimate_id, current_actor())
    return jsonify(success=True, message='Estimate rejected successfully', data=result)


@bp.route('/<int:estimate_id>/approval', methods=['PUT', 'PATCH'])
def approval(estimate_id):
    """Body: {action: 'approve'|'reject'}; PATCH also accepts {status: 'approved'|'rejected'}."""
    actor = current_actor()
    get_estimate(estimate_id)
    data = request.get_json() or {}
    action = data.get('action')
    if action is None and request.method == 'PATCH':
        action = {'approved': 'approve', 'rejected': 'reject'}.get(data.get('status'))
    if action is None:
        raise ValidationError('Invalid action. Must be "approve" or "reject"', field='action')
    result = apply_action(estimate_id, actor, action)
    return jsonify(success=True, message=f'Estimate {action}d successfully', data=result)

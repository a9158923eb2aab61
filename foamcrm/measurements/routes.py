# foamcrm/measurements/routes.py

from flask import Blueprint, request, jsonify
from foamcrm.guard import current_actor
from foamcrm.measurements.service import (
    delete_measurement,
    get_measurement,
    update_measurement,
)
from foamcrm.pricing.engine import quote_measurement
from foamcrm.pricing.rates import load_rate_table

bp = Blueprint('measurements', __name__, url_prefix='/measurements')


@bp.route('/<int:measurement_id>')
def view_measurement(measurement_id):
    m = get_measurement(measurement_id)
    return jsonify(success=True, measurement=m.to_dict(),
                   price=quote_measurement(m, load_rate_table()).to_dict())


@bp.route('/<int:measurement_id>', methods=['PUT', 'PATCH'])
def edit_measurement(measurement_id):
    data = request.get_json() or {}
    m, warnings = update_measurement(measurement_id, data, current_actor())
    return jsonify(success=True, measurement=m.to_dict(), warnings=warnings)


@bp.route('/<int:measurement_id>', methods=['DELETE'])
def remove_measurement(measurement_id):
    delete_measurement(measurement_id, current_actor())
    return jsonify(success=True)

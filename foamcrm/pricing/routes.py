# foamcrm/pricing/routes.py

from flask import Blueprint, request, jsonify
from foamcrm.errors import ValidationError
from foamcrm.models import INSULATION_TYPES
from foamcrm.pricing.engine import quote
from foamcrm.pricing.rates import load_rate_table

bp = Blueprint('pricing', __name__)


@bp.route('/rates')
def rates():
    return jsonify(success=True, rates=load_rate_table().to_dict())


@bp.route('/insulation/unit', methods=['POST'])
def insulation_unit_price():
    """
    Quote a unit price without saving anything.
    Body: { kind, inches } or { kind: 'hybrid', closed_cell_inches, open_cell_inches },
    optional square_feet (default 1) and override_unit_price.
    """
    data = request.get_json() or {}
    kind = data.get('kind')
    if kind not in INSULATION_TYPES:
        raise ValidationError(f"kind must be one of: {', '.join(INSULATION_TYPES)}", field='kind')
    try:
        q = quote(
            data.get('square_feet', 1),
            kind,
            load_rate_table(),
            thickness_inches=data.get('inches'),
            closed_cell_inches=data.get('closed_cell_inches'),
            open_cell_inches=data.get('open_cell_inches'),
            override_unit_price=data.get('override_unit_price'),
        )
    except ArithmeticError:
        raise ValidationError('Numeric fields must be numbers')
    return jsonify(success=True, price=q.to_dict())

# foamcrm/measurements/validation.py
"""Field survey validation for insulation measurements."""

from __future__ import annotations

import math

from foamcrm.errors import ValidationError
from foamcrm.models import INSULATION_TYPES, SURFACE_TYPES, FRAMING_SIZES
from foamcrm.pricing.engine import resolve_r_value, r_value_label, to_cents, to_decimal

# Actual cavity depth in inches, not nominal lumber size
FRAMING_CAVITY_DEPTHS = {
    '2x4':  3.5,
    '2x6':  5.5,
    '2x8':  7.25,
    '2x10': 9.25,
    '2x12': 11.25,
}

MIN_HEIGHT, MAX_HEIGHT = 0.5, 30.0
MIN_WIDTH, MAX_WIDTH = 0.5, 100.0
MIN_AREA, MAX_AREA = 1.0, 10000.0

MAX_CLOSED_CELL_INCHES = 7.0
MAX_OPEN_CELL_INCHES = 13.0
MAX_FIBERGLASS_INCHES = 24.0

FIELDS = (
    'room_name', 'surface_type', 'height', 'width', 'insulation_type',
    'thickness_inches', 'closed_cell_inches', 'open_cell_inches',
)


def _number(data: dict, key: str, required: bool = True) -> float | None:
    raw = data.get(key)
    if raw is None or raw == '':
        if required:
            raise ValidationError(f'{key} is required', field=key)
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be a number', field=key)
    if not math.isfinite(value):
        raise ValidationError(f'{key} must be a finite number', field=key)
    return value


def cavity_depth(framing_size: str) -> float:
    depth = FRAMING_CAVITY_DEPTHS.get(framing_size)
    if depth is None:
        raise ValidationError(
            f"Invalid framing size: {framing_size}. Must be one of: {', '.join(FRAMING_SIZES)}",
            field='framing_size',
        )
    return depth


def validate_dimensions(height: float, width: float) -> float:
    """Return the area in sq ft after checking each side and the product."""
    if not MIN_HEIGHT <= height <= MAX_HEIGHT:
        raise ValidationError(f'Height must be between {MIN_HEIGHT} and {MAX_HEIGHT} feet',
                              field='height')
    if not MIN_WIDTH <= width <= MAX_WIDTH:
        raise ValidationError(f'Width must be between {MIN_WIDTH} and {MAX_WIDTH} feet',
                              field='width')
    area = height * width
    if not MIN_AREA <= area <= MAX_AREA:
        raise ValidationError(
            f'Total area {area:.1f} sq ft must be between 1 and 10,000 sq ft',
            field='square_feet',
        )
    return area


def _check_thickness(inches: float, maximum: float, label: str, field: str) -> None:
    if inches <= 0:
        raise ValidationError(f'{label} thickness must be greater than 0', field=field)
    if inches > maximum:
        raise ValidationError(f'{label} thickness {inches:g}" exceeds maximum of {maximum:g}"',
                              field=field)


def validate_hybrid(framing_size: str, closed_cell_inches: float, open_cell_inches: float) -> list[str]:
    """Check both layers against their ceilings and the framing cavity.

    Returns non-blocking warnings (an under-filled cavity).
    """
    for inches, maximum, label, field in (
        (closed_cell_inches, MAX_CLOSED_CELL_INCHES, 'Closed cell', 'closed_cell_inches'),
        (open_cell_inches, MAX_OPEN_CELL_INCHES, 'Open cell', 'open_cell_inches'),
    ):
        if inches < 0:
            raise ValidationError(f'{label} thickness cannot be negative', field=field)
        if inches > maximum:
            raise ValidationError(f'{label} thickness {inches:g}" exceeds maximum of {maximum:g}"',
                                  field=field)
    total = closed_cell_inches + open_cell_inches
    if total <= 0:
        raise ValidationError('Hybrid system needs closed cell or open cell inches',
                              field='closed_cell_inches')

    depth = cavity_depth(framing_size)
    if total > depth:
        raise ValidationError(
            f'Total insulation {total:g}" exceeds {framing_size} cavity depth of {depth:g}"',
            field='open_cell_inches',
        )

    warnings = []
    if total < depth * 0.5:
        warnings.append(
            f'Only using {total:g}" of {depth:g}" available cavity depth '
            f'({round(total / depth * 100)}%)'
        )
    return warnings


def validate_override(value):
    """Normalise a manager override to cents; None clears it."""
    if value is None or value == '':
        return None
    try:
        price = to_decimal(value)
        if not price.is_finite():
            raise ValidationError('Override unit price must be a finite number',
                                  field='override_unit_price')
        price = to_cents(price)
    except ArithmeticError:
        raise ValidationError('Override unit price must be a number', field='override_unit_price')
    if price < 0:
        raise ValidationError('Override unit price cannot be negative', field='override_unit_price')
    return price


def clean_measurement(data: dict, framing_size: str, existing=None) -> tuple[dict, list[str]]:
    """Merge ``data`` over ``existing`` and validate the result.

    Returns the column values to write (including derived ``square_feet`` and
    ``r_value``) and any warnings.
    """
    merged = {}
    for key in FIELDS:
        if key in data:
            merged[key] = data[key]
        elif existing is not None:
            merged[key] = getattr(existing, key)

    room_name = (merged.get('room_name') or '').strip()
    if not room_name:
        raise ValidationError('room_name is required', field='room_name')

    surface_type = merged.get('surface_type') or 'wall'
    if surface_type not in SURFACE_TYPES:
        raise ValidationError(f"surface_type must be one of: {', '.join(SURFACE_TYPES)}",
                              field='surface_type')

    insulation_type = merged.get('insulation_type')
    if insulation_type not in INSULATION_TYPES:
        raise ValidationError(f"insulation_type must be one of: {', '.join(INSULATION_TYPES)}",
                              field='insulation_type')

    height = _number(merged, 'height')
    width = _number(merged, 'width')
    area = validate_dimensions(height, width)

    warnings: list[str] = []
    thickness = cc = oc = None
    if insulation_type == 'hybrid':
        cc = _number(merged, 'closed_cell_inches', required=False) or 0.0
        oc = _number(merged, 'open_cell_inches', required=False) or 0.0
        warnings = validate_hybrid(framing_size, cc, oc)
    else:
        thickness = _number(merged, 'thickness_inches')
        if insulation_type == 'closed_cell':
            _check_thickness(thickness, MAX_CLOSED_CELL_INCHES, 'Closed cell', 'thickness_inches')
        elif insulation_type == 'open_cell':
            _check_thickness(thickness, MAX_OPEN_CELL_INCHES, 'Open cell', 'thickness_inches')
        else:
            _check_thickness(thickness, MAX_FIBERGLASS_INCHES, 'Fiberglass', 'thickness_inches')

    r_value = resolve_r_value(insulation_type, thickness, cc, oc)
    values = {
        'room_name': room_name,
        'surface_type': surface_type,
        'height': height,
        'width': width,
        'square_feet': area,
        'insulation_type': insulation_type,
        'thickness_inches': thickness,
        'closed_cell_inches': cc,
        'open_cell_inches': oc,
        'r_value': r_value_label(r_value),
    }
    return values, warnings

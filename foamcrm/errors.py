# foamcrm/errors.py
"""Error taxonomy shared by the pricing, aggregation and approval code.

Every error is raised before (or instead of) a commit, so callers never see
partial effects. The app factory turns them into JSON responses.
"""


class CrmError(Exception):
    status_code = 400

    def __init__(self, message: str, **details) -> None:
        super().__init__(message)
        self.message = message
        self.details = {k: v for k, v in details.items() if v is not None}

    def to_dict(self) -> dict:
        return {'success': False, 'error': self.message, **self.details}


class ValidationError(CrmError):
    """Bad geometry, bad enum value or negative override."""
    status_code = 400

    def __init__(self, message: str, field: str | None = None, **details) -> None:
        super().__init__(message, field=field, **details)
        self.field = field


class NotFoundError(CrmError):
    status_code = 404

    def __init__(self, resource: str, ident=None) -> None:
        if ident is not None:
            message = f"{resource} '{ident}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)


class ForbiddenError(CrmError):
    status_code = 403

    def __init__(self, message: str, locked_by_estimate_id: int | None = None) -> None:
        super().__init__(message, locked_by_estimate_id=locked_by_estimate_id)
        self.locked_by_estimate_id = locked_by_estimate_id


class ConflictError(CrmError):
    status_code = 409


class AggregationError(CrmError):
    """Totals could not be recomputed; stored totals were left as they were."""
    status_code = 422

"""
Typed failures raised by the job, requisition, inventory and device services.

Each one is a LocalBaseException so API views can render it with
`format_response` and its `context` carries the ids the caller needs to fix
the request.
"""
from .base_exceptions import LocalBaseException


class ValidationError(LocalBaseException):
    """Malformed or missing input. The caller can always fix it and retry."""

    def __init__(self, detail: str, **context):
        super().__init__(
            exception_type="validation_error",
            status_code=400,
            kwargs={"detail": detail, **context},
        )
        self.detail = detail


class InvalidTransition(LocalBaseException):
    def __init__(self, current_state, requested_state, unmet_guard, entity="Job", entity_id=None):
        super().__init__(
            exception_type="invalid_transition",
            status_code=409,
            kwargs={
                "entity": entity,
                "entity_id": entity_id,
                "current_state": current_state,
                "requested_state": requested_state,
                "unmet_guard": unmet_guard,
            },
        )
        self.current_state = current_state
        self.requested_state = requested_state
        self.unmet_guard = unmet_guard


class InsufficientStock(LocalBaseException):
    def __init__(self, product_id, requested, available, batch_id=None, location_id=None):
        super().__init__(
            exception_type="insufficient_stock",
            status_code=400,
            kwargs={
                "product_id": product_id,
                "batch_id": batch_id,
                "location_id": location_id,
                "requested": requested,
                "available": available,
            },
        )
        self.requested = requested
        self.available = available


class DeviceAllocationMismatch(LocalBaseException):
    def __init__(self, item_id, reason, imei=None, expected=None, selected=None):
        super().__init__(
            exception_type="device_allocation_mismatch",
            status_code=400,
            kwargs={
                "item_id": item_id,
                "reason": reason,
                "imei": imei,
                "expected": expected,
                "selected": selected,
            },
        )


class InsufficientDeviceSelection(LocalBaseException):
    def __init__(self, product_id, expected, selected, imeis=None):
        super().__init__(
            exception_type="insufficient_device_selection",
            status_code=400,
            kwargs={
                "product_id": product_id,
                "expected": expected,
                "selected": selected,
                "imeis": list(imeis or []),
            },
        )


class ConcurrentModification(LocalBaseException):
    def __init__(self, record_id, attempts):
        super().__init__(
            exception_type="concurrent_modification",
            status_code=409,
            kwargs={"record_id": record_id, "attempts": attempts},
        )


class InvalidTransfer(LocalBaseException):
    def __init__(self, from_location, to_location, reason):
        super().__init__(
            exception_type="invalid_transfer",
            status_code=400,
            kwargs={
                "from_location": from_location,
                "to_location": to_location,
                "reason": reason,
            },
        )


class LocationRequired(LocalBaseException):
    def __init__(self, job_id):
        super().__init__(
            exception_type="location_required",
            status_code=400,
            kwargs={"job_id": job_id},
        )

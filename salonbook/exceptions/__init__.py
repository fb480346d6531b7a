"""Custom exceptions for the salon booking application."""


class SaasError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        rv['error'] = self.error_kind
        return rv

    @property
    def error_kind(self):
        return type(self).__name__.replace('Error', '')


class BusinessLogicError(SaasError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class ValidationError(BusinessLogicError):
    """Raised when a request payload fails validation at the boundary."""
    def __init__(self, message, field=None):
        super().__init__(message, 400, {'field': field} if field else None)


class NotFoundError(SaasError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class UnknownServiceError(NotFoundError):
    """Referenced service does not exist or belongs to another salon."""
    def __init__(self, service_id):
        super().__init__(f"Service {service_id} not found in this salon", {'service_id': service_id})


class UnknownStaffError(NotFoundError):
    """Referenced staff member does not exist or belongs to another salon."""
    def __init__(self, staff_id):
        super().__init__(f"Staff member {staff_id} not found in this salon", {'staff_id': staff_id})


class TenantNotApprovedError(BusinessLogicError):
    """Salon has not been approved yet and may not take bookings or add staff."""
    def __init__(self, tenant_id, approval_status):
        super().__init__(
            f"Salon {tenant_id} is not approved (status: {approval_status})",
            status_code=403,
            payload={'tenant_id': tenant_id, 'approval_status': approval_status}
        )


class SlotConflictError(BusinessLogicError):
    """Requested slot overlaps an existing booking."""
    def __init__(self, conflicting_ids=None):
        super().__init__(
            "The selected time overlaps an existing booking. Please choose another slot.",
            status_code=409,
            payload={'conflicting_booking_ids': list(conflicting_ids or [])}
        )


class QuotaExceededError(BusinessLogicError):
    """Plan ceiling reached for a resource kind."""
    def __init__(self, kind, limit, current):
        super().__init__(
            f"Your plan allows {limit} {kind} and you already have {current}. Upgrade your plan to add more.",
            status_code=402,
            payload={'resource_kind': kind, 'limit': limit, 'current': current}
        )


class InvalidTransitionError(BusinessLogicError):
    """Booking status change not allowed by the transition table."""
    def __init__(self, current_status, target_status):
        super().__init__(
            f"Cannot change booking status from {current_status} to {target_status}",
            status_code=409,
            payload={'current_status': current_status, 'target_status': target_status}
        )


class UnauthorizedError(SaasError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access"):
        super().__init__(message, 403)


class StaffNotQualifiedError(BusinessLogicError):
    """Staff member is not assigned the requested service."""
    def __init__(self, staff_id, service_id):
        super().__init__(
            f"Staff member {staff_id} does not perform service {service_id}",
            status_code=422,
            payload={'staff_id': staff_id, 'service_id': service_id}
        )

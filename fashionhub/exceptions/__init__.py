"""Custom exceptions for the FashionHub back office."""


class FashionHubError(Exception):
    """Base exception for all application errors."""
    code = 'internal_error'

    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['error'] = self.code
        rv['status'] = 'error'
        return rv


class BusinessLogicError(FashionHubError):
    """Exception raised for business logic violations."""
    code = 'business_rule'

    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(FashionHubError):
    """Exception raised when a resource is not found."""
    code = 'not_found'

    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InvalidArgumentError(BusinessLogicError):
    """Raised for negative or malformed quantities, prices, discounts and payloads."""
    code = 'invalid_argument'

    def __init__(self, message, field=None):
        payload = {'field': field} if field else None
        super().__init__(message, status_code=400, payload=payload)
        self.field = field


class InvalidStateError(BusinessLogicError):
    """Raised when a mutation targets an invoice that is no longer pending."""
    code = 'invalid_state'

    def __init__(self, message="Can only modify pending invoices", status=None):
        payload = {'invoice_status': status} if status else None
        super().__init__(message, status_code=409, payload=payload)


class InvalidTransitionError(BusinessLogicError):
    """Raised for a status change the invoice lifecycle does not allow."""
    code = 'invalid_transition'

    def __init__(self, current_status, requested_status, message=None):
        message = message or f"Cannot move invoice from {current_status} to {requested_status}"
        super().__init__(message, status_code=409, payload={
            'current_status': current_status,
            'requested_status': requested_status,
        })
        self.current_status = current_status
        self.requested_status = requested_status


class ConflictError(BusinessLogicError):
    """Raised for double deletes and duplicate business keys."""
    code = 'conflict'

    def __init__(self, message, payload=None):
        super().__init__(message, status_code=409, payload=payload)


class PermissionDeniedError(FashionHubError):
    """Raised when a user lacks permission for an action."""
    code = 'permission_denied'

    def __init__(self, message="Insufficient permissions", capability=None):
        payload = {'capability': capability} if capability else None
        super().__init__(message, 403, payload)
        self.capability = capability


class UnauthorizedError(FashionHubError):
    """Raised when no authenticated user is attached to the request."""
    code = 'unauthorized'

    def __init__(self, message="Authentication required"):
        super().__init__(message, 401)

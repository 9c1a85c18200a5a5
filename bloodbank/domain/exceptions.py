"""Domain-specific exception classes."""


class BloodBankError(Exception):
    """Base exception for blood bank errors."""

    pass


class NotFoundError(BloodBankError):
    """Raised when an entity cannot be found."""

    entity = "Entity"

    def __init__(self, entity_id: int):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} with ID {entity_id} not found")


class DonorNotFoundError(NotFoundError):
    """Raised when a donor cannot be found (or has been deactivated)."""

    entity = "Donor"


class BatchNotFoundError(NotFoundError):
    """Raised when an inventory batch cannot be found."""

    entity = "Batch"


class RequestNotFoundError(NotFoundError):
    """Raised when a blood request cannot be found."""

    entity = "Request"


class InvalidRequestStateError(BloodBankError):
    """Raised when an action is attempted on a request in the wrong state."""

    def __init__(self, request_id: int, current: object, attempted: object):
        self.request_id = request_id
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"Request {request_id} status is {current}. "
            f"Only pending requests can be moved to {attempted}."
        )


class InsufficientStockError(BloodBankError):
    """Raised when the requested quantity exceeds available stock."""

    def __init__(self, blood_type: object, available: int, required: int):
        self.blood_type = blood_type
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient {blood_type} blood. "
            f"Available: {available}, Required: {required}."
        )


class DuplicateDonorEmailError(BloodBankError):
    """Raised when a donor email is already registered."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("A donor with this email already exists.")


class PersistenceConflictError(BloodBankError):
    """Raised when a concurrent write changed a row between read and update."""

    def __init__(self, message: str):
        super().__init__(message)


class AllocationLockTimeoutError(PersistenceConflictError):
    """Raised when the per-blood-type allocation lock cannot be acquired in time."""

    def __init__(self, blood_type: object, timeout: float):
        self.blood_type = blood_type
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout}s waiting for the {blood_type} allocation lock"
        )

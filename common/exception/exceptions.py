class RescueConsoleException(Exception):
    """
    Base class for errors surfaced to console callers.
    Carries the HTTP status and a stable error code for the error handlers.
    """
    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message}


class ValidationError(RescueConsoleException):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class UnauthorizedAccessException(RescueConsoleException):
    status_code = 401
    error_code = "UNAUTHORIZED"


class NotFoundError(RescueConsoleException):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, entity_model: str, technical_id):
        self.entity_model = entity_model
        self.technical_id = technical_id
        super().__init__(f"{entity_model} {technical_id} not found")


class InvalidTransitionError(RescueConsoleException):
    status_code = 409
    error_code = "INVALID_TRANSITION"

    def __init__(self, current_status: str, decision: str):
        self.current_status = current_status
        self.decision = decision
        super().__init__(f"Cannot {decision.lower()} a request that is {current_status}")


class ConflictError(RescueConsoleException):
    """Conditional write rejected because the stored document changed."""
    status_code = 409
    error_code = "CONFLICT"


class StorageError(RescueConsoleException):
    status_code = 503
    error_code = "STORAGE_ERROR"


class PartialDecisionError(StorageError):
    """
    The request decision was written but the pet status update failed.
    The pet still shows its previous status until reconciled.
    """
    status_code = 502
    error_code = "PARTIAL_DECISION"

    def __init__(self, request: dict, pet_id: str, pet_status: str, cause: Exception = None):
        self.request = request
        self.pet_id = pet_id
        self.pet_status = pet_status
        self.cause = cause
        super().__init__(
            f"Request {request.get('technical_id')} is {request.get('status')} "
            f"but pet {pet_id} could not be set to {pet_status}: {cause}"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "partial": True,
            "request": self.request,
            "pet_id": self.pet_id,
            "pet_status": self.pet_status,
        })
        return data

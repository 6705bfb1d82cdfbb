class MarketplaceError(Exception):
    """
    Base for every failure the engines surface as a result value.
    `code` is what callers see in OperationResult.error.
    """

    code = "MarketplaceError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(MarketplaceError):
    code = "ValidationFailed"


class InvalidPackage(ValidationFailed):
    code = "InvalidPackage"


class InvalidTransition(MarketplaceError):
    code = "InvalidTransition"


class NotAuthenticated(MarketplaceError):
    code = "NotAuthenticated"


class Unauthorized(MarketplaceError):
    code = "Unauthorized"


class NotFound(MarketplaceError):
    code = "NotFound"


class ServiceUnavailable(MarketplaceError):
    code = "ServiceUnavailable"


class PersistenceFailure(MarketplaceError):
    code = "PersistenceFailure"


def from_validation_error(exc) -> ValidationFailed:
    """Collapses a pydantic ValidationError into a single readable ValidationFailed."""
    errors = exc.errors()
    if not errors:
        return ValidationFailed("Invalid input")
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value")
    return ValidationFailed(f"{field}: {message}" if field else message)

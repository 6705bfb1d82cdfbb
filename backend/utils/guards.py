from fastapi import HTTPException

from models.results import OperationResult

# -------------------------------
# Result -> HTTP status
# -------------------------------

ERROR_STATUS = {
    "ValidationFailed": 400,
    "InvalidPackage": 400,
    "NotAuthenticated": 401,
    "Unauthorized": 403,
    "NotFound": 404,
    "InvalidTransition": 409,
    "ServiceUnavailable": 409,
    "PersistenceFailure": 503,
}


def raise_for_result(result: OperationResult) -> dict:
    if not result.success:
        raise HTTPException(
            status_code=ERROR_STATUS.get(result.error, 400),
            detail={"message": result.message, "error": result.error},
        )
    return result.model_dump()

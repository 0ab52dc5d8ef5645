from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


class SignFlowError(HTTPException):
    """Base for every error the services surface to a caller.

    Subclasses carry a stable ``kind`` that clients can branch on, and the
    HTTP status the serving layer answers with.
    """

    kind = "error"
    status = 500
    default_message = "Internal error"

    def __init__(self, message: str = None):
        super().__init__(status_code=self.status, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class ValidationFailed(SignFlowError):
    kind = "validation_failed"
    status = 400
    default_message = "Invalid input"


class NotFound(SignFlowError):
    kind = "not_found"
    status = 404
    default_message = "Document not found"


class Forbidden(SignFlowError):
    kind = "forbidden"
    status = 403
    default_message = "Access denied"


class Unauthorized(SignFlowError):
    kind = "unauthorized"
    status = 401
    default_message = "Could not validate credentials"

    def __init__(self, message: str = None):
        super().__init__(message)
        self.headers = {"WWW-Authenticate": "Bearer"}


class SignerNotRegistered(SignFlowError):
    kind = "signer_not_registered"
    status = 404
    default_message = "Signer email not found. The signer must be registered in the app."


class UserNotFound(SignFlowError):
    kind = "user_not_found"
    status = 404
    default_message = "User not found"


class AlreadyCollaborator(SignFlowError):
    kind = "already_collaborator"
    status = 400
    default_message = "User is already a collaborator"


class SelfCollaboration(SignFlowError):
    kind = "self_collaboration"
    status = 400
    default_message = "Cannot add yourself as collaborator"


class StorageFailure(SignFlowError):
    kind = "storage_failure"
    status = 500
    default_message = "Storage operation failed"


async def signflow_error_handler(request: Request, exc: SignFlowError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.kind},
        headers=getattr(exc, "headers", None),
    )

"""
Structured exceptions and error responses for Taskhive.

Every failure leaves the API in the same envelope:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""

from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskhive.logging_config import get_logger

logger = get_logger("errors")


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None  # e.g. ["body", "title"]
    msg: str
    type: str


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[List[ErrorDetail]] = None


class ErrorResponse(BaseModel):
    """Structured error response format."""
    success: bool = False
    error: ErrorBody


# Documented on every router; the handlers below produce this shape
ERROR_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    code: {"model": ErrorResponse}
    for code in (400, 401, 403, 404, 409, 500)
}


# =============================================================================
# Custom Exceptions
# =============================================================================

class TaskhiveException(Exception):
    """Base exception for all Taskhive errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class UnauthenticatedError(TaskhiveException):
    """Missing, invalid or unregistered credential."""

    def __init__(self, message: str = "Not authorized to access this route"):
        super().__init__(
            message=message,
            error_code="unauthenticated",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ForbiddenError(TaskhiveException):
    """Authenticated, but the policy denies the action."""

    def __init__(self, message: str = "Not authorized to perform this action"):
        super().__init__(
            message=message,
            error_code="forbidden",
            status_code=status.HTTP_403_FORBIDDEN,
        )


class NotFoundError(TaskhiveException):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(TaskhiveException):
    """Malformed input."""

    def __init__(
        self,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        error_code: str = "validation_error",
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class SelfDependencyError(ValidationError):
    """Task cannot depend on itself."""

    def __init__(self, task_id: str):
        super().__init__(
            message="A task cannot depend on itself",
            error_code="self_dependency",
            details=[{
                "loc": ["body", "dependencies"],
                "msg": f"Task {task_id} lists itself as a dependency",
                "type": "self_dependency",
            }],
        )


class CrossProjectDependencyError(ValidationError):
    """Dependency points at a task of another project."""

    def __init__(self, task_id: str, dependency_id: str):
        super().__init__(
            message="A task can only depend on tasks of the same project",
            error_code="cross_project_dependency",
            details=[{
                "loc": ["body", "dependencies"],
                "msg": f"Task {dependency_id} belongs to a different project than {task_id}",
                "type": "cross_project_dependency",
            }],
        )


class CycleDetectedError(ValidationError):
    """The proposed dependencies would create a cycle."""

    def __init__(self, task_id: str, cycle: Optional[List[str]] = None):
        super().__init__(
            message="These dependencies would create a cycle in the task graph",
            error_code="cycle_detected",
            details=[{
                "loc": ["body", "dependencies"],
                "msg": f"Cycle through task {task_id}: {' -> '.join(cycle or [])}",
                "type": "cycle_error",
            }],
        )
        self.cycle = cycle or []


class ConflictError(TaskhiveException):
    """Request conflicts with the current state of a resource."""

    def __init__(self, message: str, error_code: str = "conflict"):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_409_CONFLICT,
        )


class AlreadyTeamMemberError(ConflictError):
    def __init__(self, user_id: str, project_id: str):
        super().__init__(
            message=f"User {user_id} is already a team member of project {project_id}",
            error_code="already_team_member",
        )


class SelfDeleteError(ConflictError):
    def __init__(self):
        super().__init__(message="Cannot delete yourself", error_code="self_delete")


class UserAlreadyExistsError(ConflictError):
    def __init__(self, message: str):
        super().__init__(message=message, error_code="user_exists")


class InternalError(TaskhiveException):
    """Storage or unexpected failure."""

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message=message)


# =============================================================================
# Exception Handlers
# =============================================================================

def error_content(
    code: str,
    message: str,
    details: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details},
    }


async def taskhive_exception_handler(request: Request, exc: TaskhiveException) -> JSONResponse:
    """Handle TaskhiveException and return structured response."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(exc.error_code, exc.message, exc.details),
        headers={"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI/pydantic validation errors as field-level details."""
    details = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", "value_error"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_content("validation_error", "Request validation failed", details),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep framework-raised HTTP errors (unknown route, wrong method) in the envelope."""
    code = {
        status.HTTP_401_UNAUTHORIZED: "unauthenticated",
        status.HTTP_403_FORBIDDEN: "forbidden",
        status.HTTP_404_NOT_FOUND: "not_found",
        status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    }.get(exc.status_code, "http_error")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def storage_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Storage failures surface as internal errors without leaking internals."""
    logger.exception(f"Storage error on {request.method} {request.url.path}: {exc}")
    return await taskhive_exception_handler(request, InternalError())


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return await taskhive_exception_handler(request, InternalError())


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(TaskhiveException, taskhive_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, storage_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

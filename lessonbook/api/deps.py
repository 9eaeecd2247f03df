from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..core.errors import (
    AuthorizationError,
    BookingError,
    LeadTimeViolation,
    NotFoundError,
    PaymentGatewayError,
    StateConflictError,
    ValidationError,
)
from ..domain import Actor, UserRole
from ..services.container import ServiceContainer
from ..services.results import OperationResult

ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)

ERROR_STATUS = {
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StateConflictError: status.HTTP_409_CONFLICT,
    LeadTimeViolation: status.HTTP_409_CONFLICT,
    ValidationError: 422,
    PaymentGatewayError: status.HTTP_400_BAD_REQUEST,
}


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> Actor:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = jwt.decode(
            credentials.credentials, container.settings.jwt_secret, algorithms=[ALGORITHM]
        )
    except JWTError as exc:
        raise credentials_exception from exc
    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception
    try:
        role = UserRole(payload.get("role", UserRole.student.value))
    except ValueError as exc:
        raise credentials_exception from exc
    actor = Actor(
        id=str(user_id),
        name=payload.get("name") or str(user_id),
        email=payload.get("email") or "",
        role=role,
    )
    container.directory.upsert(actor)
    return actor


def require_roles(*roles: UserRole):
    def dependency(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
        if actor.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return actor

    return dependency


def http_error(error: BookingError | None, detail: str) -> HTTPException:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            status_code = code
            break
    return HTTPException(status_code=status_code, detail=detail)


def unwrap(result: OperationResult) -> OperationResult:
    """Raise the HTTP error matching a failed operation, or hand the result back."""
    if not result.success:
        raise http_error(result.error, result.message)
    return result

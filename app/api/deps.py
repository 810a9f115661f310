"""Request dependencies: application context, per-request stores and caller resolution."""

from collections.abc import Callable, Generator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.context import AppContext
from app.core.roles import Caller
from app.services.auth import authenticate_caller, resolve_caller
from app.services.policy import Action, authorize
from app.stores.base import Stores

security = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_stores(
    context: Annotated[AppContext, Depends(get_context)],
) -> Generator[Stores, None, None]:
    """Dependency that yields stores for this request and releases them when done."""
    with context.open_stores() as stores:
        yield stores


def _token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    return credentials.credentials if credentials is not None else None


def get_optional_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    stores: Annotated[Stores, Depends(get_stores)],
    context: Annotated[AppContext, Depends(get_context)],
) -> Caller | None:
    """Dependency for public routes: the caller, or None when anonymous or the token is bad."""
    return resolve_caller(_token(credentials), stores.users, context.settings)


def get_current_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    stores: Annotated[Stores, Depends(get_stores)],
    context: Annotated[AppContext, Depends(get_context)],
) -> Caller:
    """Dependency: require a valid Bearer JWT. Raises 401 if missing or invalid."""
    return authenticate_caller(_token(credentials), stores.users, context.settings)


def require_action(action: Action) -> Callable[[Caller], Caller]:
    """Dependency factory: authenticated caller whose role may perform action (else 403)."""

    def dependency(caller: Annotated[Caller, Depends(get_current_caller)]) -> Caller:
        authorize(caller, action)
        return caller

    return dependency

"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.redis_client import CacheManager, get_redis_client
from app.database import get_db
from app.schemas.users import UserDocument
from app.services.account_service import AccountService
from app.services.alexa_service import AlexaService
from app.services.auth_service import AuthService
from app.services.document_service import DocumentService
from app.services.line_validator import LineValidator
from app.services.manage_service import ManageService
from app.services.tfl_service import TflService

# Session tokens; the preferences API reads its own Authorization header
security = HTTPBearer(auto_error=False)


def get_cache_manager() -> CacheManager:
    """Get the Redis-backed cache manager."""
    return CacheManager(get_redis_client())


def get_document_service(db: Annotated[AsyncSession, Depends(get_db)]) -> DocumentService:
    """Get the user document store for the request's database session."""
    return DocumentService(db)


def get_account_service(
    documents: Annotated[DocumentService, Depends(get_document_service)],
    cache_manager: Annotated[CacheManager, Depends(get_cache_manager)],
) -> AccountService:
    """Get the account service."""
    return AccountService(documents, cache_manager)


def get_auth_service(
    accounts: Annotated[AccountService, Depends(get_account_service)],
    cache_manager: Annotated[CacheManager, Depends(get_cache_manager)],
) -> AuthService:
    """Get the authentication service."""
    return AuthService(accounts, cache_manager)


def get_tfl_service() -> TflService:
    """Get the TfL API client."""
    return TflService(settings)


def get_line_validator(tfl_service: Annotated[TflService, Depends(get_tfl_service)]) -> LineValidator:
    """Get the favorite line validator."""
    return LineValidator(tfl_service)


def get_manage_service(
    accounts: Annotated[AccountService, Depends(get_account_service)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    line_validator: Annotated[LineValidator, Depends(get_line_validator)],
) -> ManageService:
    """Get the account management service."""
    return ManageService(accounts, auth, line_validator)


def get_alexa_service(accounts: Annotated[AccountService, Depends(get_account_service)]) -> AlexaService:
    """Get the Alexa account linking service."""
    return AlexaService(accounts, settings)


async def get_session_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """
    Extract the session token from the request.

    Raises:
        UnauthorizedException: If no bearer token was sent
    """
    if credentials is None:
        raise UnauthorizedException("Not authenticated")

    return credentials.credentials


async def get_current_user(
    token: Annotated[str, Depends(get_session_token)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> UserDocument:
    """
    Get the signed-in user.

    Raises:
        UnauthorizedException: If the session is invalid or has ended
    """
    return await auth.get_current_user(token)


async def require_admin(
    current_user: Annotated[UserDocument, Depends(get_current_user)],
) -> UserDocument:
    """
    Dependency to ensure current user is an administrator.

    Raises:
        ForbiddenException: If user is not an administrator
    """
    if not current_user.is_in_role(settings.admin_role):
        raise ForbiddenException("Admin access required")

    return current_user


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
ManageServiceDep = Annotated[ManageService, Depends(get_manage_service)]
AlexaServiceDep = Annotated[AlexaService, Depends(get_alexa_service)]
SessionToken = Annotated[str, Depends(get_session_token)]
CurrentUser = Annotated[UserDocument, Depends(get_current_user)]
AdminUser = Annotated[UserDocument, Depends(require_admin)]

"""Bearer token authorization for the preferences API."""

import re
from typing import TYPE_CHECKING

from structlog import get_logger

from app.core.exceptions import (
    AuthorizationFailure,
    MalformedHeader,
    NoAuthorizationProvided,
    TokenMismatch,
    UnsupportedScheme,
)

if TYPE_CHECKING:
    from app.schemas.users import UserDocument
    from app.services.account_service import AccountService

logger = get_logger(__name__)

BEARER_SCHEME = "bearer"

# RFC 7235 credentials: a token scheme, optionally followed by whitespace and a parameter
_AUTHORIZATION_PATTERN = re.compile(r"^\s*([!#$%&'*+\-.^_`|~0-9A-Za-z]+)(?:\s+(.*?))?\s*$", re.DOTALL)


def parse_authorization_header(authorization: str) -> tuple[str, str | None] | None:
    """
    Split an Authorization header value into its scheme and parameter.

    Returns:
        A ``(scheme, parameter)`` pair, or ``None`` if the value does not
        parse. The parameter is ``None`` when the header carries a scheme only.
    """
    match = _AUTHORIZATION_PATTERN.match(authorization)

    if match is None:
        return None

    scheme, parameter = match.groups()
    return scheme, parameter or None


def get_access_token_from_header(authorization: str | None) -> str | None:
    """
    Extract the bearer token from an Authorization header value.

    Raises:
        NoAuthorizationProvided: If the header is absent or blank.
        MalformedHeader: If the header is not a ``scheme parameter`` pair.
        UnsupportedScheme: If the scheme is not bearer.
    """
    if authorization is None or not authorization.strip():
        raise NoAuthorizationProvided()

    parsed = parse_authorization_header(authorization)

    if parsed is None:
        raise MalformedHeader()

    scheme, parameter = parsed

    if scheme.lower() != BEARER_SCHEME:
        raise UnsupportedScheme()

    return parameter


async def authorize_access_token(
    authorization: str | None,
    account_service: "AccountService",
) -> "UserDocument":
    """
    Resolve the user an Authorization header grants access to.

    The token must equal the user's stored Alexa token exactly. The store
    lookup is re-checked with an ordinal comparison so that a store which
    matches case-insensitively can never authorize the wrong user.

    Raises:
        AuthorizationFailure: For every failure. Only the parse failures
            carry a detail string; an unknown token and a token of the wrong
            shape are otherwise indistinguishable to the caller.
    """
    try:
        access_token = get_access_token_from_header(authorization)
    except AuthorizationFailure as e:
        _log_denied(e)
        raise

    user = None

    if access_token:
        user = await account_service.get_user_by_access_token(access_token)

    if user is None or user.alexa_token != access_token:
        failure = TokenMismatch()
        _log_denied(failure)
        raise failure

    logger.info("preferences_access_authorized", user_id=user.id)
    return user


def _log_denied(failure: AuthorizationFailure) -> None:
    # The principal is unknown at this point, so the request id bound by the
    # logging middleware is the only identifying context.
    logger.warning("preferences_access_denied", reason=failure.reason)

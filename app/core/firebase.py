"""Firebase Admin SDK initialization and identity utilities."""

import json
import os

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin.exceptions import FirebaseError
from structlog import get_logger

from app.schemas.auth import ExternalIdentity
from app.schemas.users import RoleClaim

logger = get_logger(__name__)

_firebase_app: firebase_admin.App | None = None

# Firebase sign-in provider IDs and the provider names used on user logins
SIGN_IN_PROVIDERS = {
    "oidc.amazon": "Amazon",
    "apple.com": "Apple",
    "facebook.com": "Facebook",
    "github.com": "GitHub",
    "google.com": "Google",
    "microsoft.com": "Microsoft",
    "twitter.com": "Twitter",
}

# Token fields captured as claims on the user
_CLAIM_FIELDS = ("email", "name", "given_name", "family_name", "role")


def initialize_firebase(
    firebase_credentials_path: str | None = None, firebase_config_json: str | None = None
) -> None:
    """
    Initialize Firebase Admin SDK.

    Args:
        firebase_credentials_path: Optional path to service account JSON file.
        firebase_config_json: Optional raw JSON string of service account.

    Falls back to Application Default Credentials when neither is given.
    """
    global _firebase_app

    if _firebase_app is not None:
        logger.info("firebase_already_initialized")
        return

    cred = None

    if firebase_config_json:
        logger.info("firebase_init_from_json")
        cred = credentials.Certificate(json.loads(firebase_config_json))
    elif firebase_credentials_path and os.path.exists(firebase_credentials_path):
        logger.info("firebase_init_from_file", path=firebase_credentials_path)
        cred = credentials.Certificate(firebase_credentials_path)

    if cred:
        _firebase_app = firebase_admin.initialize_app(cred)
    else:
        _firebase_app = firebase_admin.initialize_app()
        logger.info("firebase_init_default_credentials")


async def verify_firebase_token(id_token: str) -> dict:
    """
    Verify a Firebase ID token.

    Args:
        id_token: Firebase ID token from the client

    Returns:
        Decoded token containing user information

    Raises:
        ValueError: If token is invalid, expired or cannot be verified
    """
    try:
        # clock_skew_seconds=10 to tolerate clock differences
        decoded_token = auth.verify_id_token(id_token, clock_skew_seconds=10)
    except auth.InvalidIdTokenError as e:
        logger.warning("firebase_token_invalid", error=str(e))
        raise ValueError(f"Invalid Firebase ID token: {e!s}") from e
    except (FirebaseError, ValueError) as e:
        logger.error("firebase_token_verification_failed", error=str(e))
        raise ValueError(f"Token verification failed: {e!s}") from e

    logger.info("firebase_token_verified", uid=decoded_token.get("uid"))
    return decoded_token


def to_external_identity(decoded_token: dict) -> ExternalIdentity:
    """
    Map a decoded Firebase token to the external identity it signed in with.

    Raises:
        ValueError: If the token was issued for an unsupported provider
    """
    firebase_claims = decoded_token.get("firebase", {})
    sign_in_provider = firebase_claims.get("sign_in_provider")
    provider = SIGN_IN_PROVIDERS.get(sign_in_provider)

    if provider is None:
        raise ValueError(f"Unsupported sign-in provider '{sign_in_provider}'.")

    # The provider's own user ID, falling back to the Firebase UID
    identities = firebase_claims.get("identities", {}).get(sign_in_provider) or []
    provider_key = str(identities[0]) if identities else decoded_token["uid"]

    claims = [
        RoleClaim(claim_type="sub", issuer=provider, value=provider_key),
    ]
    for field in _CLAIM_FIELDS:
        value = decoded_token.get(field)
        if value:
            claims.append(RoleClaim(claim_type=field, issuer=provider, value=str(value)))

    name = decoded_token.get("name")

    return ExternalIdentity(
        login_provider=provider,
        provider_key=provider_key,
        provider_display_name=provider,
        email=decoded_token.get("email"),
        user_name=name or decoded_token.get("email"),
        given_name=decoded_token.get("given_name"),
        surname=decoded_token.get("family_name"),
        claims=claims,
    )

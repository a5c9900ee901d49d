"""Account management schemas."""

from enum import StrEnum

from pydantic import BaseModel, Field

from app.schemas.users import CamelModel


class UpdateResult(StrEnum):
    """Outcome of an ETag-guarded update."""

    APPLIED = "applied"
    NOT_ATTEMPTED = "not_attempted"
    CONFLICT = "conflict"


class UpdateLinePreferencesRequest(CamelModel):
    """Favorite lines submitted from the preferences form."""

    etag: str | None = None
    favorite_lines: list[str] | None = None


class UpdateLinePreferencesResponse(CamelModel):
    """
    Result of a preferences update.

    ``updated`` is ``None`` when no update was attempted because nothing
    changed.
    """

    updated: bool | None = None
    result: UpdateResult
    etag: str | None = None


class RemoveAccountLinkRequest(CamelModel):
    """External login to unlink."""

    login_provider: str | None = None
    provider_key: str | None = None


class RemoveAlexaLinkRequest(BaseModel):
    """ETag of the revision the Alexa link is removed from."""

    etag: str | None = None


class LinkAccountRequest(CamelModel):
    """Identity framework token for the provider being linked."""

    id_token: str = Field(..., min_length=1, description="Firebase ID token")


class CurrentLogin(CamelModel):
    """A linked login shown on the manage page."""

    login_provider: str
    provider_key: str
    provider_display_name: str


class ManageResponse(CamelModel):
    """Account state shown on the manage page."""

    current_logins: list[CurrentLogin]
    other_logins: list[str]
    etag: str
    is_linked_to_alexa: bool


class ManageResult(CamelModel):
    """Outcome of a manage action."""

    succeeded: bool
    message: str
    etag: str | None = None
    access_token: str | None = None

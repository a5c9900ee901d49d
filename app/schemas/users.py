"""User document schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Value type recorded for claims whose provider did not say otherwise
STRING_CLAIM_VALUE_TYPE = "http://www.w3.org/2001/XMLSchema#string"


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserLogin(CamelModel):
    """An external sign-in linked to a user."""

    login_provider: str
    provider_key: str
    provider_display_name: str | None = None

    def matches(self, login_provider: str, provider_key: str) -> bool:
        """Whether this login is the given provider/key pair."""
        return self.login_provider == login_provider and self.provider_key == provider_key


class RoleClaim(CamelModel):
    """A claim captured from an external identity."""

    claim_type: str
    issuer: str
    value: str
    value_type: str = STRING_CLAIM_VALUE_TYPE

    def key(self) -> tuple[str, str, str, str]:
        """The exact 4-tuple used to decide whether a claim is already held."""
        return (self.claim_type, self.issuer, self.value, self.value_type)


class UserDocument(CamelModel):
    """
    A user record as stored in the document collection.

    ``id`` and ``etag`` are assigned by the store; every other field is part
    of the stored JSON body.
    """

    id: str | None = None
    etag: str | None = None
    email: str | None = None
    email_normalized: str | None = None
    user_name: str | None = None
    user_name_normalized: str | None = None
    given_name: str | None = None
    surname: str | None = None
    alexa_token: str | None = None
    favorite_lines: list[str] = Field(default_factory=list)
    logins: list[UserLogin] = Field(default_factory=list)
    role_claims: list[RoleClaim] = Field(default_factory=list)
    created_at: datetime | None = None
    timestamp: datetime | None = None

    def to_document(self) -> dict:
        """Serialize the JSON body stored for this user."""
        return self.model_dump(by_alias=True, mode="json", exclude={"id", "etag"})

    @classmethod
    def from_document(cls, document_id: str, etag: str, body: dict) -> "UserDocument":
        """Build a user from a stored row."""
        return cls.model_validate({**body, "id": document_id, "etag": etag})

    def find_login(self, login_provider: str, provider_key: str) -> UserLogin | None:
        """Get the linked login for a provider/key pair, if any."""
        for login in self.logins:
            if login.matches(login_provider, provider_key):
                return login
        return None

    def is_in_role(self, role: str) -> bool:
        """Whether the user holds a role claim with the given value."""
        return any(claim.claim_type == "role" and claim.value == role for claim in self.role_claims)


class PreferencesResponse(CamelModel):
    """The preferences associated with an access token."""

    favorite_lines: list[str]
    user_id: str


class CountResponse(BaseModel):
    """The number of registered users."""

    count: int


class UserResponse(CamelModel):
    """User profile returned after sign-in."""

    id: str
    email: str | None = None
    user_name: str | None = None
    given_name: str | None = None
    surname: str | None = None
    favorite_lines: list[str]
    etag: str
    is_linked_to_alexa: bool

    @classmethod
    def from_user(cls, user: UserDocument) -> "UserResponse":
        """Build the response for a stored user."""
        return cls(
            id=user.id or "",
            email=user.email,
            user_name=user.user_name,
            given_name=user.given_name,
            surname=user.surname,
            favorite_lines=user.favorite_lines,
            etag=user.etag or "",
            is_linked_to_alexa=bool(user.alexa_token and user.alexa_token.strip()),
        )

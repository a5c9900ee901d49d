"""Authentication schemas."""

from pydantic import Field

from app.schemas.users import CamelModel, RoleClaim, UserResponse


class ExternalIdentity(CamelModel):
    """A verified identity from an external sign-in provider."""

    login_provider: str
    provider_key: str
    provider_display_name: str | None = None
    email: str | None = None
    user_name: str | None = None
    given_name: str | None = None
    surname: str | None = None
    claims: list[RoleClaim] = Field(default_factory=list)


class SignInRequest(CamelModel):
    """Identity framework token exchanged for a session."""

    id_token: str = Field(..., min_length=1, description="Firebase ID token")


class SessionResponse(CamelModel):
    """Session token and the signed-in user."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse

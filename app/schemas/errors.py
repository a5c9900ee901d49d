"""Error response schema."""

from pydantic import Field

from app.schemas.users import CamelModel


class ErrorResponse(CamelModel):
    """Represents an error from an API resource."""

    status_code: int
    message: str = ""
    request_id: str = ""
    details: list[str] = Field(default_factory=list)

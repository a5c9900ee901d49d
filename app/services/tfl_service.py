"""Client for the TfL Unified API."""

import httpx
from pydantic import BaseModel, ConfigDict
from structlog import get_logger

from app.config import Settings, settings
from app.core.exceptions import LineDataUnavailableException

logger = get_logger(__name__)


class LineInfo(BaseModel):
    """A line returned by the TfL API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str | None = None


class TflService:
    """Service for fetching line data from the TfL Unified API."""

    def __init__(self, config: Settings | None = None, client: httpx.AsyncClient | None = None):
        """
        Initialize the service.

        Args:
            config: Settings to use, defaulting to the application settings
            client: Optional HTTP client; one is created per call if omitted
        """
        self.config = config or settings
        self.client = client

    async def get_lines(self) -> list[LineInfo]:
        """
        Fetch the lines for the configured transport modes.

        Raises:
            LineDataUnavailableException: If the API cannot be reached or
                responds with an error
        """
        url = f"{self.config.tfl_base_url.rstrip('/')}/Line/Mode/{self.config.tfl_modes}"

        params = {}
        if self.config.tfl_app_id:
            params["app_id"] = self.config.tfl_app_id
        if self.config.tfl_app_key:
            params["app_key"] = self.config.tfl_app_key

        try:
            if self.client is not None:
                response = await self.client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.config.tfl_timeout_seconds) as client:
                    response = await client.get(url, params=params)

            response.raise_for_status()
            lines = [LineInfo.model_validate(item) for item in response.json()]
        except httpx.HTTPError as e:
            logger.error("tfl_lines_fetch_failed", url=url, error=str(e))
            raise LineDataUnavailableException() from e
        except ValueError as e:
            # Covers both undecodable JSON and ValidationError
            logger.error("tfl_lines_invalid_response", url=url, error=str(e))
            raise LineDataUnavailableException() from e

        logger.debug("tfl_lines_fetched", count=len(lines))
        return lines

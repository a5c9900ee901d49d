"""Validation of requested favorite lines against the active line list."""

from app.services.tfl_service import TflService


class LineValidator:
    """Checks line identifiers against the lines TfL currently lists."""

    def __init__(self, tfl_service: TflService):
        self.tfl_service = tfl_service

    async def get_invalid_lines(self, requested: list[str] | None) -> list[str]:
        """
        Get the requested line IDs that are not active lines.

        The line list is fetched on every call. ``None`` means no lines were
        requested and is always valid without a fetch.

        Raises:
            LineDataUnavailableException: If the line list cannot be fetched
        """
        if requested is None:
            return []

        lines = await self.tfl_service.get_lines()
        valid_ids = {line.id for line in lines}

        return [line_id for line_id in requested if line_id not in valid_ids]

    async def are_lines_valid(self, requested: list[str] | None) -> bool:
        """Whether every requested line ID is an active line."""
        return not await self.get_invalid_lines(requested)

"""
Greeting Log API Client

Read access to the append-only greeting log.
"""

import logging
from typing import List, Optional

from .base import BaseServiceClient
from ..main import ClientError, LogEntry

logger = logging.getLogger(__name__)


class GreetingApiClient(BaseServiceClient):
    """
    Client for the greeting log API.

    Endpoints:
        GET /log/last                                   latest entry, 204 when empty
        GET /log?direction=forward&offset=O&limit=L     entries from offset O on
    """

    service_name = "greeting-api"

    async def get_last_log_entry(self) -> Optional[LogEntry]:
        """Get the most recent log entry, or None if the log is empty"""
        path = "/log/last"
        response = await self._request("GET", path)

        if response.status_code == 204:
            logger.debug("Greeting log is empty")
            return None
        if response.status_code != 200:
            raise self._error(response, path)

        return self._parse_entry(self._json(response, path), path)

    async def get_log_entries(self, offset: int, limit: int) -> List[LogEntry]:
        """
        Get up to ``limit`` entries with id >= ``offset``, ascending by id.

        A 204 response is returned as an empty list.
        """
        path = "/log"
        response = await self._request(
            "GET",
            path,
            params={"direction": "forward", "offset": offset, "limit": limit},
        )

        if response.status_code == 204:
            return []
        if not response.is_success:
            raise self._error(response, path)

        data = self._json(response, path)
        if not isinstance(data, list):
            raise ClientError(
                f"{self.service_name} returned {type(data).__name__} for {path}, expected a list",
                status_code=response.status_code,
                body=response.text,
            )
        return [self._parse_entry(item, path) for item in data]

    def _parse_entry(self, data, path: str) -> LogEntry:
        try:
            return LogEntry.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ClientError(f"Invalid log entry from {path}: {data!r} ({e})") from e

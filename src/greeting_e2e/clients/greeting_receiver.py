"""
Greeting Receiver Client

Submits greeting commands to the receiver service.
"""

import logging

from .base import BaseServiceClient
from ..main import ClientError, GreetingCommand, GreetingResponse

logger = logging.getLogger(__name__)


class GreetingReceiverClient(BaseServiceClient):
    """Client for ``POST /greeting`` on the greeting receiver"""

    service_name = "greeting-receiver"

    async def send(self, greeting: GreetingCommand) -> GreetingResponse:
        """Submit one greeting and return the receiver's message id"""
        path = "/greeting"
        response = await self._request(
            "POST",
            path,
            json=greeting.to_dict(),
            headers={"content-type": "application/json"},
        )

        if not response.is_success:
            raise self._error(response, path)

        data = self._json(response, path)
        try:
            result = GreetingResponse.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ClientError(
                f"Receiver response has no usable messageId: {data!r}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        logger.debug(f"Sent {greeting.external_reference} -> message id {result.message_id}")
        return result

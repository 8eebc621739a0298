from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Literal, Mapping, Optional, TypedDict, Union

from pantry._async_generations import AsyncGenerationManager

logger = logging.getLogger("pantry.control")


class ForceActivate(TypedDict):
    type: Literal["ForceActivate"]


class QueryStatus(TypedDict):
    type: Literal["QueryStatus"]


class Ack(TypedDict):
    type: Literal["Ack"]
    generation: str


class StatusResponse(TypedDict):
    type: Literal["StatusResponse"]
    storeName: str
    entryCount: int


ControlMessage = Union[ForceActivate, QueryStatus]
Reply = Union[Ack, StatusResponse]
ReplyChannel = Callable[[Reply], Awaitable[None]]

# Older controllers ask for early cutover with this message.
SKIP_WAITING = "SKIP_WAITING"


class AsyncControlChannel:
    """
    Handles messages sent to the worker by an external controller.

    Two kinds of messages are understood:

    - ``{"type": "ForceActivate"}`` activates the generation right away and
      acknowledges with ``{"type": "Ack", "generation": ...}``.
    - ``{"type": "QueryStatus"}`` answers with
      ``{"type": "StatusResponse", "storeName": ..., "entryCount": ...}``.

    Anything else is logged and ignored, so controllers and workers of
    different versions can talk to each other.
    """

    def __init__(self, generations: AsyncGenerationManager) -> None:
        self.generations = generations

    async def handle_message(self, message: Any, reply: Optional[ReplyChannel] = None) -> Optional[Reply]:
        """
        Handle one control message.

        Args:
            message: The decoded message payload.
            reply: Optional callable used to send the reply back to the controller.

        Returns:
            The reply that was produced, or None if the message was ignored.
        """
        if not isinstance(message, Mapping) or not isinstance(message.get("type"), str):
            logger.info(f"Ignoring malformed control message: {message!r}")
            return None

        kind = message["type"]
        logger.debug(f"Control message received: {kind}")

        response: Reply
        if kind in ("ForceActivate", SKIP_WAITING):
            await self.generations.force_activate()
            response = Ack(type="Ack", generation=self.generations.generation)
        elif kind == "QueryStatus":
            response = await self.status()
        else:
            logger.info(f"Ignoring unknown control message type: {kind!r}")
            return None

        if reply is not None:
            await reply(response)
        return response

    async def status(self) -> StatusResponse:
        return StatusResponse(
            type="StatusResponse",
            storeName=self.generations.store_name,
            entryCount=await self.generations.entry_count(),
        )

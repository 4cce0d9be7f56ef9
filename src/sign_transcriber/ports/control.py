import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, Protocol


class ControlReplyError(Exception):
    """The daemon closed a control connection without answering."""


@dataclass(frozen=True)
class ControlCommand:
    action: str
    payload: dict | None = None
    reply: asyncio.Future | None = field(default=None, compare=False, repr=False)


class ControlPort(Protocol):
    async def start(self) -> None: ...
    async def stop(self) -> None: ...
    def commands(self) -> AsyncIterator[ControlCommand]: ...
    async def send_response(self, command: ControlCommand, data: dict) -> None: ...

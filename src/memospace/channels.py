"""Message channel for requests to open a note in the editor."""

import asyncio
from dataclasses import dataclass


@dataclass(frozen=True)
class OpenNoteRequest:
    """Ask the top-level view to open a note full-screen."""

    note_id: str
    origin: str = "graph"


class EditorChannel:
    """Queue of open-note requests owned by the top-level view.

    Nested components get a reference to the channel instead of broadcasting
    a global event; the owner drains it with ``next_request``.
    """

    def __init__(self):
        self._queue: asyncio.Queue[OpenNoteRequest] = asyncio.Queue()

    def request_open(self, note_id: str, origin: str = "graph") -> OpenNoteRequest:
        request = OpenNoteRequest(note_id=note_id, origin=origin)
        self._queue.put_nowait(request)
        return request

    async def next_request(self) -> OpenNoteRequest:
        """Wait for the next open request."""
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()

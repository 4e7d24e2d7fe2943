"""
Progress reporting as a stream of discrete events.

Long operations write to a `ProgressChannel`; the host reads the same
channel with ``async for`` and stops at the terminal `ProgressFinished`
event. Nothing is compared by value to detect the end of the stream.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from devsandbox.domain.events import Event, ProgressAdvanced, ProgressFinished, ProgressStarted
from devsandbox.domain.protocols import HostCapabilities
from devsandbox.logger import get_logger

logger = get_logger("progress")

T = TypeVar("T")


class ProgressChannel:
    """Single-producer, single-consumer progress event stream."""

    def __init__(self, title: str):
        self.title = title
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._finished = False
        self._queue.put_nowait(ProgressStarted(title=title))

    @property
    def finished(self) -> bool:
        return self._finished

    def advance(self, increment: int, message: Optional[str] = None) -> None:
        """Report a completed step worth ``increment`` percentage points."""
        self._put(ProgressAdvanced(increment=increment, message=message))

    def finish(self, error: Optional[str] = None) -> None:
        """Close the channel. Every channel is finished exactly once."""
        self._put(ProgressFinished(error=error))
        self._finished = True

    def _put(self, event: Event) -> None:
        if self._finished:
            raise RuntimeError(f"Progress channel '{self.title}' is already finished")
        self._queue.put_nowait(event)

    def __aiter__(self) -> AsyncIterator[Event]:
        return self._events()

    async def _events(self) -> AsyncIterator[Event]:
        while True:
            event = await self._queue.get()
            yield event
            if isinstance(event, ProgressFinished):
                return


async def run_with_progress(
    host: HostCapabilities,
    title: str,
    task: Callable[[ProgressChannel], Awaitable[T]],
) -> T:
    """
    Run ``task`` while the host renders its progress.

    The channel is finished whether the task succeeds, raises or is
    cancelled; the task's exception propagates after the host has seen the
    terminal event.
    """
    channel = ProgressChannel(title)
    renderer = asyncio.create_task(host.show_progress(title, channel))

    try:
        result = await task(channel)
    except BaseException as e:
        # includes cancellation; the renderer must still see the terminal event
        channel.finish(error=str(e) or type(e).__name__)
        await _wait_for_renderer(renderer, title)
        raise

    channel.finish()
    await _wait_for_renderer(renderer, title)
    return result


async def _wait_for_renderer(renderer: "asyncio.Task[None]", title: str) -> None:
    try:
        await renderer
    except Exception as e:
        logger.error(f"Error rendering progress '{title}': {e}")

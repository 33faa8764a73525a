import asyncio
import concurrent.futures
import inspect
from collections.abc import AsyncIterator, Iterator
from typing import Any, Callable

from toolflow.application.port import TaskRunner
from toolflow.domain.entity import ToolContext


def _fragment_text(fragment: Any) -> str:
    # model message chunks carry their text in ``content``
    content = getattr(fragment, "content", fragment)
    return content if isinstance(content, str) else str(content)


async def _drain(result: Any) -> Any:
    if inspect.isawaitable(result):
        result = await result
    if isinstance(result, AsyncIterator):
        return "".join([_fragment_text(fragment) async for fragment in result])
    return result


def _in_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class InMemoryTaskRunner(TaskRunner):
    def run(self, handler: Callable[[ToolContext], Any], context: ToolContext) -> Any:
        """
        Execute a handler in the calling thread and materialize its result.

        Awaitables are awaited and text streams (sync or async) are joined, so
        the caller always receives a finished value. When the caller is itself
        inside a running event loop, asynchronous results are drained on a
        separate thread with its own loop.

        :param handler: The tool handler
        :type handler: Callable[[ToolContext], Any]
        :param context: The invocation context
        :type context: ToolContext
        :returns: The materialized handler result
        :rtype: Any
        """
        result = handler(context)
        if inspect.isawaitable(result) or isinstance(result, AsyncIterator):
            result = self._run_async(result)
        if isinstance(result, Iterator):
            result = "".join(_fragment_text(fragment) for fragment in result)
        return result

    def _run_async(self, result: Any) -> Any:
        if not _in_event_loop():
            return asyncio.run(_drain(result))
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            return executor.submit(asyncio.run, _drain(result)).result()

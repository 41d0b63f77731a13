"""
MiddlewarePipeline - Ordered interceptors in front of a terminal handler.

Interceptors are coroutines taking the dispatched arguments plus a
continuation:

    async def auth_check(ctx, next_):
        if ctx.user_id in banned_users:
            return              # short-circuit: handler never runs
        await next_()

    pipeline.push(auth_check)
    await pipeline.execute(handler, ctx)
"""

import inspect
from typing import Any, Awaitable, Callable, Generic, List, TypeVar

from liveviews.core.errors import ContinuationReusedError

Interceptor = Callable[..., Awaitable[None]]
T = TypeVar("T", bound=Callable[..., Any])


async def maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class MiddlewarePipeline(Generic[T]):
    """
    Forward-only interceptor chain.

    Reusable across dispatches; pushing while an execute() is in flight is
    not supported.
    """

    def __init__(self):
        self.stack: List[Interceptor] = []

    def push(self, interceptor: Interceptor) -> None:
        """Append an interceptor (runs after the ones already pushed)."""
        self.stack.append(interceptor)

    def __len__(self) -> int:
        return len(self.stack)

    async def execute(self, terminal: T, *args: Any) -> None:
        """
        Run every interceptor in order, then ``terminal(*args)``.

        Returns once the terminal function (or the interceptor that
        short-circuited the chain) has finished.

        Raises:
            ContinuationReusedError: an interceptor called its continuation twice
        """
        stack = list(self.stack)

        async def run(index: int) -> None:
            if index >= len(stack):
                await maybe_await(terminal(*args))
                return

            called = False

            async def next_() -> None:
                nonlocal called
                if called:
                    raise ContinuationReusedError(
                        "next() can only be called once per middleware",
                        data={"interceptor": getattr(stack[index], "__name__", repr(stack[index]))},
                    )
                called = True
                await run(index + 1)

            await maybe_await(stack[index](*args, next_))

        await run(0)

"""
App - routes a process invocation to a registered command handler.

Handlers are coroutines taking a :class:`Context` and the argument list
(without the program name)::

    app = App()

    async def serve(ctx: Context, args: list[str]) -> None:
        options = ArgBinder(ServeOptions).parse(args[1:])
        ...

    app.add_sub_command("serve", serve)
    app.add_shutdown_handler(lambda err: 1 if err else 0)
    sys.exit(app.run())

The selected handler races against SIGINT/SIGTERM. Whichever finishes first
decides the outcome handed to the shutdown handler, whose return value is the
result of :meth:`App.run`.
"""

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence

from .exceptions import CancelledError, HandlerNotFoundError

logger = logging.getLogger(__name__)

KEY_APP_PATH = "app-path"

_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class _CancelState:
    def __init__(self) -> None:
        self.done = asyncio.Event()
        self.err: Optional[CancelledError] = None


class Context:
    """
    Execution context handed to command handlers.

    Carries read-only values (at least the program path under
    ``KEY_APP_PATH``) and a cancellation flag that is set at most once.
    """

    def __init__(
        self,
        values: Optional[dict[str, Any]] = None,
        _state: Optional[_CancelState] = None,
    ) -> None:
        self._values: dict[str, Any] = dict(values or {})
        self._state = _state or _CancelState()

    def value(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def with_value(self, key: str, value: Any) -> "Context":
        """Return a child context with one more value and the same cancellation state."""
        return Context({**self._values, key: value}, _state=self._state)

    @property
    def app_path(self) -> str:
        return self._values[KEY_APP_PATH]

    @property
    def cancelled(self) -> bool:
        return self._state.done.is_set()

    @property
    def err(self) -> Optional[CancelledError]:
        return self._state.err

    def cancel(self, signum: Optional[int] = None) -> None:
        if self._state.done.is_set():
            return
        self._state.err = CancelledError(signum)
        self._state.done.set()

    async def wait(self) -> None:
        """Block until the context is cancelled."""
        await self._state.done.wait()


def get_app_path(ctx: Context) -> str:
    return ctx.app_path


Matcher = Callable[[list[str]], bool]
Handler = Callable[[Context, list[str]], Awaitable[None]]
ShutdownHandler = Callable[[Optional[BaseException]], Any]


@dataclass
class _HandlerWrapper:
    match: Matcher
    handler: Handler


class App:
    """
    Dispatches to the first handler whose matcher accepts the arguments,
    falling back to the default handler.
    """

    def __init__(self) -> None:
        self._default_handler: Optional[Handler] = None
        self._handlers: list[_HandlerWrapper] = []
        self._shutdown_handler: ShutdownHandler = lambda err: None

    def add_default_handler(self, handler: Handler) -> None:
        self._default_handler = handler

    def add_handler(self, matcher: Matcher, handler: Handler) -> None:
        self._handlers.append(_HandlerWrapper(match=matcher, handler=handler))

    def add_sub_command(self, name: str, handler: Handler) -> None:
        """Register a handler selected when the first argument equals ``name``."""

        def match(args: list[str]) -> bool:
            return len(args) > 0 and args[0] == name

        self._handlers.append(_HandlerWrapper(match=match, handler=handler))

    def add_shutdown_handler(self, handler: ShutdownHandler) -> None:
        """
        Set the hook that receives the outcome of :meth:`run`: None on success,
        the exception raised by the handler, HandlerNotFoundError, or
        CancelledError. Its return value becomes the result of :meth:`run`.
        """
        self._shutdown_handler = handler

    def _select(self, args: list[str]) -> Optional[Handler]:
        for wrapper in self._handlers:
            if wrapper.match(args):
                return wrapper.handler
        return self._default_handler

    async def _dispatch(self, ctx: Context, args: list[str]) -> Optional[BaseException]:
        handler = self._select(args)
        if handler is None:
            return HandlerNotFoundError()

        logger.debug("Dispatching to handler %s", getattr(handler, "__name__", handler))
        try:
            await handler(ctx, args)
        except Exception as e:
            logger.debug("Handler failed: %s", e)
            return e
        return None

    def _install_signal_handlers(
        self, loop: asyncio.AbstractEventLoop, ctx: Context
    ) -> dict[signal.Signals, Any]:
        def on_signal(signum: int) -> None:
            logger.debug("Received signal %d, cancelling", signum)
            ctx.cancel(signum)

        installed = {}
        for sig in _SIGNALS:
            previous = signal.getsignal(sig)
            try:
                loop.add_signal_handler(sig, on_signal, int(sig))
            except (NotImplementedError, RuntimeError):
                # not supported on this platform or outside the main thread
                continue
            installed[sig] = previous
        return installed

    def _restore_signal_handlers(
        self, loop: asyncio.AbstractEventLoop, installed: dict[signal.Signals, Any]
    ) -> None:
        for sig, previous in installed.items():
            loop.remove_signal_handler(sig)
            # None means the handler was not installed from Python
            if previous is not None:
                signal.signal(sig, previous)

    async def run_async(self, argv: Optional[Sequence[str]] = None) -> Any:
        """
        Dispatch ``argv`` (program path first; defaults to sys.argv) and return
        the shutdown handler's result.

        SIGINT/SIGTERM handlers held before the call are restored when it returns.
        """
        argv = list(sys.argv if argv is None else argv)
        ctx = Context({KEY_APP_PATH: argv[0] if argv else ""})
        args = argv[1:]

        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop, ctx)
        task = asyncio.ensure_future(self._dispatch(ctx, args))
        cancel_wait = asyncio.ensure_future(ctx.wait())
        try:
            done, _ = await asyncio.wait(
                {task, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
            )
            if task in done:
                err = task.result()
            else:
                err = ctx.err
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
        finally:
            task.cancel()
            cancel_wait.cancel()
            self._restore_signal_handlers(loop, installed)

        return self._shutdown_handler(err)

    def run(self, argv: Optional[Sequence[str]] = None) -> Any:
        """Run :meth:`run_async` in a fresh event loop."""
        return asyncio.run(self.run_async(argv))

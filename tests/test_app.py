#!/usr/bin/env python3
"""
Tests for the App command dispatcher.

Handlers are driven through App.run, which owns its event loop, so these
tests need no async test plugin.
"""

import asyncio
import os
import signal
import sys
from dataclasses import dataclass

import pytest

from dataclass_argbinder import (
    App,
    ArgBinder,
    CancelledError,
    Context,
    HandlerNotFoundError,
    MissingValue,
    cli_field,
    get_app_path,
)
from dataclass_argbinder.app import KEY_APP_PATH


@dataclass
class ServeOptions:
    """Options for the serve sub-command."""

    port: int = cli_field("port,short=p,default=8080")
    verbose: bool = cli_field("verbose,short=v")


def _recording_app():
    """Return an app whose shutdown handler returns the outcome it received."""
    app = App()
    app.add_shutdown_handler(lambda err: err)
    return app


class TestDispatch:
    """Test suite for handler selection."""

    def test_sub_command_selected(self):
        """Test that a sub-command handler receives all arguments."""
        app = _recording_app()
        seen = {}

        async def serve(ctx, args):
            seen["args"] = args
            seen["options"] = ArgBinder(ServeOptions).parse(args[1:])

        async def other(ctx, args):
            pytest.fail("wrong handler")

        app.add_sub_command("other", other)
        app.add_sub_command("serve", serve)
        assert app.run(["prog", "serve", "-p", "9000", "-v"]) is None

        assert seen["args"] == ["serve", "-p", "9000", "-v"]
        assert seen["options"] == ServeOptions(port=9000, verbose=True)

    def test_first_matching_handler_wins(self):
        """Test that handlers are tried in registration order."""
        app = _recording_app()
        calls = []

        async def first(ctx, args):
            calls.append("first")

        async def second(ctx, args):
            calls.append("second")

        app.add_handler(lambda args: "--x" in args, first)
        app.add_handler(lambda args: True, second)
        app.run(["prog", "--x"])

        assert calls == ["first"]

    def test_default_handler(self):
        """Test the fallback when no matcher accepts the arguments."""
        app = _recording_app()
        calls = []

        async def fallback(ctx, args):
            calls.append(args)

        app.add_sub_command("serve", fallback)
        app.add_default_handler(fallback)
        app.run(["prog", "--help"])

        assert calls == [["--help"]]

    def test_sub_command_does_not_match_empty_args(self):
        """Test that a sub-command needs a first argument."""
        app = _recording_app()

        async def serve(ctx, args):
            pytest.fail("should not run")

        app.add_sub_command("serve", serve)
        assert isinstance(app.run(["prog"]), HandlerNotFoundError)

    def test_handler_not_found(self):
        """Test the sentinel outcome when nothing handles the invocation."""
        err = _recording_app().run(["prog", "anything"])
        assert isinstance(err, HandlerNotFoundError)
        assert str(err) == "handler not found"

    def test_handler_error_passed_to_shutdown(self):
        """Test that a raised exception becomes the shutdown outcome."""
        app = _recording_app()

        async def failing(ctx, args):
            ArgBinder(ServeOptions).parse(args)

        app.add_default_handler(failing)
        err = app.run(["prog", "--port"])

        assert isinstance(err, MissingValue)
        assert err.name == "port"

    def test_shutdown_result_returned(self):
        """Test that run returns whatever the shutdown handler returns."""
        app = App()

        async def ok(ctx, args):
            return None

        app.add_default_handler(ok)
        app.add_shutdown_handler(lambda err: 1 if err else 0)
        assert app.run(["prog"]) == 0

    def test_default_shutdown_returns_none(self):
        """Test that the default shutdown handler swallows the outcome."""
        assert App().run(["prog"]) is None

    def test_uses_sys_argv(self, monkeypatch):
        """Test that argv defaults to sys.argv."""
        monkeypatch.setattr("sys.argv", ["/usr/bin/tool", "serve"])
        app = _recording_app()
        seen = []

        async def serve(ctx, args):
            seen.append((get_app_path(ctx), args))

        app.add_sub_command("serve", serve)
        app.run()

        assert seen == [("/usr/bin/tool", ["serve"])]


class TestContext:
    """Test suite for the execution context."""

    def test_app_path(self):
        """Test that the program path is carried by the context."""
        app = _recording_app()
        paths = []

        async def handler(ctx, args):
            paths.append(ctx.app_path)
            paths.append(ctx.value(KEY_APP_PATH))

        app.add_default_handler(handler)
        app.run(["/opt/bin/prog"])

        assert paths == ["/opt/bin/prog", "/opt/bin/prog"]

    def test_with_value_shares_cancellation(self):
        """Test that child contexts see values and cancellation of the parent."""

        async def scenario():
            parent = Context({KEY_APP_PATH: "prog"})
            child = parent.with_value("user", "alice")
            assert child.value("user") == "alice"
            assert child.app_path == "prog"
            assert parent.value("user") is None

            parent.cancel()
            assert child.cancelled
            assert isinstance(child.err, CancelledError)

        asyncio.run(scenario())

    def test_cancel_is_idempotent(self):
        """Test that only the first cancellation is recorded."""

        async def scenario():
            ctx = Context()
            ctx.cancel(signal.SIGINT)
            ctx.cancel(signal.SIGTERM)
            return ctx.err

        err = asyncio.run(scenario())
        assert err.signum == signal.SIGINT


class TestCancellation:
    """Test suite for the handler/cancellation race."""

    def test_explicit_cancel_wins(self):
        """Test that cancelling the context ends a handler that never returns."""
        app = _recording_app()
        state = {}

        async def forever(ctx, args):
            ctx.cancel()
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                state["cancelled"] = True
                raise

        app.add_default_handler(forever)
        err = app.run(["prog"])

        assert isinstance(err, CancelledError)
        assert err.signum is None
        assert state == {"cancelled": True}

    def test_handler_finishing_first_wins(self):
        """Test that a handler completing before any signal reports its own outcome."""
        app = _recording_app()

        async def quick(ctx, args):
            raise RuntimeError("boom")

        app.add_default_handler(quick)
        err = app.run(["prog"])

        assert isinstance(err, RuntimeError)

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
    def test_sigint_cancels_handler(self):
        """Test that SIGINT is delivered as a cancellation, not KeyboardInterrupt."""
        app = _recording_app()

        async def forever(ctx, args):
            loop = asyncio.get_running_loop()
            loop.call_later(0.01, os.kill, os.getpid(), signal.SIGINT)
            await ctx.wait()
            await asyncio.sleep(3600)

        app.add_default_handler(forever)
        err = app.run(["prog"])

        assert isinstance(err, CancelledError)
        assert err.signum == signal.SIGINT

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
    def test_signal_handlers_removed_after_run(self):
        """Test that the default SIGINT behaviour is restored after run."""
        before = signal.getsignal(signal.SIGINT)

        app = _recording_app()

        async def noop(ctx, args):
            return None

        app.add_default_handler(noop)
        app.run(["prog"])

        assert signal.getsignal(signal.SIGINT) == before

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
    def test_caller_signal_handler_restored(self):
        """Test that a SIGTERM handler installed before run is put back afterwards."""

        def on_term(signum, frame):
            pass

        previous = signal.signal(signal.SIGTERM, on_term)
        try:
            app = _recording_app()

            async def noop(ctx, args):
                return None

            app.add_default_handler(noop)
            app.run(["prog"])

            assert signal.getsignal(signal.SIGTERM) is on_term
        finally:
            signal.signal(signal.SIGTERM, previous)

    def test_outer_cancellation_stops_handler(self):
        """Test that cancelling run_async itself also cancels the running handler."""
        app = _recording_app()
        state = {}

        async def forever(ctx, args):
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                state["cancelled"] = True
                raise

        app.add_default_handler(forever)

        async def scenario():
            outer = asyncio.ensure_future(app.run_async(["prog"]))
            await asyncio.sleep(0.01)
            outer.cancel()
            with pytest.raises(asyncio.CancelledError):
                await outer
            for _ in range(3):
                await asyncio.sleep(0)
            return dict(state)

        assert asyncio.run(scenario()) == {"cancelled": True}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

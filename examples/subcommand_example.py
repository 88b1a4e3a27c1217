#!/usr/bin/env python3
"""
Example demonstrating the App dispatcher with per-command option dataclasses.

    python subcommand_example.py serve --port 9000 -v
    python subcommand_example.py wait      # press Ctrl+C to cancel

The shutdown handler turns the outcome into the process exit code.
"""

import asyncio
import logging
import sys
from dataclasses import dataclass

from dataclass_argbinder import (
    App,
    ArgBinder,
    ArgsError,
    CancelledError,
    Context,
    HandlerNotFoundError,
    UInt16,
    cli_field,
    get_app_path,
)


@dataclass
class ServeOptions:
    port: UInt16 = cli_field("port,short=p,default=8080", help="Port to listen on")
    verbose: bool = cli_field("verbose,short=v", help="Enable debug logging")


async def serve(ctx: Context, args: list[str]) -> None:
    options = ArgBinder(ServeOptions).parse(args[1:])
    if options.verbose:
        logging.basicConfig(level=logging.DEBUG)
    print(f"{get_app_path(ctx)}: serving on port {options.port}")


async def wait(ctx: Context, args: list[str]) -> None:
    print("waiting for Ctrl+C ...")
    await ctx.wait()
    await asyncio.sleep(3600)


def shutdown(err) -> int:
    if err is None:
        return 0
    if isinstance(err, CancelledError):
        print("\ncancelled")
        return 130
    if isinstance(err, HandlerNotFoundError):
        print("usage: subcommand_example.py {serve,wait} [options]", file=sys.stderr)
        return 2
    print(f"error: {err}", file=sys.stderr)
    return 2 if isinstance(err, ArgsError) else 1


def main() -> int:
    app = App()
    app.add_sub_command("serve", serve)
    app.add_sub_command("wait", wait)
    app.add_shutdown_handler(shutdown)
    return app.run()


if __name__ == "__main__":
    sys.exit(main())

"""App entry-point. Creates the log table, checks the RPC node, then runs the
monitor, one log watcher per program and the FastAPI dashboard on one loop."""

import asyncio
import signal
import sys

import uvicorn

from launchwatch.classifier import Program
from launchwatch.config import settings
from launchwatch.dashboard import create_app
from launchwatch.db import init, log
from launchwatch.errors import ConnectError
from launchwatch.monitor import Monitor
from launchwatch.rpc import check_connection, mask_url
from launchwatch.watcher import watch_loop


async def main() -> int:
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()

    def _exit_handler() -> None:
        """Exit cleanly on Ctrl-C."""
        print("Received SIGINT, exiting...", flush=True)
        stop.set()

    loop.add_signal_handler(signal.SIGINT, _exit_handler)

    print(f"[DEBUG] DEBUG={settings.DEBUG}")

    await init()

    monitor = Monitor(settings)
    try:
        slot = await check_connection()
    except ConnectError as e:
        await log("ERROR", str(e))
        print(f"cannot start: {e}", file=sys.stderr, flush=True)
        return 1
    monitor.connected = True
    await log("INFO", f"connected to {mask_url(settings.RPC_HTTP)} at slot {slot}")

    server = uvicorn.Server(
        uvicorn.Config(
            create_app(monitor),
            host=settings.DASHBOARD_HOST,
            port=settings.DASHBOARD_PORT,
            log_level="warning",
        )
    )

    await monitor.start()
    tasks = [
        asyncio.create_task(watch_loop(monitor, Program.CURVE)),
        asyncio.create_task(watch_loop(monitor, Program.LAUNCHPAD)),
        asyncio.create_task(server.serve()),
    ]

    await stop.wait()
    server.should_exit = True
    for t in tasks:
        t.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await monitor.stop()
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

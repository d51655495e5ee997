"""Background runner for the ordering domain.

Starts:
- the Protean Engine, which delivers events to handlers and projectors when
  the domain runs with asynchronous event processing
- the DispatchRetryWorker, which keeps retrying courier bookings that failed

Usage:
    python src/server.py                  # Engine and dispatch retries
    python src/server.py --retries-only   # Only the dispatch retry loop
"""

import argparse
import asyncio

from protean.server.engine import Engine

from ordering.dispatch.worker import DispatchRetryWorker
from ordering.domain import ordering
from ordering.utils.logging import configure_logging


async def run(retries_only: bool = False):
    worker = DispatchRetryWorker(ordering)
    worker.start()
    try:
        if retries_only:
            while worker.running:
                await asyncio.sleep(worker.policy.poll_seconds)
        else:
            await Engine(ordering).run()
    finally:
        worker.stop()


def main():
    parser = argparse.ArgumentParser(description="Supplyline ordering engine runner")
    parser.add_argument(
        "--retries-only",
        action="store_true",
        help="Run only the dispatch retry worker, not the event Engine",
    )
    args = parser.parse_args()

    configure_logging()
    ordering.init()

    asyncio.run(run(retries_only=args.retries_only))


if __name__ == "__main__":
    main()

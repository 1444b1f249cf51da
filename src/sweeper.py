"""Periodic sweep runner for the commerce domain.

Ships pending orders that have auto-ship enabled and completes shipped
orders past the auto-completion window. Each pass is safe to re-run.

Usage:
    python src/sweeper.py --once              # Single pass, then exit
    python src/sweeper.py --interval 300      # Sweep every five minutes
"""

import argparse
import time

import structlog

logger = structlog.get_logger(__name__)


def sweep_once():
    from commerce.domain import commerce
    from commerce.sweep import run_sweep

    with commerce.domain_context():
        result = run_sweep()
    logger.info(
        "Sweep finished",
        shipped=len(result["shipped"]),
        completed=len(result["completed"]),
    )
    return result


def main():
    parser = argparse.ArgumentParser(description="Commerce sweep runner")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    parser.add_argument(
        "--interval",
        type=int,
        default=300,
        help="Seconds between sweeps (default: 300)",
    )
    args = parser.parse_args()

    from commerce.domain import commerce

    commerce.init()

    if args.once:
        sweep_once()
        return

    while True:
        try:
            sweep_once()
        except Exception:
            logger.exception("Sweep failed; will retry on next interval")
        time.sleep(args.interval)


if __name__ == "__main__":
    main()

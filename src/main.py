"""Demo entrypoint reporting a few samples into the configured metric store.

This module intentionally contains a small, end-to-end "smoke test" that:

- Loads configuration from environment.
- Configures structlog console logging.
- Reports samples that create a table, then widen it with a new tag column.

It is **not** intended to be production wiring; it is a convenient manual
integration harness.
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone

import structlog

from config import load_config
from metricsink import MetricReporter


def configure_logging(level: str = "INFO") -> None:
    """Route structlog through stdlib logging with a console renderer."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def run_demo() -> None:
    """Report CPU-like samples twice per shape so each schema fix is followed by a write."""
    configure_logging(os.getenv("METRICS_LOG_LEVEL", "INFO"))
    cfg = load_config()

    with MetricReporter(cfg.metrics) as reporter:
        key = os.getenv("DEMO_METRIC_KEY", "process_cpu_used-percent")
        shapes = [
            {"host": "localhost", "pid": 4242},
            {"host": "localhost", "pid": 4242, "zone": "a"},
        ]
        for tags in shapes:
            for _ in range(2):
                reporter.report(datetime.now(tz=timezone.utc), tags, key, 12.5)
                time.sleep(0.01)
        print(reporter.stats())


def main() -> None:
    """CLI entrypoint for running the demo with `python src/main.py`."""
    run_demo()


if __name__ == "__main__":
    main()

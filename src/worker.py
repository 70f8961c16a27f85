from __future__ import annotations

import logging
import os
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Mapping, Sequence

from src.adapters.bootstrap import build_engine
from src.app.services.route_jobs_service import RouteJobsService

logger = logging.getLogger(__name__)


def _group_by_route(
    messages: Sequence[Mapping[str, Any]],
) -> list[list[Mapping[str, Any]]]:
    groups: dict[str, list[Mapping[str, Any]]] = defaultdict(list)
    for msg in messages:
        groups[str(msg.get("route_id") or "")].append(msg)
    return list(groups.values())


def _run_group(jobs: RouteJobsService, group: Sequence[Mapping[str, Any]]) -> None:
    # Messages for one route run in order on one thread.
    for msg in group:
        try:
            jobs.run(msg)
        except Exception:
            logger.exception(
                "Route calculation job crashed",
                extra={"route_id": msg.get("route_id")},
            )


def process_batch(
    jobs: RouteJobsService,
    messages: Sequence[Mapping[str, Any]],
    *,
    executor: ThreadPoolExecutor,
) -> None:
    futures = [
        executor.submit(_run_group, jobs, group)
        for group in _group_by_route(messages)
    ]
    for future in futures:
        future.result()


def main() -> None:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

    engine = build_engine()
    if engine.jobs is None:
        raise RuntimeError("Missing ROUTE_CALC_QUEUE_URL")
    jobs = engine.jobs

    loop = os.getenv("WORKER_LOOP", "1").strip().lower() not in {"0", "false", "no"}
    concurrency = max(1, int(os.getenv("WORKER_CONCURRENCY", "4")))

    logger.info(
        "Route calculation worker started",
        extra={"backend": engine.backend.name, "concurrency": concurrency},
    )
    with ThreadPoolExecutor(max_workers=concurrency) as executor:
        while True:
            messages = jobs.queue_service.consume_request(
                max_messages=10, wait_time_s=10
            )
            if not messages:
                if not loop:
                    return
                time.sleep(0.2)
                continue

            process_batch(jobs, messages, executor=executor)


if __name__ == "__main__":
    main()

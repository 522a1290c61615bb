"""
CLI Worker Command

Run the job queue over a set of market ids and wait for all of them.
Retryable failures are re-queued up to engine.job_max_attempts.

Usage:
    oracle worker <market_id>... [--workers N] [--json]
"""

from __future__ import annotations

import logging
from argparse import Namespace

from oracle_cli.config import build_cli_service
from oracle_cli.output import EXIT_RUNTIME_ERROR, EXIT_SUCCESS, print_json
from orchestrator import JobStatus, ResolutionQueue


logger = logging.getLogger(__name__)

_OK_STATUSES = (JobStatus.COMPLETED, JobStatus.SKIPPED)


def worker_cmd(args: Namespace) -> int:
    config = args.runtime_config
    service = build_cli_service(config)
    workers = args.workers or config.engine.workers

    jobs = ResolutionQueue(service, max_attempts=config.engine.job_max_attempts)
    submitted = [jobs.submit(market_id) for market_id in args.market_ids]

    jobs.start(workers=min(workers, len(submitted)))
    try:
        jobs.join()
    finally:
        jobs.stop()

    if args.json:
        print_json([job.to_dict() for job in submitted])
    else:
        for job in submitted:
            line = f"market {job.market_id}: {job.status.value} (attempts={job.attempts})"
            if job.result is not None:
                line += f" tx={job.result.tx_hash}"
            elif job.last_error is not None:
                line += f" {job.last_error.code}: {job.last_error.message}"
            print(line)

    if all(job.status in _OK_STATUSES for job in submitted):
        return EXIT_SUCCESS
    return EXIT_RUNTIME_ERROR

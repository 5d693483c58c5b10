"""Runs independent (style, component) extraction jobs on a worker pool."""

from __future__ import annotations

import os
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .component_scanner import discover_components
from .config import RestyleConfig, load_config
from .errors import WorkerFailure
from .logging import configure_worker_logging, current_level, get_logger, job_logger
from .models import ExtractionJob, JobOutcome
from .pipeline import extract_component

logger = get_logger("coordinator")


def plan_jobs(
    config: RestyleConfig,
    styles: Optional[Sequence[str]] = None,
    components: Optional[Sequence[str]] = None,
) -> List[ExtractionJob]:
    """One job per (style, component) pair selected by config and overrides."""
    jobs: List[ExtractionJob] = []
    for style in styles or config.styles:
        names = list(components) if components else discover_components(config, style)
        for component in names:
            jobs.append(ExtractionJob(project_root=str(config.root), style=style, component=component))
    return jobs


def run_job(job: ExtractionJob) -> JobOutcome:
    """Worker entry point; only the serializable job crosses the process boundary."""
    try:
        config = load_config(Path(job.project_root))
        result = extract_component(config, job.style, job.component)
    except Exception as exc:  # noqa: BLE001 - reported to the coordinator with job context
        failure = WorkerFailure(job.style, job.component, str(exc))
        job_logger("coordinator", job.style, job.component).debug("failed", exc_info=True)
        return JobOutcome(
            style=job.style,
            component=job.component,
            ok=False,
            error=failure.message,
            exit_code=failure.exit_code,
        )
    return JobOutcome(
        style=job.style,
        component=job.component,
        ok=True,
        functions=result.functions,
        groups=result.groups,
        skipped_elements=result.skipped_elements,
    )


class Coordinator:
    """Fans jobs out to a process or thread pool and collects their outcomes.

    A failing job never stops the others; outcomes come back in job order.
    """

    def __init__(self, config: RestyleConfig, workers: Optional[int] = None, executor: Optional[str] = None) -> None:
        self.config = config
        self.workers = workers or config.workers or os.cpu_count() or 1
        self.executor = executor or config.executor

    def run(self, jobs: Iterable[ExtractionJob]) -> List[JobOutcome]:
        pending = list(jobs)
        if not pending:
            logger.info("No components to extract")
            return []
        if self.workers == 1 or len(pending) == 1:
            outcomes = [run_job(job) for job in pending]
        else:
            outcomes = self._run_pool(pending)
        for outcome in outcomes:
            self._report(outcome)
        return outcomes

    def _create_executor(self, count: int) -> Executor:
        max_workers = min(self.workers, count)
        if self.executor == "thread":
            return ThreadPoolExecutor(max_workers=max_workers)
        return ProcessPoolExecutor(
            max_workers=max_workers,
            initializer=configure_worker_logging,
            initargs=(current_level(),),
        )

    def _run_pool(self, jobs: List[ExtractionJob]) -> List[JobOutcome]:
        results: Dict[int, JobOutcome] = {}
        with self._create_executor(len(jobs)) as pool:
            futures = {pool.submit(run_job, job): index for index, job in enumerate(jobs)}
            for future in as_completed(futures):
                index = futures[future]
                job = jobs[index]
                try:
                    results[index] = future.result()
                except Exception as exc:  # noqa: BLE001 - e.g. a worker process died
                    failure = WorkerFailure(job.style, job.component, str(exc) or exc.__class__.__name__)
                    results[index] = JobOutcome(
                        style=job.style,
                        component=job.component,
                        ok=False,
                        error=failure.message,
                        exit_code=failure.exit_code,
                    )
        return [results[index] for index in range(len(jobs))]

    @staticmethod
    def _report(outcome: JobOutcome) -> None:
        log = job_logger("coordinator", outcome.style, outcome.component)
        if outcome.ok:
            log.debug("%d group(s), %d accessor(s)", outcome.groups, outcome.functions)
        else:
            log.error("failed: %s", outcome.error)


__all__ = ["Coordinator", "plan_jobs", "run_job"]

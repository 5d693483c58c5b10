"""Tests for restyle.coordinator."""

from __future__ import annotations

from restyle.coordinator import Coordinator, plan_jobs, run_job
from restyle.models import ExtractionJob
from tests._fixtures.project_builder import ProjectBuilder

CARD = """
export function Card() {
  return <div className="rounded-xl border" />
}
"""


def test_plan_jobs_expands_styles_and_components(project_builder: ProjectBuilder) -> None:
    project_builder.component("card", CARD, style="new-york")
    project_builder.component("badge", CARD, style="new-york")
    config = project_builder.config()

    jobs = plan_jobs(config, styles=["new-york"])

    assert [(job.style, job.component) for job in jobs] == [("new-york", "badge"), ("new-york", "card")]
    assert all(job.project_root == str(config.root) for job in jobs)


def test_plan_jobs_uses_component_override(project_builder: ProjectBuilder) -> None:
    config = project_builder.config()

    jobs = plan_jobs(config, components=["card"])

    assert [(job.style, job.component) for job in jobs] == [("new-york", "card"), ("default", "card")]


def test_run_job_reports_success(project_builder: ProjectBuilder) -> None:
    project_builder.component("card", CARD)
    job = ExtractionJob(project_root=str(project_builder.path()), style="new-york", component="card")

    outcome = run_job(job)

    assert outcome.ok
    assert outcome.functions == 1
    assert outcome.groups == 1
    assert (project_builder.path() / "registry/styles/new-york/card.tsx").is_file()


def test_run_job_converts_failures_into_outcomes(project_builder: ProjectBuilder) -> None:
    job = ExtractionJob(project_root=str(project_builder.path()), style="new-york", component="missing")

    outcome = run_job(job)

    assert not outcome.ok
    assert outcome.exit_code == 1
    assert "Component source not found" in (outcome.error or "")


def test_coordinator_isolates_failing_jobs(project_builder: ProjectBuilder) -> None:
    project_builder.component("card", CARD)
    project_builder.component("badge", CARD)
    config = project_builder.config()
    jobs = plan_jobs(config, styles=["new-york"], components=["card", "missing", "badge"])

    outcomes = Coordinator(config, workers=3, executor="thread").run(jobs)

    assert [outcome.component for outcome in outcomes] == ["card", "missing", "badge"]
    assert [outcome.ok for outcome in outcomes] == [True, False, True]


def test_coordinator_without_jobs(project_builder: ProjectBuilder) -> None:
    assert Coordinator(project_builder.config(), workers=2).run([]) == []

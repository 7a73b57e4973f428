"""Command-line interface for TargetTriage."""

import asyncio
import json
from pathlib import Path

import click

from target_triage.agents.orchestrator import TargetResolutionError, TriageOrchestrator
from target_triage.config import configure_logging, get_settings
from target_triage.data_sources.base_client import DataSourceError


def build_orchestrator() -> TriageOrchestrator:
    return TriageOrchestrator.from_settings(get_settings())


def _run(action):
    """Run an async action against a fresh orchestrator and close it afterwards."""

    async def runner():
        async with build_orchestrator() as orchestrator:
            return await action(orchestrator)

    return asyncio.run(runner())


@click.group()
@click.version_option(package_name="target-triage")
def main():
    """TargetTriage: Score and triage drug targets for a disease."""
    configure_logging()


@main.command()
@click.argument("genes", nargs=-1, required=True)
@click.option("--disease-id", required=True, help="Disease ID, e.g. EFO_0000685")
@click.option("--disease-name", required=True, help="Disease name, e.g. 'rheumatoid arthritis'")
@click.option("-o", "--output", type=click.Path(), help="Output file path (JSON)")
def triage(genes: tuple[str, ...], disease_id: str, disease_name: str, output: str | None):
    """Triage a batch of GENES against a disease."""
    click.echo(f"Triaging {len(genes)} targets for: {disease_name}")

    async def action(orchestrator: TriageOrchestrator):
        job_id = await orchestrator.run_batch_triage(list(genes), disease_id, disease_name)
        job = await orchestrator.wait_for_job(job_id)
        return (
            job,
            orchestrator.get_target_reports(job_id),
            orchestrator.get_triage_report(job_id),
        )

    job, reports, triage_report = _run(action)

    if triage_report is None:
        raise click.ClickException(f"Triage job {job.id} {job.status.value}: {job.error}")

    for i, report in enumerate(reports, 1):
        click.echo(
            f"  {i}. {report.target_info.symbol}: {report.verdict.label} "
            f"(score: {report.scores.composite_score:.2f})"
        )
    skipped = len(genes) - len(reports)
    if skipped:
        click.echo(f"  {skipped} target(s) could not be analyzed")

    if triage_report.executive_summary:
        click.echo("")
        click.echo(triage_report.executive_summary)

    if output:
        Path(output).write_text(
            json.dumps(
                {
                    "job": job.model_dump(mode="json"),
                    "report": triage_report.model_dump(mode="json"),
                    "targets": [r.model_dump(mode="json") for r in reports],
                },
                indent=2,
            )
        )
        click.echo(f"\nResults saved to: {output}")


@main.command()
@click.argument("gene")
@click.option("--disease-id", required=True, help="Disease ID, e.g. EFO_0000685")
@click.option("--disease-name", required=True, help="Disease name")
def target(gene: str, disease_id: str, disease_name: str):
    """Triage a single GENE against a disease."""

    async def action(orchestrator: TriageOrchestrator):
        return await orchestrator.triage_single_target(gene, disease_id, disease_name)

    try:
        report = _run(action)
    except TargetResolutionError as e:
        raise click.ClickException(str(e)) from e

    scores = report.scores
    click.echo(f"{report.target_info.symbol} ({report.target_info.ensembl_id})")
    click.echo(f"Verdict: {report.verdict.label}")
    click.echo(f"  Composite:             {scores.composite_score:.2f}")
    click.echo(f"  Genetic evidence:      {scores.genetic_evidence:.2f}")
    click.echo(f"  Tractability:          {scores.tractability:.2f}")
    click.echo(f"  Safety risk:           {scores.safety_risk:.2f}")
    click.echo(f"  Competitive landscape: {scores.competitive_landscape:.2f}")
    if report.recommendations:
        click.echo("Recommendations:")
        for rec in report.recommendations:
            click.echo(f"  - {rec}")


@main.command("search-disease")
@click.argument("query")
def search_disease(query: str):
    """Look up disease IDs matching QUERY."""

    async def action(orchestrator: TriageOrchestrator):
        return await orchestrator.search_diseases(query)

    try:
        hits = _run(action)
    except DataSourceError as e:
        raise click.ClickException(str(e)) from e
    if not hits:
        click.echo(f"No diseases found for: {query}")
        return
    for hit in hits:
        click.echo(f"  {hit.id}  {hit.name}")


if __name__ == "__main__":
    main()

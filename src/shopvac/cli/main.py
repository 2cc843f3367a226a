"""
Pod bulk deletion tool.

Do you have users of your cluster that like to leave pods hanging around?
``shopvac`` lists pods older than a threshold and, with ``--actually-delete``,
deletes them a bounded number at a time.
"""
import asyncio
import logging
from typing import Optional

import click
from kubernetes import client
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..errors import InvalidPattern, UpstreamApiError
from ..sweep.driver import SweepOptions, SweepReport, run_sweep
from ..sweep.fanout import DEFAULT_CONCURRENCY
from ..sweep.filter import DEFAULT_EXCLUDE_NAMESPACE_PATTERN, DEFAULT_OLDER_THAN_DAYS
from ..utils.kube import KubernetesConfigurationError, configure_kube_client

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def print_report(console: Console, report: SweepReport) -> None:
    """Prints the outcome of a sweep."""
    if report.dry_run:
        if report.selected:
            table = Table(title=f"Pods that would be deleted ({report.scope})")
            table.add_column("Namespace", style="cyan")
            table.add_column("Name")
            for pod in sorted(report.selected):
                table.add_row(pod.namespace, pod.name)
            console.print(table)
        console.print(
            f"[yellow]Dry run:[/yellow] {len(report.selected)} of {report.listed} "
            "pods selected, nothing was deleted."
        )
        return

    console.print(
        f"[green]Deleted {report.deleted}[/green] of {len(report.selected)} "
        f"selected pods ({report.listed} listed in {report.scope})."
    )
    for outcome in sorted(report.failed, key=lambda o: o.pod):
        console.print(
            f"[red]Failed[/red] {outcome.pod}: {outcome.status or ''} {outcome.reason}"
        )


@click.command(help="Delete pods older than a number of days.")
@click.option(
    "-n", "--namespace", type=str, default=None,
    help="Namespace to scan pods for. Scans all namespaces when omitted.",
)
@click.option(
    "-o", "--older-than", "older_than", type=click.IntRange(-128, 127),
    default=DEFAULT_OLDER_THAN_DAYS, show_default=True,
    help="Remove pods that are older than this many days.",
)
@click.option("-l", "--label-selector", type=str, default=None, help="Label selector to use.")
@click.option("-f", "--field-selector", type=str, default=None, help="Field selector to use.")
@click.option(
    "-a", "--actually-delete", is_flag=True,
    help="Delete the selected pods. Without it only a dry run is performed.",
)
@click.option(
    "-e", "--exclude-namespace-pattern", type=str,
    default=DEFAULT_EXCLUDE_NAMESPACE_PATTERN, show_default=True,
    help="Regular expression of namespaces that are never touched.",
)
@click.option(
    "-c", "--concurrency", type=click.IntRange(min=1),
    default=DEFAULT_CONCURRENCY, show_default=True,
    help="Maximum number of delete calls in flight.",
)
@click.option("--kubeconfig", "kubeconfig_path", type=str, default=None,
              help="Path to the kubeconfig file.")
@click.option("--context", type=str, default=None, help="The kubeconfig context to use.")
@click.option(
    "--log-level", type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="info", envvar="SHOPVAC_LOG", show_default=True,
)
@click.version_option(package_name="shopvac")
def main(
    namespace: Optional[str],
    older_than: int,
    label_selector: Optional[str],
    field_selector: Optional[str],
    actually_delete: bool,
    exclude_namespace_pattern: str,
    concurrency: int,
    kubeconfig_path: Optional[str],
    context: Optional[str],
    log_level: str,
) -> None:
    """Delete pods older than a number of days."""
    _configure_logging(log_level)
    console = Console()

    options = SweepOptions(
        namespace=namespace,
        older_than_days=older_than,
        label_selector=label_selector,
        field_selector=field_selector,
        actually_delete=actually_delete,
        exclude_namespace_pattern=exclude_namespace_pattern,
        concurrency=concurrency,
    )
    try:
        filter_config = options.filter_config()
    except InvalidPattern as exc:
        raise click.BadParameter(str(exc), param_hint="--exclude-namespace-pattern") from exc

    try:
        configure_kube_client(logger, kubeconfig_path=kubeconfig_path, context=context)
    except KubernetesConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    try:
        report = asyncio.run(
            run_sweep(client.CoreV1Api(), options, filter_config=filter_config)
        )
    except UpstreamApiError as exc:
        raise click.ClickException(str(exc)) from exc

    print_report(console, report)


if __name__ == "__main__":
    main()

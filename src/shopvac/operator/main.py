"""
Entry point of the shopvac-controller process.
"""
import logging
from datetime import timedelta
from typing import Optional, Tuple

import click
import kopf

from ..errors import InvalidDuration, StartupTimeout
from ..utils.kube import KubernetesConfigurationError, bootstrap_kube_client
from ..utils.time import parse_timeout

logger = logging.getLogger(__name__)

LOG_FORMATS = {
    "plain": kopf.LogFormat.PLAIN,
    "full": kopf.LogFormat.FULL,
    "json": kopf.LogFormat.JSON,
}
LOG_LEVELS = ("debug", "info", "warning", "error")
DEFAULT_LIVENESS_ENDPOINT = "http://0.0.0.0:8080/healthz"


class TimeoutParamType(click.ParamType):
    name = "duration"

    def convert(self, value, param, ctx) -> timedelta:
        if isinstance(value, timedelta):
            return value
        try:
            return parse_timeout(value)
        except InvalidDuration as exc:
            self.fail(str(exc), param, ctx)


def configure_logging(log_level: str, log_format: str) -> None:
    level = log_level.lower()
    kopf.configure(
        debug=level == "debug",
        verbose=level in ("debug", "info"),
        quiet=level in ("warning", "error"),
        log_format=LOG_FORMATS[log_format],
    )
    logging.getLogger().setLevel(getattr(logging, level.upper()))


@click.command(help="Run the PodCleaner controller.")
@click.option(
    "--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="info", envvar="SHOPVAC_LOG", show_default=True,
    help="The log level.",
)
@click.option(
    "--log-format", type=click.Choice(sorted(LOG_FORMATS), case_sensitive=False),
    default="plain", show_default=True, help="The logging format.",
)
@click.option("--kubeconfig", "kubeconfig_path", type=str, default=None,
              help="Path to the kubeconfig file.")
@click.option("--context", type=str, default=None, help="The kubeconfig context to use.")
@click.option(
    "--liveness", "liveness_endpoint", type=str, default=DEFAULT_LIVENESS_ENDPOINT,
    show_default=True, help="Admin endpoint serving the liveness probe.",
)
@click.option(
    "-n", "--namespace", "namespaces", multiple=True,
    help="Namespace to watch. Repeat for several; omit to watch the whole cluster.",
)
@click.option(
    "--timeout", type=TimeoutParamType(), default="10s", show_default=True,
    help="The amount of time to wait for the cluster connection at startup.",
)
def main(
    log_level: str,
    log_format: str,
    kubeconfig_path: Optional[str],
    context: Optional[str],
    liveness_endpoint: str,
    namespaces: Tuple[str, ...],
    timeout: timedelta,
) -> None:
    """Run the PodCleaner controller."""
    configure_logging(log_level, log_format.lower())

    try:
        bootstrap_kube_client(
            timeout, logger, kubeconfig_path=kubeconfig_path, context=context
        )
    except (StartupTimeout, KubernetesConfigurationError) as exc:
        raise click.ClickException(str(exc)) from exc

    # Registers the handlers with the default kopf registry.
    from . import operator  # noqa: F401

    kopf.run(
        clusterwide=not namespaces,
        namespaces=list(namespaces),
        liveness_endpoint=liveness_endpoint or None,
        memo=kopf.Memo(namespaces=list(namespaces), kube_client_configured=True),
        standalone=True,
    )
    logger.info("controller terminated")


if __name__ == "__main__":
    main()

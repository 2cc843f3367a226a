"""
Shared helpers for configuring the Kubernetes Python client.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import timedelta
from typing import Literal, Optional

from kubernetes import client, config as kube_config

from ..errors import API_ERRORS, StartupTimeout

ConfigSource = Literal["in-cluster", "kubeconfig"]


class KubernetesConfigurationError(RuntimeError):
    """Raised when the Kubernetes client cannot be configured."""


def _load_kubeconfig(
    logger: logging.Logger, kubeconfig_path: Optional[str], context: Optional[str]
) -> ConfigSource:
    source = kubeconfig_path or "the default kubeconfig"
    if context:
        source += f" (context {context!r})"
    try:
        kube_config.load_kube_config(config_file=kubeconfig_path, context=context)
    except kube_config.ConfigException as exc:
        message = f"Could not load Kubernetes credentials from {source}."
        logger.error("%s %s", message, exc)
        raise KubernetesConfigurationError(message) from exc
    logger.info("Using Kubernetes credentials from %s.", source)
    return "kubeconfig"


def configure_kube_client(
    logger: Optional[logging.Logger] = None,
    *,
    kubeconfig_path: Optional[str] = None,
    context: Optional[str] = None,
) -> ConfigSource:
    """
    Configure the Kubernetes client.

    With neither ``kubeconfig_path`` nor ``context`` the in-cluster service
    account is tried first and the default kubeconfig second. Either argument
    restricts the lookup to that kubeconfig.

    Returns:
        ``"in-cluster"`` or ``"kubeconfig"``, whichever was used.

    Raises:
        KubernetesConfigurationError: If no credentials could be loaded.
    """
    effective_logger = logger or logging.getLogger(__name__)

    if kubeconfig_path or context:
        return _load_kubeconfig(effective_logger, kubeconfig_path, context)

    try:
        kube_config.load_incluster_config()
    except kube_config.ConfigException as exc:
        effective_logger.debug("Not running in a cluster: %s", exc)
        return _load_kubeconfig(effective_logger, None, None)
    effective_logger.info("Using in-cluster Kubernetes configuration.")
    return "in-cluster"


def _connect(
    logger: logging.Logger,
    kubeconfig_path: Optional[str],
    context: Optional[str],
    request_timeout: float,
) -> str:
    configure_kube_client(logger, kubeconfig_path=kubeconfig_path, context=context)
    try:
        version = client.VersionApi().get_code(_request_timeout=request_timeout)
    except API_ERRORS as exc:
        raise KubernetesConfigurationError(
            f"Kubernetes API server is not reachable: {exc}"
        ) from exc
    return version.git_version


def _probe_into(future: Future, *args) -> None:
    if not future.set_running_or_notify_cancel():
        return
    try:
        future.set_result(_connect(*args))
    except Exception as exc:
        future.set_exception(exc)


def bootstrap_kube_client(
    timeout: timedelta,
    logger: Optional[logging.Logger] = None,
    *,
    kubeconfig_path: Optional[str] = None,
    context: Optional[str] = None,
) -> str:
    """
    Configure the client and probe the API server, bounded by ``timeout``.

    Returns:
        The server's git version.

    Raises:
        StartupTimeout: If the connection was not established in time.
        KubernetesConfigurationError: If the client could not be configured or
            the API server rejected the probe.
    """
    effective_logger = logger or logging.getLogger(__name__)
    seconds = timeout.total_seconds()

    # A daemon thread is not joined at interpreter exit, so a probe that
    # never returns cannot keep the process alive past the deadline.
    future: Future = Future()
    probe = threading.Thread(
        target=_probe_into,
        args=(future, effective_logger, kubeconfig_path, context, max(seconds, 0.001)),
        name="kube-bootstrap",
        daemon=True,
    )
    probe.start()
    try:
        server_version = future.result(timeout=seconds)
    except FutureTimeoutError as exc:
        future.cancel()
        raise StartupTimeout(
            f"Timed out after {seconds:g}s waiting for Kubernetes client to initialize"
        ) from exc

    effective_logger.info("Connected to Kubernetes API server %s.", server_version)
    return server_version

"""
Kubernetes operator for PodCleaner custom resources.

This module contains the operator-wide Kopf handlers. The PodCleaner handlers
are kept thin and delegate to specialized modules for:
- Child resource templates (podcleaner/resources)
- Resource reconciliation (podcleaner/reconciler.py)
- Requeue decisions (podcleaner/policy.py)
"""
import asyncio
import functools
import logging
import signal
from typing import Any, Optional, Set

import kopf
from kubernetes import client

# NOTE: Importing the podcleaner package registers its handlers with kopf.
# ruff: noqa: F401
from . import podcleaner
from ..utils.kube import KubernetesConfigurationError, configure_kube_client
from .config import config as operator_config
from .podcleaner.handler import reconcile_all_podcleaners

RECONCILE_ALL_SIGNAL = signal.SIGHUP


@kopf.on.login()
def login_from_client_configuration(**kwargs: Any) -> Optional[kopf.ConnectionInfo]:
    """
    Reuse the credentials the kubernetes client was configured with at startup,
    so that --kubeconfig and --context apply to the watch streams as well.
    """
    configuration = client.Configuration.get_default_copy()
    header = configuration.get_api_key_with_prefix("authorization") or ""
    parts = header.split(" ", 1)
    if len(parts) == 2:
        scheme, token = parts
    else:
        scheme, token = None, (parts[0] or None)

    return kopf.ConnectionInfo(
        server=configuration.host,
        ca_path=configuration.ssl_ca_cert,
        insecure=not configuration.verify_ssl,
        username=configuration.username or None,
        password=configuration.password or None,
        scheme=scheme,
        token=token,
        certificate_path=configuration.cert_file,
        private_key_path=configuration.key_file,
    )


def _reconcile_all_done(
    tasks: Set["asyncio.Task[int]"], logger: logging.Logger, task: "asyncio.Task[int]"
) -> None:
    tasks.discard(task)
    if task.cancelled():
        logger.warning("Reconcile-all was cancelled before it finished.")
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Reconcile-all failed: {error!r}")


def _trigger_reconcile_all(
    loop: asyncio.AbstractEventLoop, logger: logging.Logger, memo: kopf.Memo
) -> None:
    tasks = memo.setdefault("reconcile_all_tasks", set())
    task = loop.create_task(
        reconcile_all_podcleaners(
            custom_objects_api=client.CustomObjectsApi(),
            logger=logger,
            namespaces=memo.get("namespaces") or (),
        )
    )
    tasks.add(task)
    task.add_done_callback(functools.partial(_reconcile_all_done, tasks, logger))


@kopf.on.startup()
async def on_startup(
    settings: kopf.OperatorSettings,
    logger: logging.Logger,
    memo: kopf.Memo,
    **kwargs: Any,
) -> None:
    """
    Handle the startup of the operator.

    This sets operator-wide settings and installs the reconcile-all trigger.
    When started through ``kopf run`` instead of ``shopvac-controller`` the
    kubernetes client is configured here, before kopf logs in.
    """
    if not memo.get("kube_client_configured"):
        try:
            configure_kube_client(logger)
        except KubernetesConfigurationError as exc:
            raise kopf.PermanentError(str(exc)) from exc
        memo["kube_client_configured"] = True

    logger.info("Operator started.")

    # Unbounded by default; a restart would otherwise re-apply every
    # PodCleaner at once.
    settings.batching.worker_limit = operator_config.worker_limit

    # On SIGTERM kopf stops dispatching and waits this long for in-flight
    # reconciles to finish.
    settings.batching.exit_timeout = operator_config.drain_timeout_seconds

    # kopf posts handler logs as Kubernetes events unless told otherwise.
    settings.posting.enabled = operator_config.posting_enabled

    memo["reconcile_all_tasks"] = set()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(
            RECONCILE_ALL_SIGNAL, _trigger_reconcile_all, loop, logger, memo
        )
        memo["reconcile_all_signal"] = True
        logger.info("Send SIGHUP to reconcile all PodCleaners.")
    except (NotImplementedError, RuntimeError) as e:
        logger.warning(f"Reconcile-all signal is unavailable: {e}")


@kopf.on.cleanup()
async def on_cleanup(logger: logging.Logger, memo: kopf.Memo, **kwargs: Any) -> None:
    """
    Stops the reconcile-all trigger and drains reconcile-all runs still in flight.
    """
    if memo.get("reconcile_all_signal"):
        asyncio.get_running_loop().remove_signal_handler(RECONCILE_ALL_SIGNAL)

    tasks = set(memo.get("reconcile_all_tasks") or ())
    if tasks:
        logger.info(f"Waiting for {len(tasks)} reconcile-all run(s) to finish...")
        _, pending = await asyncio.wait(
            tasks, timeout=operator_config.drain_timeout_seconds
        )
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
    logger.info("Operator stopped.")

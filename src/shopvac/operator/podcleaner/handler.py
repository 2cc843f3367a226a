import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import kopf
from kubernetes import client

from ...crds.const import (
    CRD_API_VERSION,
    CRD_GROUP,
    CRD_KIND_PODCLEANER,
    CRD_PLURAL_PODCLEANER,
    CRD_VERSION,
    MANAGED_BY_LABEL,
    MANAGED_BY_VALUE,
)
from ...crds.podcleaner import PodCleaner
from ...errors import API_ERRORS
from ..config import config as operator_config
from .policy import RequeueDecision
from .reconciler import reconcile_podcleaner


def raise_for_decision(decision: RequeueDecision) -> None:
    """Hands a failed pass back to kopf so it retries after the short delay."""
    if decision.failed:
        raise kopf.TemporaryError(decision.reason or "reconcile failed", delay=decision.delay)


@kopf.on.create(CRD_GROUP, CRD_VERSION, CRD_PLURAL_PODCLEANER)
@kopf.on.update(CRD_GROUP, CRD_VERSION, CRD_PLURAL_PODCLEANER)
@kopf.on.resume(CRD_GROUP, CRD_VERSION, CRD_PLURAL_PODCLEANER)
async def create_or_update_podcleaner(
    body: kopf.Body,
    name: str,
    namespace: str,
    logger: logging.Logger,
    **kwargs: Any,
) -> None:
    """
    Handle the creation, update or resumption of a PodCleaner resource.
    """
    logger.info(f"Reconciling PodCleaner '{name}' in namespace '{namespace}'...")
    decision = await reconcile_podcleaner(body, logger)
    raise_for_decision(decision)


@kopf.timer(
    CRD_GROUP,
    CRD_VERSION,
    CRD_PLURAL_PODCLEANER,
    interval=operator_config.requeue_after_seconds,
    initial_delay=operator_config.requeue_after_seconds,
)
async def recheck_podcleaner(
    body: kopf.Body,
    logger: logging.Logger,
    **kwargs: Any,
) -> None:
    """
    Periodically re-applies the children so out-of-band edits are undone even
    when no event arrives.
    """
    decision = await reconcile_podcleaner(body, logger)
    raise_for_decision(decision)


def controlling_owner(meta: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Returns the PodCleaner owner reference of a generated child, if any."""
    for ref in meta.get("ownerReferences") or []:
        if (
            ref.get("apiVersion") == CRD_API_VERSION
            and ref.get("kind") == CRD_KIND_PODCLEANER
            and ref.get("controller")
        ):
            return dict(ref)
    return None


@kopf.on.event("batch", "v1", "cronjobs", labels={MANAGED_BY_LABEL: MANAGED_BY_VALUE})
async def owned_cronjob_event(
    type: Optional[str],
    meta: kopf.Meta,
    name: str,
    namespace: str,
    logger: logging.Logger,
    **kwargs: Any,
) -> None:
    """
    Reconciles the owning PodCleaner whenever one of its CronJobs changes or
    disappears, so the CronJob is put back the way the PodCleaner wants it.
    """
    owner = controlling_owner(meta)
    if owner is None:
        return

    try:
        body = await asyncio.to_thread(
            PodCleaner.get_body,
            owner["name"],
            api=client.CustomObjectsApi(),
            namespace=namespace,
        )
    except client.ApiException as e:
        if e.status == 404:
            logger.info(
                f"Owner '{owner['name']}' of CronJob '{name}' is gone; "
                "leaving the CronJob to the garbage collector."
            )
            return
        raise

    if body.get("metadata", {}).get("uid") != owner.get("uid"):
        logger.info(f"CronJob '{name}' belongs to a previous '{owner['name']}'; ignoring.")
        return

    logger.debug(f"CronJob '{name}' event {type!r}; reconciling '{owner['name']}'.")
    decision = await reconcile_podcleaner(body, logger)
    if decision.failed:
        # Event handlers are not retried by kopf; the periodic re-check covers it.
        logger.warning(f"Reconcile of '{owner['name']}' after CronJob event failed.")


@kopf.on.delete(CRD_GROUP, CRD_VERSION, CRD_PLURAL_PODCLEANER, optional=True)
async def delete_podcleaner(
    name: str, namespace: str, logger: logging.Logger, **kwargs: Any
) -> None:
    """
    Handle the deletion of a PodCleaner resource.

    The ServiceAccount, RoleBinding and CronJob are owned by the PodCleaner via
    owner references and will be garbage collected automatically.
    """
    logger.info(f"PodCleaner '{name}' in namespace '{namespace}' is being deleted.")
    logger.info("Associated ServiceAccount, RoleBinding and CronJob will be garbage collected.")


async def reconcile_all_podcleaners(
    custom_objects_api: client.CustomObjectsApi,
    logger: logging.Logger,
    namespaces: Iterable[str] = (),
) -> int:
    """
    Reconciles every PodCleaner in the watched namespaces once.

    Returns:
        The number of PodCleaners whose reconcile failed.
    """
    logger.info("Reconciling all PodCleaners...")
    scopes: List[Optional[str]] = list(namespaces) or [None]
    bodies: List[Dict[str, Any]] = []
    for scope in scopes:
        try:
            bodies += await asyncio.to_thread(
                PodCleaner.list_bodies, api=custom_objects_api, namespace=scope
            )
        except API_ERRORS as e:
            logger.error(f"Failed to list PodCleaners in {scope or 'all namespaces'}: {e}")

    decisions = await asyncio.gather(
        *(reconcile_podcleaner(body, logger) for body in bodies)
    )
    failed = sum(1 for decision in decisions if decision.failed)
    logger.info(f"Reconciled {len(bodies) - failed} of {len(bodies)} PodCleaner(s).")
    return failed

"""
Kubernetes resource reconciliation for PodCleaner resources.
"""
import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from kubernetes import client

from ...crds.podcleaner import PodCleaner
from ...errors import API_ERRORS, ConfigurationDefect, UpstreamApiError
from ..config import config as operator_config
from .policy import RequeueDecision, RequeuePolicy
from .resources.cronjob import build_cronjob
from .resources.rolebinding import build_role_binding
from .resources.serviceaccount import build_service_account

APPLY_PATCH_CONTENT_TYPE = "application/apply-patch+yaml"


def build_resources(cleaner: PodCleaner, image: str) -> Dict[str, Dict[str, Any]]:
    """
    Build the desired state of every child of a PodCleaner.

    The dictionary is ordered the way the children must be applied: the
    permissions exist before any job can run under them.

    Raises:
        ConfigurationDefect: If the PodCleaner lacks name, namespace or uid.
    """
    return {
        "service_account": build_service_account(cleaner),
        "role_binding": build_role_binding(cleaner),
        "cronjob": build_cronjob(cleaner, image),
    }


class PodCleanerReconciler:
    """
    Applies the ServiceAccount, RoleBinding and CronJob of a PodCleaner.
    """

    def __init__(
        self,
        cleaner: PodCleaner,
        image: str,
        field_manager: str,
        policy: RequeuePolicy,
        core_v1: Optional[client.CoreV1Api] = None,
        rbac_v1: Optional[client.RbacAuthorizationV1Api] = None,
        batch_v1: Optional[client.BatchV1Api] = None,
    ):
        self.cleaner = cleaner
        self.image = image
        self.field_manager = field_manager
        self.policy = policy
        self.core_v1 = core_v1 or client.CoreV1Api()
        self.rbac_v1 = rbac_v1 or client.RbacAuthorizationV1Api()
        self.batch_v1 = batch_v1 or client.BatchV1Api()

    def build_resources(self) -> Dict[str, Dict[str, Any]]:
        return build_resources(self.cleaner, self.image)

    def _apply_method(self, kind: str):
        methods = {
            "ServiceAccount": self.core_v1.patch_namespaced_service_account,
            "RoleBinding": self.rbac_v1.patch_namespaced_role_binding,
            "CronJob": self.batch_v1.patch_namespaced_cron_job,
        }
        return methods[kind]

    async def _apply(self, resource: Dict[str, Any], logger: logging.Logger) -> None:
        """Server-side apply a single child."""
        kind = resource["kind"]
        metadata = resource["metadata"]
        try:
            await asyncio.to_thread(
                self._apply_method(kind),
                name=metadata["name"],
                namespace=metadata["namespace"],
                body=resource,
                field_manager=self.field_manager,
                force=True,
                _content_type=APPLY_PATCH_CONTENT_TYPE,
            )
        except API_ERRORS as e:
            raise UpstreamApiError.from_exception(
                f"apply {kind} '{metadata['namespace']}/{metadata['name']}'", e
            ) from e
        logger.debug(f"{kind} '{metadata['name']}' applied.")

    async def reconcile_resources(
        self, resources: Dict[str, Dict[str, Any]], logger: logging.Logger
    ) -> None:
        # Stops at the first failure; the next pass starts over from the top.
        for resource in resources.values():
            await self._apply(resource, logger)

    async def reconcile(self, logger: logging.Logger) -> RequeueDecision:
        """
        Runs one reconcile pass and decides when the next one should happen.
        """
        try:
            resources = self.build_resources()
            await self.reconcile_resources(resources, logger)
        except (ConfigurationDefect, UpstreamApiError) as e:
            decision = self.policy.on_failure(e)
            logger.error(
                f"Reconcile of PodCleaner '{self.cleaner.metadata.name}' failed: {e}; "
                f"retrying in {decision.delay:g}s."
            )
            return decision

        decision = self.policy.on_success()
        logger.info(
            f"PodCleaner '{self.cleaner.name}' reconciled; "
            f"CronJob '{resources['cronjob']['metadata']['name']}' up to date."
        )
        return decision


def default_policy() -> RequeuePolicy:
    return RequeuePolicy(
        success_delay=operator_config.requeue_after_seconds,
        failure_delay=operator_config.retry_delay_seconds,
    )


async def reconcile_podcleaner(
    body: Mapping[str, Any],
    logger: logging.Logger,
    policy: Optional[RequeuePolicy] = None,
    image: Optional[str] = None,
    field_manager: Optional[str] = None,
) -> RequeueDecision:
    """
    Reconcile all Kubernetes resources for a PodCleaner.

    Args:
        body: The PodCleaner object, raw or as a kopf body
        logger: Logger instance
        policy: Requeue policy, defaults to the operator configuration
        image: Image of the clean job, defaults to the operator configuration
        field_manager: Server-side apply field manager

    Returns:
        The requeue decision for this pass
    """
    policy = policy or default_policy()
    try:
        cleaner = PodCleaner.from_body(body)
    except ConfigurationDefect as e:
        name = (body.get("metadata") or {}).get("name", "unknown")
        logger.error(f"PodCleaner '{name}' is malformed: {e}")
        return policy.on_failure(e)

    reconciler = PodCleanerReconciler(
        cleaner,
        image=image or operator_config.cleaner_image,
        field_manager=field_manager or operator_config.field_manager,
        policy=policy,
    )
    return await reconciler.reconcile(logger)

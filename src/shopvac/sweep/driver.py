"""
One sweep pass: list -> filter -> (optionally) delete -> report.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from kubernetes import client

from ..errors import API_ERRORS, UpstreamApiError
from .fanout import DEFAULT_CONCURRENCY, DeleteOutcome, delete_all
from .filter import (
    DEFAULT_EXCLUDE_NAMESPACE_PATTERN,
    DEFAULT_OLDER_THAN_DAYS,
    DeletionBatch,
    FilterConfig,
    PodCandidate,
    select_stale_pods,
)


@dataclass(frozen=True)
class SweepOptions:
    namespace: Optional[str] = None
    older_than_days: int = DEFAULT_OLDER_THAN_DAYS
    label_selector: Optional[str] = None
    field_selector: Optional[str] = None
    actually_delete: bool = False
    exclude_namespace_pattern: str = DEFAULT_EXCLUDE_NAMESPACE_PATTERN
    concurrency: int = DEFAULT_CONCURRENCY

    @property
    def scope(self) -> str:
        return self.namespace or "all namespaces"

    def filter_config(self) -> FilterConfig:
        return FilterConfig.from_pattern(
            self.exclude_namespace_pattern, self.older_than_days
        )


@dataclass(frozen=True)
class SweepReport:
    scope: str
    listed: int
    selected: DeletionBatch
    dry_run: bool
    outcomes: Tuple[DeleteOutcome, ...] = field(default_factory=tuple)

    @property
    def deleted(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.accepted)

    @property
    def failed(self) -> List[DeleteOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.accepted]


def list_pods(core_v1: client.CoreV1Api, options: SweepOptions) -> List[Any]:
    """
    Lists the pods matching the selectors in the requested scope.

    Raises:
        UpstreamApiError: If the list call fails.
    """
    selectors: Dict[str, str] = {}
    if options.label_selector:
        selectors["label_selector"] = options.label_selector
    if options.field_selector:
        selectors["field_selector"] = options.field_selector

    try:
        if options.namespace:
            pods = core_v1.list_namespaced_pod(namespace=options.namespace, **selectors)
        else:
            pods = core_v1.list_pod_for_all_namespaces(**selectors)
    except API_ERRORS as exc:
        raise UpstreamApiError.from_exception(
            f"list pods in {options.scope}", exc
        ) from exc
    return list(pods.items)


async def run_sweep(
    core_v1: client.CoreV1Api,
    options: SweepOptions,
    filter_config: Optional[FilterConfig] = None,
    now: Optional[datetime] = None,
    logger: Optional[logging.Logger] = None,
) -> SweepReport:
    """
    Runs a single sweep over ``options.scope``.

    Nothing is deleted unless ``options.actually_delete`` is set.
    """
    logger = logger or logging.getLogger(__name__)
    filter_config = filter_config or options.filter_config()

    if options.namespace:
        logger.info(f"Initialized in namespace mode: {options.namespace}")
    else:
        logger.warning("Initialized in cluster mode!")

    pods = await asyncio.to_thread(list_pods, core_v1, options)
    candidates = [PodCandidate.from_pod(pod) for pod in pods]

    now = now or datetime.now(timezone.utc)
    batch = select_stale_pods(candidates, filter_config, now)
    for candidate in candidates:
        if candidate.identity in batch:
            logger.info(
                f"Found bad pod! {candidate.identity}, "
                f"{candidate.age_days(now)} days old"
            )
    logger.info(f"Total of {len(batch)} pods to delete found.")

    if not options.actually_delete:
        logger.info("Dry run initiated! Nothing was deleted.")
        return SweepReport(
            scope=options.scope, listed=len(candidates), selected=batch, dry_run=True
        )

    logger.info("Starting deletions...")
    outcomes = await delete_all(
        core_v1, sorted(batch), concurrency_limit=options.concurrency, logger=logger
    )
    report = SweepReport(
        scope=options.scope,
        listed=len(candidates),
        selected=batch,
        dry_run=False,
        outcomes=tuple(outcomes),
    )
    logger.info(
        f"Deletion requests accepted for {report.deleted} of {len(batch)} pods."
    )
    return report


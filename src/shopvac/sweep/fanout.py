"""
Bounded-concurrency pod deletion.
"""
import asyncio
import functools
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional

from kubernetes import client

from ..errors import API_ERRORS
from .filter import PodIdentity

DEFAULT_CONCURRENCY = 10


@dataclass(frozen=True)
class DeleteOutcome:
    pod: PodIdentity
    accepted: bool
    status: Optional[int] = None
    reason: Optional[str] = None


async def _delete_pod(
    core_v1: client.CoreV1Api,
    pod: PodIdentity,
    semaphore: asyncio.Semaphore,
    executor: Executor,
    logger: logging.Logger,
) -> DeleteOutcome:
    async with semaphore:
        logger.debug(f"Deleting pod: {pod}")
        try:
            # Returns as soon as the API server accepts the request; finalizers
            # are not waited on.
            await asyncio.get_running_loop().run_in_executor(
                executor,
                functools.partial(
                    core_v1.delete_namespaced_pod,
                    name=pod.name,
                    namespace=pod.namespace,
                ),
            )
        except API_ERRORS as e:
            status = getattr(e, "status", None)
            reason = getattr(e, "reason", None) or str(e)
            if status == 404:
                logger.info(f"Pod '{pod}' already deleted.")
            else:
                logger.warning(f"Failed to delete pod '{pod}': {reason}")
            return DeleteOutcome(pod=pod, accepted=False, status=status, reason=reason)
    return DeleteOutcome(pod=pod, accepted=True)


async def delete_all(
    core_v1: client.CoreV1Api,
    batch: Iterable[PodIdentity],
    concurrency_limit: int = DEFAULT_CONCURRENCY,
    logger: Optional[logging.Logger] = None,
) -> List[DeleteOutcome]:
    """
    Issues one delete per pod with at most ``concurrency_limit`` calls in flight.

    The calls run on a pool of exactly ``concurrency_limit`` threads, so the
    limit is also what is reached whatever the default executor's size.
    A failed delete is recorded in its outcome and never cancels the others.
    There is no retry within a pass.
    """
    if concurrency_limit < 1:
        raise ValueError("concurrency_limit must be at least 1")

    pods = list(batch)
    if not pods:
        return []

    effective_logger = logger or logging.getLogger(__name__)
    semaphore = asyncio.Semaphore(concurrency_limit)
    with ThreadPoolExecutor(
        max_workers=concurrency_limit, thread_name_prefix="pod-delete"
    ) as executor:
        return list(
            await asyncio.gather(
                *(
                    _delete_pod(core_v1, pod, semaphore, executor, effective_logger)
                    for pod in pods
                )
            )
        )

"""
Selection of stale pods.

Everything here is a pure function of (pod, now, FilterConfig); the config is
built once at process start and passed in explicitly.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, FrozenSet, Iterable, Mapping, NamedTuple, Optional, Pattern

from ..errors import InvalidPattern

DEFAULT_EXCLUDE_NAMESPACE_PATTERN = "(openshift.*)|(kube.*)"
DEFAULT_OLDER_THAN_DAYS = 3

SECONDS_PER_DAY = 24 * 60 * 60


class PodIdentity(NamedTuple):
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


DeletionBatch = FrozenSet[PodIdentity]


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        timestamp = value
    else:
        # Handle 'Z' for UTC timezone explicitly for wider Python compatibility
        timestamp = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


@dataclass(frozen=True)
class PodCandidate:
    namespace: Optional[str]
    name: str
    creation_timestamp: Optional[datetime] = None

    @classmethod
    def from_pod(cls, pod: Any) -> "PodCandidate":
        """Builds a candidate from a ``V1Pod`` or a raw pod dictionary."""
        if isinstance(pod, Mapping):
            metadata = pod.get("metadata") or {}
            return cls(
                namespace=metadata.get("namespace"),
                name=metadata.get("name"),
                creation_timestamp=_parse_timestamp(metadata.get("creationTimestamp")),
            )
        metadata = pod.metadata
        return cls(
            namespace=metadata.namespace,
            name=metadata.name,
            creation_timestamp=_parse_timestamp(metadata.creation_timestamp),
        )

    @property
    def identity(self) -> PodIdentity:
        return PodIdentity(self.namespace or "", self.name)

    def age_days(self, now: datetime) -> Optional[int]:
        """Whole days since creation, truncated toward zero; None when unknown."""
        if self.creation_timestamp is None:
            return None
        return int((now - self.creation_timestamp).total_seconds() / SECONDS_PER_DAY)


@dataclass(frozen=True)
class FilterConfig:
    exclude_namespace_pattern: Pattern[str]
    older_than_days: int = DEFAULT_OLDER_THAN_DAYS

    @classmethod
    def from_pattern(
        cls,
        pattern: str = DEFAULT_EXCLUDE_NAMESPACE_PATTERN,
        older_than_days: int = DEFAULT_OLDER_THAN_DAYS,
    ) -> "FilterConfig":
        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            raise InvalidPattern(
                f"invalid namespace exclusion pattern {pattern!r}: {exc}"
            ) from exc
        return cls(exclude_namespace_pattern=compiled, older_than_days=older_than_days)


def is_excluded(namespace: str, config: FilterConfig) -> bool:
    """True if the whole namespace name matches the exclusion pattern."""
    return config.exclude_namespace_pattern.fullmatch(namespace) is not None


def is_stale(candidate: PodCandidate, config: FilterConfig, now: datetime) -> bool:
    if not candidate.namespace or not candidate.name:
        return False
    if is_excluded(candidate.namespace, config):
        return False
    if candidate.creation_timestamp is None:
        # Too young to judge.
        return False
    # Compared on the exact duration: a pod exactly N days old is kept.
    return now - candidate.creation_timestamp > timedelta(days=config.older_than_days)


def select_stale_pods(
    pods: Iterable[PodCandidate], config: FilterConfig, now: datetime
) -> DeletionBatch:
    return frozenset(pod.identity for pod in pods if is_stale(pod, config, now))

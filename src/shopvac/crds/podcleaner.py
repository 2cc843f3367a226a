from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..errors import ConfigurationDefect
from .base import BaseCustomResource, ObjectMeta
from .const import CRD_GROUP, CRD_KIND_PODCLEANER, CRD_PLURAL_PODCLEANER, CRD_VERSION

# The CRD declares deleteOlderThanDays as int8.
INT8_MIN = -128
INT8_MAX = 127

# Keys used by the first published schema, still accepted when reading.
_LEGACY_SPEC_KEYS = {
    "deleteOlderThanDays": "delete_older_than",
    "labelSelector": "label_selector",
    "fieldSelector": "field_selector",
}


def _spec_value(data: Mapping[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    return data.get(_LEGACY_SPEC_KEYS.get(key, key))


def _optional_selector(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = _spec_value(data, key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigurationDefect(f"spec.{key} must be a string, got {value!r}")
    return value


@dataclass(frozen=True)
class PodCleanerSpec:
    """Desired cleanup policy of a PodCleaner."""

    schedule: str
    delete_older_than_days: int
    label_selector: Optional[str] = None
    field_selector: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "PodCleanerSpec":
        if not data:
            raise ConfigurationDefect("MissingObjectKey: .spec")

        schedule = data.get("schedule")
        if not isinstance(schedule, str) or not schedule.strip():
            raise ConfigurationDefect("spec.schedule must be a non-empty cron expression")

        older_than = _spec_value(data, "deleteOlderThanDays")
        # bool is an int subclass; reject it explicitly.
        if isinstance(older_than, bool) or not isinstance(older_than, int):
            raise ConfigurationDefect(
                f"spec.deleteOlderThanDays must be an integer, got {older_than!r}"
            )
        if not INT8_MIN <= older_than <= INT8_MAX:
            raise ConfigurationDefect(
                f"spec.deleteOlderThanDays must fit in int8, got {older_than}"
            )

        return cls(
            schedule=schedule,
            delete_older_than_days=older_than,
            label_selector=_optional_selector(data, "labelSelector"),
            field_selector=_optional_selector(data, "fieldSelector"),
        )


@dataclass
class PodCleaner(BaseCustomResource):
    group = CRD_GROUP
    version = CRD_VERSION
    kind = CRD_KIND_PODCLEANER
    plural = CRD_PLURAL_PODCLEANER

    metadata: ObjectMeta
    spec: PodCleanerSpec
    status: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "PodCleaner":
        """
        Builds a PodCleaner from a raw API object or a kopf body.

        Raises:
            ConfigurationDefect: If the spec is missing or malformed.
        """
        return cls(
            metadata=ObjectMeta.from_dict(body.get("metadata") or {}),
            spec=PodCleanerSpec.from_dict(body.get("spec")),
            status=dict(body.get("status") or {}),
        )

    @property
    def name(self) -> str:
        return self.metadata.require("name")

    @property
    def namespace(self) -> str:
        return self.metadata.require("namespace")

    @property
    def uid(self) -> str:
        return self.metadata.require("uid")

    def owner_reference(self) -> Dict[str, Any]:
        """
        The controller owner reference placed on every generated child.

        The garbage collector deletes the children once this PodCleaner is gone.
        """
        return {
            "apiVersion": self.api_version(),
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }

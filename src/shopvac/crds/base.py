from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from kubernetes import client

from ..errors import ConfigurationDefect

T = TypeVar("T", bound="BaseCustomResource")


@dataclass
class ObjectMeta:
    name: Optional[str] = None
    namespace: Optional[str] = None
    uid: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ObjectMeta":
        """
        Keeps the fields shopvac reads and drops the rest of the server's
        metadata (resourceVersion, managedFields, ...).
        """
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names and v is not None})

    def require(self, key: str) -> str:
        """Return a metadata field, raising ConfigurationDefect when it is unset."""
        value = getattr(self, key)
        if not value:
            raise ConfigurationDefect(f"MissingObjectKey: .metadata.{key}")
        return value


class BaseCustomResource:
    """
    A namespaced custom resource read through the CustomObjectsApi.

    Objects are fetched as raw bodies: kopf handlers and the reconciler work
    on bodies, and a malformed object must still reach the reconciler so the
    failure is reported and retried.
    """

    group: str
    version: str
    kind: str
    plural: str

    metadata: ObjectMeta

    @classmethod
    def api_version(cls) -> str:
        return f"{cls.group}/{cls.version}"

    @classmethod
    def from_body(cls: Type[T], body: Mapping[str, Any]) -> T:
        raise NotImplementedError

    @classmethod
    def get_body(
        cls, name: str, *, api: client.CustomObjectsApi, namespace: str
    ) -> Dict[str, Any]:
        return api.get_namespaced_custom_object(
            group=cls.group,
            version=cls.version,
            namespace=namespace,
            plural=cls.plural,
            name=name,
        )

    @classmethod
    def list_bodies(
        cls,
        *,
        api: client.CustomObjectsApi,
        namespace: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Lists the raw objects in one namespace, or in all of them."""
        if namespace:
            result = api.list_namespaced_custom_object(
                group=cls.group,
                version=cls.version,
                namespace=namespace,
                plural=cls.plural,
            )
        else:
            result = api.list_cluster_custom_object(
                group=cls.group,
                version=cls.version,
                plural=cls.plural,
            )
        return list(result["items"])

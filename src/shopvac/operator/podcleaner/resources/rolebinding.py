from typing import Any, Dict

from ....crds.const import (
    POD_DELETION_ROLE_NAME,
    ROLE_BINDING_NAME,
    SERVICE_ACCOUNT_NAME,
)
from ....crds.podcleaner import PodCleaner
from .labels import child_metadata


def build_role_binding(cleaner: PodCleaner) -> Dict[str, Any]:
    """
    Binds the shopvac ServiceAccount to the pod deletion Role.

    The Role itself is not managed here; it must already exist in the namespace.
    """
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "RoleBinding",
        "metadata": child_metadata(cleaner, ROLE_BINDING_NAME),
        "roleRef": {
            "apiGroup": "rbac.authorization.k8s.io",
            "kind": "Role",
            "name": POD_DELETION_ROLE_NAME,
        },
        "subjects": [
            {
                "kind": "ServiceAccount",
                "name": SERVICE_ACCOUNT_NAME,
                "namespace": cleaner.namespace,
            }
        ],
    }

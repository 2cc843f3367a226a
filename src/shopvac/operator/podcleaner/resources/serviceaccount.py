from typing import Any, Dict

from ....crds.const import SERVICE_ACCOUNT_NAME
from ....crds.podcleaner import PodCleaner
from .labels import child_metadata


def build_service_account(cleaner: PodCleaner) -> Dict[str, Any]:
    """Builds the ServiceAccount the clean job runs as."""
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": child_metadata(cleaner, SERVICE_ACCOUNT_NAME),
    }

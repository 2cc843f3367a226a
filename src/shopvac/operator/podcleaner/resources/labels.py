from typing import Any, Dict

from ....crds.const import MANAGED_BY_LABEL, MANAGED_BY_VALUE, PODCLEANER_LABEL
from ....crds.podcleaner import PodCleaner


def child_metadata(cleaner: PodCleaner, name: str) -> Dict[str, Any]:
    """Metadata shared by every object generated for a PodCleaner."""
    return {
        "name": name,
        "namespace": cleaner.namespace,
        "labels": {
            MANAGED_BY_LABEL: MANAGED_BY_VALUE,
            PODCLEANER_LABEL: cleaner.name,
        },
        "ownerReferences": [cleaner.owner_reference()],
    }

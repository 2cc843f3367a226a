from typing import Any, Dict, List

from ....crds.const import CRONJOB_NAME_SUFFIX, SERVICE_ACCOUNT_NAME
from ....crds.podcleaner import PodCleaner
from .labels import child_metadata

CONTAINER_NAME = "pod-delete"


def cronjob_name(cleaner: PodCleaner) -> str:
    return f"{cleaner.name}{CRONJOB_NAME_SUFFIX}"


def build_cleaner_args(cleaner: PodCleaner) -> List[str]:
    """
    Translates the PodCleaner spec into the sweep command line.

    Unset selectors are left out entirely.
    """
    spec = cleaner.spec
    args = ["--actually-delete", "-n", cleaner.namespace]
    if spec.label_selector is not None:
        args += ["-l", spec.label_selector]
    if spec.field_selector is not None:
        args += ["-f", spec.field_selector]
    args += ["--older-than", str(spec.delete_older_than_days)]
    return args


def build_cronjob(cleaner: PodCleaner, image: str) -> Dict[str, Any]:
    """Builds the CronJob that runs the sweep on the PodCleaner's schedule."""
    return {
        "apiVersion": "batch/v1",
        "kind": "CronJob",
        "metadata": child_metadata(cleaner, cronjob_name(cleaner)),
        "spec": {
            "schedule": cleaner.spec.schedule,
            "jobTemplate": {
                "spec": {
                    "template": {
                        "spec": {
                            "serviceAccountName": SERVICE_ACCOUNT_NAME,
                            "restartPolicy": "Never",
                            "containers": [
                                {
                                    "name": CONTAINER_NAME,
                                    "image": image,
                                    "args": build_cleaner_args(cleaner),
                                }
                            ],
                        }
                    }
                }
            },
        },
    }

"""
This file contains shared fixtures for all tests.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from unittest.mock import MagicMock

import pytest
from kubernetes import client

from shopvac.crds.const import CRD_GROUP, CRD_KIND_PODCLEANER, CRD_VERSION

TEST_NAMESPACE = "ci"
TEST_PODCLEANER_NAME = "builds"
TEST_UID = "5f1c3b7e-0a1d-4e7e-9a55-3d7c1f0b2a11"
NOW = datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("shopvac.tests")


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def podcleaner_body() -> Callable[..., Dict[str, Any]]:
    """
    Provides a factory for raw PodCleaner objects as the API server returns them.
    """

    def _factory(
        name: str = TEST_PODCLEANER_NAME,
        *,
        namespace: Optional[str] = TEST_NAMESPACE,
        uid: Optional[str] = TEST_UID,
        schedule: str = "0 * * * *",
        older_than: int = 3,
        label_selector: Optional[str] = None,
        field_selector: Optional[str] = None,
    ) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {"name": name, "resourceVersion": "1"}
        if namespace is not None:
            metadata["namespace"] = namespace
        if uid is not None:
            metadata["uid"] = uid
        spec: Dict[str, Any] = {"schedule": schedule, "deleteOlderThanDays": older_than}
        if label_selector is not None:
            spec["labelSelector"] = label_selector
        if field_selector is not None:
            spec["fieldSelector"] = field_selector
        return {
            "apiVersion": f"{CRD_GROUP}/{CRD_VERSION}",
            "kind": CRD_KIND_PODCLEANER,
            "metadata": metadata,
            "spec": spec,
        }

    return _factory


@pytest.fixture
def make_pod() -> Callable[..., client.V1Pod]:
    """Provides a factory for V1Pod objects created ``age`` before NOW."""

    def _factory(
        name: str,
        namespace: str = "default",
        age: Optional[timedelta] = timedelta(days=10),
    ) -> client.V1Pod:
        created = NOW - age if age is not None else None
        return client.V1Pod(
            metadata=client.V1ObjectMeta(
                name=name, namespace=namespace, creation_timestamp=created
            )
        )

    return _factory


@pytest.fixture
def mock_core_v1() -> MagicMock:
    return MagicMock(spec=client.CoreV1Api)


@pytest.fixture
def mock_rbac_v1() -> MagicMock:
    return MagicMock(spec=client.RbacAuthorizationV1Api)


@pytest.fixture
def mock_batch_v1() -> MagicMock:
    return MagicMock(spec=client.BatchV1Api)


@pytest.fixture
def mock_k8s_api() -> MagicMock:
    """
    Provides a MagicMock for the Kubernetes CustomObjectsApi, suitable for unit tests.
    """
    return MagicMock(spec=client.CustomObjectsApi)

from unittest.mock import AsyncMock, call, patch

import pytest
from kubernetes.client import ApiException

from shopvac.crds.podcleaner import PodCleaner
from shopvac.operator.podcleaner.policy import RequeuePolicy
from shopvac.operator.podcleaner.reconciler import (
    APPLY_PATCH_CONTENT_TYPE,
    PodCleanerReconciler,
    reconcile_podcleaner,
)

IMAGE = "quay.io/wseaton/shopvac:latest"
FIELD_MANAGER = "podcleaner.kube-rt.shopvac.io"


@pytest.fixture
def reconciler_factory(mock_core_v1, mock_rbac_v1, mock_batch_v1):
    def _factory(body):
        return PodCleanerReconciler(
            PodCleaner.from_body(body),
            image=IMAGE,
            field_manager=FIELD_MANAGER,
            policy=RequeuePolicy(),
            core_v1=mock_core_v1,
            rbac_v1=mock_rbac_v1,
            batch_v1=mock_batch_v1,
        )

    return _factory


@pytest.mark.asyncio
async def test_reconcile_applies_children_in_order(
    reconciler_factory, podcleaner_body, logger, mock_core_v1, mock_rbac_v1, mock_batch_v1
):
    calls = []
    mock_core_v1.patch_namespaced_service_account.side_effect = (
        lambda **kw: calls.append(kw["body"]["kind"])
    )
    mock_rbac_v1.patch_namespaced_role_binding.side_effect = (
        lambda **kw: calls.append(kw["body"]["kind"])
    )
    mock_batch_v1.patch_namespaced_cron_job.side_effect = (
        lambda **kw: calls.append(kw["body"]["kind"])
    )

    decision = await reconciler_factory(podcleaner_body()).reconcile(logger)

    assert calls == ["ServiceAccount", "RoleBinding", "CronJob"]
    assert decision.failed is False
    assert decision.delay == 300.0


@pytest.mark.asyncio
async def test_reconcile_uses_server_side_apply(
    reconciler_factory, podcleaner_body, logger, mock_batch_v1
):
    await reconciler_factory(podcleaner_body()).reconcile(logger)

    kwargs = mock_batch_v1.patch_namespaced_cron_job.call_args.kwargs
    assert kwargs["name"] == "builds-clean-job"
    assert kwargs["namespace"] == "ci"
    assert kwargs["field_manager"] == FIELD_MANAGER
    assert kwargs["force"] is True
    assert kwargs["_content_type"] == APPLY_PATCH_CONTENT_TYPE


@pytest.mark.asyncio
async def test_role_binding_failure_stops_the_pass(
    reconciler_factory, podcleaner_body, logger, mock_core_v1, mock_rbac_v1, mock_batch_v1
):
    mock_rbac_v1.patch_namespaced_role_binding.side_effect = ApiException(
        status=403, reason="Forbidden"
    )

    decision = await reconciler_factory(podcleaner_body()).reconcile(logger)

    mock_core_v1.patch_namespaced_service_account.assert_called_once()
    mock_batch_v1.patch_namespaced_cron_job.assert_not_called()
    assert decision.failed is True
    assert decision.delay == 1.0
    assert "403" in decision.reason


@pytest.mark.asyncio
async def test_missing_namespace_fails_without_api_calls(
    reconciler_factory, podcleaner_body, logger, mock_core_v1, mock_rbac_v1, mock_batch_v1
):
    decision = await reconciler_factory(podcleaner_body(namespace=None)).reconcile(logger)

    assert decision.failed is True
    assert "namespace" in decision.reason
    mock_core_v1.patch_namespaced_service_account.assert_not_called()
    mock_rbac_v1.patch_namespaced_role_binding.assert_not_called()
    mock_batch_v1.patch_namespaced_cron_job.assert_not_called()


@pytest.mark.asyncio
async def test_repeated_reconciles_apply_identical_bodies(
    reconciler_factory, podcleaner_body, logger, mock_batch_v1
):
    body = podcleaner_body(label_selector="app=build")

    await reconciler_factory(body).reconcile(logger)
    await reconciler_factory(body).reconcile(logger)

    first, second = mock_batch_v1.patch_namespaced_cron_job.call_args_list
    assert first == second


@pytest.mark.asyncio
async def test_reconcile_podcleaner_rejects_malformed_body(logger):
    body = {"metadata": {"name": "broken", "namespace": "ci"}, "spec": {"schedule": ""}}

    with patch(
        "shopvac.operator.podcleaner.reconciler.PodCleanerReconciler"
    ) as mock_reconciler:
        decision = await reconcile_podcleaner(body, logger, policy=RequeuePolicy())

    mock_reconciler.assert_not_called()
    assert decision.failed is True
    assert decision.delay == 1.0


@pytest.mark.asyncio
async def test_reconcile_podcleaner_uses_operator_config(podcleaner_body, logger):
    with patch(
        "shopvac.operator.podcleaner.reconciler.PodCleanerReconciler"
    ) as mock_reconciler, patch(
        "shopvac.operator.podcleaner.reconciler.operator_config"
    ) as mock_config:
        mock_config.cleaner_image = "registry.example.com/shopvac:1.2"
        mock_config.field_manager = "shopvac-test"
        mock_config.requeue_after_seconds = 120.0
        mock_config.retry_delay_seconds = 5.0
        instance = mock_reconciler.return_value
        instance.reconcile = AsyncMock(return_value="decision")

        result = await reconcile_podcleaner(podcleaner_body(), logger)

    assert result == "decision"
    _, kwargs = mock_reconciler.call_args
    assert kwargs["image"] == "registry.example.com/shopvac:1.2"
    assert kwargs["field_manager"] == "shopvac-test"
    assert kwargs["policy"].success_delay == 120.0
    assert kwargs["policy"].failure_delay == 5.0
    assert instance.reconcile.call_args == call(logger)


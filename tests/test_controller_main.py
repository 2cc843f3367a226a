from datetime import timedelta
from unittest.mock import patch

import kopf
import pytest
from click.testing import CliRunner

from shopvac.errors import StartupTimeout
from shopvac.operator.main import DEFAULT_LIVENESS_ENDPOINT, main

MAIN = "shopvac.operator.main"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def patched_kopf():
    with patch(f"{MAIN}.bootstrap_kube_client") as mock_bootstrap, patch(
        f"{MAIN}.kopf.run"
    ) as mock_run, patch(f"{MAIN}.kopf.configure") as mock_configure:
        yield mock_bootstrap, mock_run, mock_configure


def test_watches_the_whole_cluster_by_default(runner, patched_kopf):
    mock_bootstrap, mock_run, mock_configure = patched_kopf

    result = runner.invoke(main, [])

    assert result.exit_code == 0, result.output
    assert mock_bootstrap.call_args.args[0] == timedelta(seconds=10)
    kwargs = mock_run.call_args.kwargs
    assert kwargs["clusterwide"] is True
    assert kwargs["namespaces"] == []
    assert kwargs["liveness_endpoint"] == DEFAULT_LIVENESS_ENDPOINT
    assert kwargs["standalone"] is True
    assert mock_configure.call_args.kwargs["log_format"] == kopf.LogFormat.PLAIN


def test_watches_selected_namespaces(runner, patched_kopf):
    mock_bootstrap, mock_run, _ = patched_kopf

    result = runner.invoke(
        main,
        ["-n", "ci", "-n", "web", "--timeout", "500ms", "--context", "staging",
         "--log-format", "json", "--liveness", ""],
    )

    assert result.exit_code == 0, result.output
    assert mock_bootstrap.call_args.args[0] == timedelta(milliseconds=500)
    assert mock_bootstrap.call_args.kwargs == {"kubeconfig_path": None, "context": "staging"}
    kwargs = mock_run.call_args.kwargs
    assert kwargs["clusterwide"] is False
    assert kwargs["namespaces"] == ["ci", "web"]
    assert kwargs["memo"].namespaces == ["ci", "web"]
    assert kwargs["memo"].kube_client_configured is True
    assert kwargs["liveness_endpoint"] is None


def test_startup_timeout_exits_before_watching(runner, patched_kopf):
    mock_bootstrap, mock_run, _ = patched_kopf
    mock_bootstrap.side_effect = StartupTimeout(
        "Timed out after 10s waiting for Kubernetes client to initialize"
    )

    result = runner.invoke(main, [])

    assert result.exit_code == 1
    assert "Timed out after 10s" in result.output
    mock_run.assert_not_called()


@pytest.mark.parametrize("timeout", ["10", "1h", "soon"])
def test_invalid_timeout_is_a_usage_error(runner, patched_kopf, timeout):
    mock_bootstrap, mock_run, _ = patched_kopf

    result = runner.invoke(main, ["--timeout", timeout])

    assert result.exit_code == 2
    mock_bootstrap.assert_not_called()
    mock_run.assert_not_called()


@pytest.mark.parametrize(
    "level, debug, verbose, quiet",
    [
        ("debug", True, True, False),
        ("info", False, True, False),
        ("warning", False, False, True),
    ],
)
def test_log_level_maps_to_kopf_flags(runner, patched_kopf, level, debug, verbose, quiet):
    _, _, mock_configure = patched_kopf

    result = runner.invoke(main, ["--log-level", level])

    assert result.exit_code == 0, result.output
    kwargs = mock_configure.call_args.kwargs
    assert (kwargs["debug"], kwargs["verbose"], kwargs["quiet"]) == (debug, verbose, quiet)

"""
Unit tests for ClusterSession.

Tests cover:
- Authentication via gcloud and kubeconfig
- Namespace listing with phase mapping and prefix filtering
- Idempotent preview deletion
"""

import base64
import subprocess
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException

from preview_reaper.config import ClusterConfig
from preview_reaper.core.cluster import ClusterSession
from preview_reaper.core.errors import ClusterAuthError, DeletionError, NamespaceListError
from preview_reaper.models.namespace import NamespacePhase


def namespace_item(name, phase):
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name),
        status=SimpleNamespace(phase=phase) if phase is not None else None,
    )


def completed(returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout="", stderr=stderr)


class TestAuthenticate:
    """Tests for ClusterSession.authenticate."""

    def test_unauthenticated_session_raises(self):
        with pytest.raises(ClusterAuthError):
            ClusterSession().core_v1

    def test_loads_kubeconfig_without_gcloud(self):
        session = ClusterSession(ClusterConfig(kubeconfig_path="/tmp/kubeconfig"))

        with patch("preview_reaper.core.cluster.k8s_config.load_kube_config") as load, \
                patch("preview_reaper.core.cluster.client.CoreV1Api") as api, \
                patch("preview_reaper.core.cluster.subprocess.run") as run:
            session.authenticate()

        load.assert_called_once_with(config_file="/tmp/kubeconfig")
        run.assert_not_called()
        assert session.core_v1 is api.return_value

    def test_fetches_credentials_with_service_account(self):
        session = ClusterSession(
            ClusterConfig(service_account_key_path="/mnt/sa.json", kubeconfig_path="/tmp/kc")
        )

        with patch("preview_reaper.core.cluster.k8s_config.load_kube_config"), \
                patch("preview_reaper.core.cluster.client.CoreV1Api"), \
                patch("preview_reaper.core.cluster.subprocess.run", return_value=completed()) as run:
            session.authenticate()

        commands = [call.args[0] for call in run.call_args_list]
        assert commands[0][:3] == ["gcloud", "auth", "activate-service-account"]
        assert commands[1][:4] == ["gcloud", "container", "clusters", "get-credentials"]
        assert run.call_args_list[1].kwargs["env"]["KUBECONFIG"] == "/tmp/kc"

    def test_gcloud_failure_is_auth_error(self):
        session = ClusterSession(ClusterConfig(service_account_key_path="/mnt/sa.json"))

        with patch(
            "preview_reaper.core.cluster.subprocess.run",
            return_value=completed(1, "invalid key"),
        ):
            with pytest.raises(ClusterAuthError, match="invalid key"):
                session.authenticate()

    def test_missing_kubeconfig_is_auth_error(self):
        session = ClusterSession()

        with patch(
            "preview_reaper.core.cluster.k8s_config.load_kube_config",
            side_effect=k8s_config.ConfigException("no config"),
        ):
            with pytest.raises(ClusterAuthError, match="no config"):
                session.authenticate()


class TestListPreviewNamespaces:
    """Tests for ClusterSession.list_preview_namespaces."""

    def test_maps_phases_and_filters_prefix(self):
        api = MagicMock()
        api.list_namespace.return_value = SimpleNamespace(
            items=[
                namespace_item("staging-b", "Terminating"),
                namespace_item("kube-system", "Active"),
                namespace_item("staging-a", "Active"),
                namespace_item("staging-c", None),
            ]
        )
        session = ClusterSession(core_v1=api)

        previews = session.list_preview_namespaces()

        assert [(p.name, p.phase) for p in previews] == [
            ("staging-a", NamespacePhase.ACTIVE),
            ("staging-b", NamespacePhase.TERMINATING),
            ("staging-c", NamespacePhase.UNKNOWN),
        ]

    def test_passes_label_selector(self):
        api = MagicMock()
        api.list_namespace.return_value = SimpleNamespace(items=[])
        session = ClusterSession(ClusterConfig(label_selector="preview=true"), core_v1=api)

        session.list_preview_namespaces()

        assert api.list_namespace.call_args.kwargs["label_selector"] == "preview=true"

    def test_api_error_is_list_error(self):
        api = MagicMock()
        api.list_namespace.side_effect = ApiException(status=500, reason="boom")

        with pytest.raises(NamespaceListError):
            ClusterSession(core_v1=api).list_preview_namespaces()


class TestReads:
    """Tests for pod and secret reads."""

    def test_missing_pod_has_no_phase(self):
        api = MagicMock()
        api.read_namespaced_pod.side_effect = ApiException(status=404)

        assert ClusterSession(core_v1=api).read_pod_phase("staging-a", "mysql-0") is None

    def test_pod_phase(self):
        api = MagicMock()
        api.read_namespaced_pod.return_value = SimpleNamespace(
            status=SimpleNamespace(phase="Running")
        )

        assert ClusterSession(core_v1=api).read_pod_phase("staging-a", "mysql-0") == "Running"

    def test_secret_value_is_decoded(self):
        api = MagicMock()
        api.read_namespaced_secret.return_value = SimpleNamespace(
            data={"mysql-password": base64.b64encode(b"s3cret").decode()}
        )

        value = ClusterSession(core_v1=api).read_secret_value(
            "staging-a", "db-password", "mysql-password"
        )

        assert value == "s3cret"

    def test_missing_secret_key_raises(self):
        api = MagicMock()
        api.read_namespaced_secret.return_value = SimpleNamespace(data={})

        with pytest.raises(KeyError):
            ClusterSession(core_v1=api).read_secret_value("staging-a", "db-password", "x")


class TestDeletePreview:
    """Tests for ClusterSession.delete_preview."""

    @pytest.fixture
    def api(self):
        api = MagicMock()
        api.read_namespace.return_value = namespace_item("staging-a", "Active")
        return api

    def test_uninstalls_release_then_deletes_namespace(self, api):
        session = ClusterSession(ClusterConfig(helm_release="gitpod"), core_v1=api)

        with patch("preview_reaper.core.cluster.subprocess.run", return_value=completed()) as run:
            assert session.delete_preview("staging-a") is True

        assert run.call_args.args[0][:3] == ["helm", "uninstall", "gitpod"]
        api.delete_namespace.assert_called_once()
        assert api.delete_namespace.call_args.args[0] == "staging-a"

    def test_missing_namespace_is_noop(self, api):
        api.read_namespace.side_effect = ApiException(status=404)

        with patch("preview_reaper.core.cluster.subprocess.run") as run:
            assert ClusterSession(core_v1=api).delete_preview("staging-a") is False

        run.assert_not_called()
        api.delete_namespace.assert_not_called()

    def test_terminating_namespace_is_noop(self, api):
        api.read_namespace.return_value = namespace_item("staging-a", "Terminating")

        with patch("preview_reaper.core.cluster.subprocess.run") as run:
            assert ClusterSession(core_v1=api).delete_preview("staging-a") is False

        run.assert_not_called()

    def test_missing_release_is_ignored(self, api):
        with patch(
            "preview_reaper.core.cluster.subprocess.run",
            return_value=completed(1, "Error: uninstall: Release not loaded: gitpod: release: not found"),
        ):
            assert ClusterSession(core_v1=api).delete_preview("staging-a") is True

        api.delete_namespace.assert_called_once()

    def test_helm_failure_raises(self, api):
        with patch(
            "preview_reaper.core.cluster.subprocess.run",
            return_value=completed(1, "connection refused"),
        ):
            with pytest.raises(DeletionError, match="connection refused"):
                ClusterSession(core_v1=api).delete_preview("staging-a")

        api.delete_namespace.assert_not_called()

    def test_namespace_gone_during_delete_is_ignored(self, api):
        api.delete_namespace.side_effect = ApiException(status=404)

        with patch("preview_reaper.core.cluster.subprocess.run", return_value=completed()):
            assert ClusterSession(core_v1=api).delete_preview("staging-a") is True

    def test_namespace_delete_error_raises(self, api):
        api.delete_namespace.side_effect = ApiException(status=403, reason="Forbidden")

        with patch("preview_reaper.core.cluster.subprocess.run", return_value=completed()):
            with pytest.raises(DeletionError, match="Forbidden"):
                ClusterSession(core_v1=api).delete_preview("staging-a")

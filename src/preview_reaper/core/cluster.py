"""
Cluster access for preview environments.

This module provides functionality to:
- Obtain credentials for the preview cluster and load them
- List preview namespaces with their lifecycle phase
- Read pod phases and secrets inside a preview namespace
- Tear down a preview (helm release and namespace)
"""

import asyncio
import base64
import logging
import os
import subprocess
from typing import Optional

import urllib3
from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException

from preview_reaper.config import ClusterConfig
from preview_reaper.core.errors import (
    ClusterAuthError,
    DeletionError,
    NamespaceListError,
)
from preview_reaper.models.namespace import NamespacePhase, PreviewNamespace

logger = logging.getLogger(__name__)


class ClusterSession:
    """Authenticated handle on the cluster that hosts preview environments."""

    def __init__(
        self,
        config: Optional[ClusterConfig] = None,
        core_v1: Optional[client.CoreV1Api] = None,
    ):
        self.config = config or ClusterConfig()
        self._core_v1 = core_v1

    @property
    def core_v1(self) -> client.CoreV1Api:
        if self._core_v1 is None:
            raise ClusterAuthError("Cluster session used before authenticate()")
        return self._core_v1

    def _command_env(self) -> dict[str, str]:
        env = dict(os.environ)
        if self.config.kubeconfig_path:
            env["KUBECONFIG"] = self.config.kubeconfig_path
        return env

    def _run_gcloud(self, args: list[str]) -> None:
        try:
            result = subprocess.run(
                ["gcloud", *args],
                capture_output=True,
                text=True,
                timeout=self.config.request_timeout_seconds * 4,
                env=self._command_env(),
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ClusterAuthError(f"gcloud {args[0]} failed: {e}") from e

        if result.returncode != 0:
            raise ClusterAuthError(
                f"gcloud {' '.join(args[:3])} failed: {result.stderr.strip()}"
            )

    def fetch_credentials(self) -> None:
        """Activate the service account and write cluster credentials."""
        logger.info(
            f"Fetching credentials for cluster {self.config.name} "
            f"({self.config.project}/{self.config.zone})"
        )
        self._run_gcloud(
            [
                "auth",
                "activate-service-account",
                "--key-file",
                str(self.config.service_account_key_path),
            ]
        )
        self._run_gcloud(
            [
                "container",
                "clusters",
                "get-credentials",
                self.config.name,
                "--zone",
                self.config.zone,
                "--project",
                self.config.project,
            ]
        )

    def authenticate(self) -> None:
        """
        Obtain a client for the preview cluster.

        Raises:
            ClusterAuthError: If credentials cannot be fetched or loaded.
        """
        if self.config.service_account_key_path:
            self.fetch_credentials()

        try:
            k8s_config.load_kube_config(config_file=self.config.kubeconfig_path)
        except (k8s_config.ConfigException, OSError) as e:
            raise ClusterAuthError(f"Cannot load kubeconfig: {e}") from e

        self._core_v1 = client.CoreV1Api()
        logger.info("Cluster session established")

    def list_preview_namespaces(self) -> list[PreviewNamespace]:
        """
        List every namespace that follows the preview naming convention.

        Raises:
            NamespaceListError: If the cluster cannot be queried.
        """
        kwargs = {"_request_timeout": self.config.request_timeout_seconds}
        if self.config.label_selector:
            kwargs["label_selector"] = self.config.label_selector

        try:
            response = self.core_v1.list_namespace(**kwargs)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise NamespaceListError(f"Cannot list namespaces: {e}") from e

        previews = []
        for item in response.items:
            name = item.metadata.name
            if not name.startswith(self.config.namespace_prefix):
                continue
            raw_phase = item.status.phase if item.status else None
            previews.append(
                PreviewNamespace(name=name, phase=NamespacePhase.from_raw(raw_phase))
            )

        return sorted(previews, key=lambda ns: ns.name)

    def read_namespace_phase(self, namespace: str) -> Optional[NamespacePhase]:
        """Current phase of a namespace, or None once it no longer exists."""
        try:
            item = self.core_v1.read_namespace(
                namespace, _request_timeout=self.config.request_timeout_seconds
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise

        return NamespacePhase.from_raw(item.status.phase if item.status else None)

    def read_pod_phase(self, namespace: str, pod_name: str) -> Optional[str]:
        """Raw phase of a pod, or None when the pod does not exist."""
        try:
            pod = self.core_v1.read_namespaced_pod(
                pod_name,
                namespace,
                _request_timeout=self.config.request_timeout_seconds,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise

        return pod.status.phase if pod.status else None

    def read_secret_value(self, namespace: str, secret_name: str, key: str) -> str:
        """Decoded value of one key of a secret."""
        secret = self.core_v1.read_namespaced_secret(
            secret_name,
            namespace,
            _request_timeout=self.config.request_timeout_seconds,
        )
        data = secret.data or {}
        if key not in data:
            raise KeyError(f"secret {secret_name} has no key {key}")

        return base64.b64decode(data[key]).decode("utf-8")

    def _uninstall_release(self, namespace: str) -> None:
        args = [
            "helm",
            "uninstall",
            self.config.helm_release,
            "--namespace",
            namespace,
        ]
        if self.config.kubeconfig_path:
            args += ["--kubeconfig", self.config.kubeconfig_path]

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.config.request_timeout_seconds * 10,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise DeletionError(namespace, f"helm uninstall failed: {e}") from e

        if result.returncode != 0:
            if "not found" in result.stderr.lower():
                logger.debug(f"No helm release {self.config.helm_release} in {namespace}")
                return
            raise DeletionError(
                namespace, f"helm uninstall failed: {result.stderr.strip()}"
            )

    def _delete_namespace(self, namespace: str) -> None:
        try:
            self.core_v1.delete_namespace(
                namespace, _request_timeout=self.config.request_timeout_seconds
            )
        except ApiException as e:
            if e.status in (404, 409):
                return
            raise DeletionError(namespace, f"namespace deletion failed: {e.reason}") from e

    def delete_preview(self, namespace: str) -> bool:
        """
        Tear down a preview environment and its namespace.

        Deleting a preview that is already gone or already terminating is a
        no-op.

        Returns:
            True if a deletion was started, False if there was nothing to do

        Raises:
            DeletionError: If the release or namespace cannot be deleted.
        """
        try:
            phase = self.read_namespace_phase(namespace)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise DeletionError(namespace, f"cannot read namespace: {e}") from e

        if phase is None or phase is NamespacePhase.TERMINATING:
            logger.info(f"Namespace {namespace} already gone or terminating")
            return False

        self._uninstall_release(namespace)
        self._delete_namespace(namespace)
        logger.info(f"Deletion of {namespace} started")
        return True

    async def delete_preview_async(self, namespace: str) -> bool:
        return await asyncio.to_thread(self.delete_preview, namespace)

"""
Configuration management for preview-reaper.

Loads configuration from TOML files in the following priority:
1. Path specified via --config flag
2. .previewreaperrc in current directory
3. .previewreaperrc.toml in current directory
4. ~/.config/preview-reaper/config.toml
"""

import logging
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

import toml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class ExpectedNamespacePolicy(str, Enum):
    """How namespaces backed by a known branch are treated when idle."""

    PROTECT_EXPECTED = "protect_expected"
    DELETE_ALL_IDLE = "delete_all_idle"


class ClusterConfig(BaseModel):
    """Configuration for the cluster hosting preview environments."""

    name: str = Field(default="core-dev", description="GKE cluster name")
    zone: str = Field(default="europe-west1-b", description="GKE cluster zone")
    project: str = Field(default="gitpod-core-dev", description="GCP project id")
    kubeconfig_path: Optional[str] = Field(
        default=None,
        description="Kubeconfig file to write credentials to and load from",
    )
    service_account_key_path: Optional[str] = Field(
        default=None,
        description="GCP service account key; when set, gcloud fetches credentials first",
    )
    label_selector: Optional[str] = Field(
        default=None,
        description="Label selector narrowing the namespace listing",
    )
    namespace_prefix: str = Field(
        default="staging-",
        description="Name prefix every preview namespace carries",
    )
    helm_release: str = Field(
        default="gitpod",
        description="Helm release installed in each preview namespace",
    )
    request_timeout_seconds: int = Field(
        default=30,
        description="Timeout for individual cluster API and CLI calls",
    )


class DatabaseConfig(BaseModel):
    """Configuration for reaching a preview environment's database."""

    pod_name: str = Field(default="mysql-0", description="Database pod name")
    secret_name: str = Field(default="db-password", description="Secret holding the password")
    secret_key: str = Field(default="mysql-password", description="Key inside the secret")
    host_template: str = Field(
        default="db.{namespace}.svc.cluster.local",
        description="Database host, formatted with the namespace",
    )
    port: int = Field(default=3306)
    user: str = Field(default="gitpod")
    database: str = Field(default="gitpod")
    connect_timeout_seconds: int = Field(default=10)
    read_timeout_seconds: int = Field(
        default=30,
        description="Upper bound for one query; ends probes abandoned at the deadline",
    )
    write_timeout_seconds: int = Field(default=30)


class ReclaimConfig(BaseModel):
    """Configuration for the reclaim decision."""

    staleness_hours: int = Field(
        default=24,
        description="Hours without activity before a preview is considered idle",
    )
    policy: ExpectedNamespacePolicy = Field(
        default=ExpectedNamespacePolicy.PROTECT_EXPECTED,
        description="Whether namespaces backed by a known branch may be deleted",
    )
    unavailable_is_idle: bool = Field(
        default=False,
        description="Treat an unreachable database as evidence of idleness",
    )
    dry_run: bool = Field(default=True, description="Plan without deleting")
    deadline_seconds: Optional[float] = Field(
        default=None,
        description="Upper bound for the activity checking phase",
    )

    @field_validator("staleness_hours")
    @classmethod
    def _positive_window(cls, value: int) -> int:
        if value < 1:
            raise ValueError("staleness_hours must be at least 1")
        return value

    @property
    def window(self) -> timedelta:
        return timedelta(hours=self.staleness_hours)


class RepositoryConfig(BaseModel):
    """Configuration for the repository whose branches back previews."""

    path: str = Field(default=".", description="Path to a clone of the repository")
    remote: str = Field(default="origin", description="Remote to list branches from")
    fetch: bool = Field(default=False, description="Fetch and prune the remote first")


class Config(BaseModel):
    """Main configuration model for preview-reaper."""

    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    reclaim: ReclaimConfig = Field(default_factory=ReclaimConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Optional explicit path to config file.

    Returns:
        Config instance with loaded or default values.
    """
    search_paths = [
        Path(config_path) if config_path else None,
        Path.cwd() / ".previewreaperrc",
        Path.cwd() / ".previewreaperrc.toml",
        Path.home() / ".config" / "preview-reaper" / "config.toml",
    ]

    for path in search_paths:
        if path and path.exists():
            try:
                data = toml.load(path)
                return Config(**data)
            except (toml.TomlDecodeError, ValidationError, OSError) as e:
                logger.warning(f"Ignoring invalid config file {path}: {e}")
                continue

    return Config()


def save_config(config: Config, path: Path) -> None:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration to save.
        path: Path to save the config file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        toml.dump(config.model_dump(mode="json", exclude_none=True), f)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.cwd() / ".previewreaperrc"

"""
Activity probes against a preview environment's database.

Each probe asks whether a row newer than the staleness window exists in one
table. A database pod that is not running yields "unavailable" signals; a
database that is running but cannot be queried raises ProbeError.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Optional

import urllib3
from kubernetes.client.rest import ApiException
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from preview_reaper.config import DatabaseConfig
from preview_reaper.core.cluster import ClusterSession
from preview_reaper.core.errors import ProbeError
from preview_reaper.models.activity import ActivitySignal, SignalKind, SignalOutcome

logger = logging.getLogger(__name__)

RUNNING_POD_PHASE = "Running"

# Table and timestamp column probed for each signal.
ACTIVITY_COLUMNS: dict[SignalKind, tuple[str, str]] = {
    SignalKind.RECENT_WORKSPACE_INSTANCE: ("d_b_workspace_instance", "creationTime"),
    SignalKind.RECENT_USER_SIGNUP: ("d_b_user", "creationDate"),
    SignalKind.RECENT_HEARTBEAT: ("d_b_workspace_instance_user", "lastSeen"),
}


def activity_query(kind: SignalKind):
    table, column = ACTIVITY_COLUMNS[kind]
    return text(
        f"SELECT 1 FROM {table} "
        f"WHERE {column} > DATE_SUB(NOW(), INTERVAL :seconds SECOND) LIMIT 1"
    )


class DatabaseProber:
    """Collects activity signals from the database inside a preview namespace."""

    def __init__(
        self,
        session: ClusterSession,
        config: Optional[DatabaseConfig] = None,
        window: timedelta = timedelta(hours=24),
        engine_factory: Callable[..., Engine] = create_engine,
    ):
        self.session = session
        self.config = config or DatabaseConfig()
        self.window = window
        self.engine_factory = engine_factory

    def connection_url(self, namespace: str, password: str) -> URL:
        return URL.create(
            "mysql+pymysql",
            username=self.config.user,
            password=password,
            host=self.config.host_template.format(namespace=namespace),
            port=self.config.port,
            database=self.config.database,
        )

    def _create_engine(self, namespace: str) -> Engine:
        password = self.session.read_secret_value(
            namespace, self.config.secret_name, self.config.secret_key
        )
        return self.engine_factory(
            self.connection_url(namespace, password),
            connect_args={
                "connect_timeout": self.config.connect_timeout_seconds,
                "read_timeout": self.config.read_timeout_seconds,
                "write_timeout": self.config.write_timeout_seconds,
            },
        )

    def _probe(self, engine: Engine, kind: SignalKind) -> ActivitySignal:
        with engine.connect() as conn:
            row = conn.execute(
                activity_query(kind),
                {"seconds": int(self.window.total_seconds())},
            ).first()

        return ActivitySignal(
            kind=kind,
            outcome=SignalOutcome.ACTIVITY if row is not None else SignalOutcome.NO_ACTIVITY,
            window=self.window,
        )

    def _unavailable(self, detail: str) -> list[ActivitySignal]:
        return [ActivitySignal.unavailable(kind, self.window, detail) for kind in SignalKind]

    async def fetch_signals(self, namespace: str) -> list[ActivitySignal]:
        """
        Probe all activity signals of a namespace concurrently.

        Args:
            namespace: Preview namespace to probe

        Returns:
            One signal per SignalKind

        Raises:
            ProbeError: If the cluster or the database cannot be queried.
        """
        try:
            pod_phase = await asyncio.to_thread(
                self.session.read_pod_phase, namespace, self.config.pod_name
            )
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise ProbeError(namespace, f"cannot read database pod: {e}") from e

        if pod_phase != RUNNING_POD_PHASE:
            detail = f"pod {self.config.pod_name} is {pod_phase or 'missing'}"
            logger.info(f"{namespace}: database unavailable ({detail})")
            return self._unavailable(detail)

        try:
            engine = await asyncio.to_thread(self._create_engine, namespace)
        except (ApiException, urllib3.exceptions.HTTPError, KeyError, ValueError) as e:
            raise ProbeError(namespace, f"cannot read database credentials: {e}") from e

        # Disposed only once every probe thread has returned its connection.
        # A cancelled check leaves the engine to the read timeout and the GC.
        results = await asyncio.gather(
            *(asyncio.to_thread(self._probe, engine, kind) for kind in SignalKind),
            return_exceptions=True,
        )
        engine.dispose()

        for result in results:
            if isinstance(result, SQLAlchemyError):
                raise ProbeError(namespace, f"database query failed: {result}") from result
            if isinstance(result, BaseException):
                raise result

        return list(results)

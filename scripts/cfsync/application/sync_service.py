from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from cfsync.domain.entities import DesiredArtifactConfig, DesiredProjectConfig, SyncResult
from cfsync.domain.errors import CloudflareAPIError
from cfsync.domain.interfaces import IOutputSink
from .artifact_publisher import ArtifactPublisher
from .project_reconciler import ProjectReconciler

log = logging.getLogger(__name__)


class SyncApplicationService:
    """
    The top-level use case: reconcile the Pages project, then publish the worker.

    Receives all dependencies via constructor injection.
    Knows about the sequence of operations but not the implementation details.
    The two steps never overlap; the project is fully reconciled before the
    worker build starts.
    """

    def __init__(self, reconciler: ProjectReconciler, publisher: ArtifactPublisher, outputs: IOutputSink) -> None:
        self._reconciler = reconciler
        self._publisher  = publisher
        self._outputs    = outputs

    async def execute(
        self,
        project: DesiredProjectConfig,
        worker: DesiredArtifactConfig | None,
        branch: str,
        secrets: dict[str, str] | None = None,
        allow_recreate: bool = False,
    ) -> SyncResult:
        """
        Run one full sync for `branch`.
        Returns a SyncResult describing what happened.

        Operator aborts (SystemExit) are not caught: they end the process.
        """
        started_at = datetime.now(tz=timezone.utc)
        pages_url  = None

        try:
            project_result = await self._reconciler.sync(project, allow_recreate)
            pages_url      = project_result.url
            self._outputs.set_output("pages-url", pages_url)

            publication = await self._publisher.publish(worker, branch, project.production_branch, secrets)
            if publication is not None:
                self._outputs.set_output("worker-url", publication.url)
                self._outputs.set_output("worker-name", publication.name)

            elapsed = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
            log.info("Sync complete | %.1fs", elapsed)
            return SyncResult(
                status       = "success",
                elapsed_secs = elapsed,
                pages_url    = pages_url,
                worker_name  = publication.name if publication else None,
                worker_url   = publication.url if publication else None,
            )
        except Exception as exc:
            elapsed = (datetime.now(tz=timezone.utc) - started_at).total_seconds()
            details = exc.errors if isinstance(exc, CloudflareAPIError) and exc.errors else None
            log.error("Error: %s", exc, exc_info=log.isEnabledFor(logging.DEBUG))
            if details:
                log.error("Details: %s", json.dumps(details, indent=2))

            return SyncResult(
                status        = "failed",
                elapsed_secs  = elapsed,
                pages_url     = pages_url,
                error_message = str(exc),
                error_details = details,
            )

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from cfsync.domain.entities import ArtifactPublication, DesiredArtifactConfig
from cfsync.domain.errors import BuildFailedError, CloudflareAPIError
from cfsync.domain.interfaces import ICommandRunner, IWorkerScripts
from .bindings import build_bindings
from .naming import get_deployment_identity, is_production

log = logging.getLogger(__name__)

EDGE_DOMAIN = "workers.dev"


class ArtifactPublisher:
    """
    Publishes the companion worker under a branch-scoped name.

    Every step is a precondition for the next one: nothing is uploaded if
    the build fails or the entry point is missing. The upload itself is a
    single upsert, so there is no create/update split here.
    """

    def __init__(
        self,
        scripts: IWorkerScripts,
        runner: ICommandRunner,
        account_id: str,
        working_dir: str,
        edge_domain: str = EDGE_DOMAIN,
    ) -> None:
        self._scripts     = scripts
        self._runner      = runner
        self._account_id  = account_id
        self._working_dir = working_dir
        self._edge_domain = edge_domain

    async def publish(
        self,
        desired: DesiredArtifactConfig | None,
        branch: str,
        production_branch: str,
        secrets: dict[str, str] | None = None,
    ) -> ArtifactPublication | None:
        """
        Build, upload and locate the worker for `branch`.
        Returns None when there is nothing to publish for this run.
        """
        if desired is None:
            log.info("No worker configuration found, skipping worker deployment.")
            return None

        production = is_production(branch, production_branch)
        if not production and desired.deploy_previews is False:
            log.info("Preview worker deployments disabled, skipping.")
            return None

        worker_name = get_deployment_identity(desired.name, branch, production_branch)

        log.info("=== Worker Deployment ===")
        log.info("Worker name: %s", worker_name)
        log.info("Entry point: %s", desired.main)
        log.info("Branch: %s (%s)", branch, "production" if production else "preview")

        if desired.build_command:
            self._run_build(desired.build_command)

        content     = self._read_script(desired.main)
        main_module = PurePosixPath(desired.main).name
        metadata    = {
            "main_module":         main_module,
            "compatibility_date":  desired.compatibility_date,
            "compatibility_flags": list(desired.compatibility_flags),
            "bindings":            [b.to_payload() for b in build_bindings(desired.bindings, secrets)],
        }
        # Names and types only; binding values may be secrets.
        log.debug("Bindings: %s", ", ".join(f"{b['name']} ({b['type']})" for b in metadata["bindings"]) or "none")

        try:
            log.info("Uploading worker script...")
            await self._scripts.upsert_script(self._account_id, worker_name, metadata, main_module, content)
            log.info("Worker script deployed successfully.")

            subdomain = await self._scripts.get_subdomain(self._account_id)
        except CloudflareAPIError as exc:
            # Structured details are reported once, by the caller.
            log.error("Worker deployment failed: %s", exc)
            raise

        worker_url = f"https://{worker_name}.{subdomain}.{self._edge_domain}"
        log.info("Worker URL: %s", worker_url)
        return ArtifactPublication(name=worker_name, url=worker_url)

    def _run_build(self, command: str) -> None:
        log.info("Running build command: %s", command)
        result = self._runner.run(command, self._working_dir)
        if not result.ok:
            log.error("Build failed: %s exited with status %d", command, result.returncode)
            raise BuildFailedError(command, result.returncode)
        log.info("Build completed successfully")

    def _read_script(self, main: str) -> str:
        script_path = Path(self._working_dir) / main
        try:
            return script_path.read_text(encoding="utf-8")
        except OSError as exc:
            log.error("Failed to read worker script at %s: %s", script_path, exc)
            raise

from __future__ import annotations

import logging
import sys

from cfsync.domain.entities import DesiredProjectConfig, ProjectSyncResult, RemoteProjectRecord, SourceKind
from cfsync.domain.errors import ProjectNotFoundError
from cfsync.domain.interfaces import IPagesProjects

log = logging.getLogger(__name__)

PAGES_DOMAIN  = "pages.dev"
DASHBOARD_URL = "https://dash.cloudflare.com"

RECREATE_REFUSED_MESSAGE = """
ERROR: Project exists as a Direct Upload project.
To migrate to GitHub integration, the project must be deleted and recreated.

To allow this, either:
  1. Run the workflow manually with "Allow recreate" checked
  2. Add "allow_recreate": true to cloudflare.json (then remove it after)

WARNING: This will delete all existing deployments and history!"""


class ProjectReconciler:
    """
    Converges a Pages project onto its declared GitHub-connected configuration.

    Decision table, keyed on what currently exists:

        absent                               → create
        present, GitHub source               → edit in place
        present, other source, no permission → abort (exit 1), nothing touched
        present, other source, permission    → delete, then create

    A project's source binding cannot be changed by an edit, so moving a
    Direct Upload project to GitHub means deleting it, and with it every
    past deployment. That only happens when the caller says so.
    """

    def __init__(self, projects: IPagesProjects, account_id: str, platform_domain: str = PAGES_DOMAIN) -> None:
        self._projects        = projects
        self._account_id      = account_id
        self._platform_domain = platform_domain

    async def sync(self, desired: DesiredProjectConfig, allow_recreate: bool) -> ProjectSyncResult:
        """Look the project up, then reconcile it."""
        log.info("=== Pages Configuration ===")
        log.info("Project: %s", desired.name)
        log.info("Repo: %s/%s", desired.repo.owner, desired.repo.name)
        log.info("Production branch: %s", desired.production_branch)

        remote = await self.fetch_remote(desired.name)
        return await self.reconcile(desired, remote, allow_recreate)

    async def fetch_remote(self, name: str) -> RemoteProjectRecord | None:
        """Return the current record, or None if the project does not exist."""
        try:
            remote = await self._projects.get_project(self._account_id, name)
        except ProjectNotFoundError:
            log.info("Project does not exist, creating...")
            return None
        log.info("Project exists, checking configuration...")
        return remote

    async def reconcile(
        self,
        desired: DesiredProjectConfig,
        remote: RemoteProjectRecord | None,
        allow_recreate: bool,
    ) -> ProjectSyncResult:
        if remote is None:
            await self._create(desired)
            log.info("Project created with GitHub integration!")
            log.info("Cloudflare will now auto-deploy on every push.")

        elif remote.source_kind is SourceKind.GITHUB:
            log.info("Updating existing GitHub-connected project...")
            await self._projects.edit_project(self._account_id, desired.name, self.edit_body(desired))
            log.info("Configuration updated successfully")

        else:
            if not allow_recreate:
                for line in RECREATE_REFUSED_MESSAGE.strip().splitlines():
                    log.error(line)
                sys.exit(1)

            log.info("Project is a %s project, deleting to recreate with GitHub source...", remote.source_kind.value)
            await self._projects.delete_project(self._account_id, desired.name)
            log.info("Project deleted, recreating with GitHub integration...")
            await self._create(desired)
            log.info("Project recreated with GitHub integration!")

        url = await self._resolve_url(desired.name)
        log.info("Pages URL: %s", url)
        log.info("Dashboard: %s/%s/pages/view/%s", DASHBOARD_URL, self._account_id, desired.name)
        return ProjectSyncResult(url=url)

    async def _create(self, desired: DesiredProjectConfig) -> None:
        await self._projects.create_project(self._account_id, self.create_body(desired))

    async def _resolve_url(self, name: str) -> str:
        # The platform assigns the subdomain, so ask for it after mutating.
        record = await self._projects.get_project(self._account_id, name)
        if record.subdomain:
            return f"https://{record.subdomain}"
        return f"https://{name}.{self._platform_domain}"

    # ------------------------------------------------------------------
    # Payload mapping: cloudflare.json vocabulary → platform vocabulary
    # ------------------------------------------------------------------

    @staticmethod
    def source_config(desired: DesiredProjectConfig) -> dict:
        preview = desired.preview
        return {
            "type": SourceKind.GITHUB.value,
            "config": {
                "owner":                          desired.repo.owner,
                "repo_name":                      desired.repo.name,
                "production_branch":              desired.production_branch,
                "deployments_enabled":            True,
                "production_deployments_enabled": True,
                "preview_deployment_setting":     "all",
                "preview_branch_includes":        list(preview.branches) if preview.branches is not None else ["*"],
                "preview_branch_excludes":        list(preview.exclude) if preview.exclude is not None else [],
            },
        }

    @staticmethod
    def build_config(desired: DesiredProjectConfig) -> dict:
        build = desired.build
        return {
            "build_command":   build.command or "",
            "destination_dir": build.output or ".",
            "root_dir":        build.root or "",
        }

    @classmethod
    def create_body(cls, desired: DesiredProjectConfig) -> dict:
        return {
            "name":              desired.name,
            "production_branch": desired.production_branch,
            "source":            cls.source_config(desired),
            "build_config":      cls.build_config(desired),
        }

    @classmethod
    def edit_body(cls, desired: DesiredProjectConfig) -> dict:
        return {
            "production_branch":  desired.production_branch,
            "source":             cls.source_config(desired),
            "build_config":       cls.build_config(desired),
            "deployment_configs": {"preview": {}, "production": {}},
        }

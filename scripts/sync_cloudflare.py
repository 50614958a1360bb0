"""
sync_cloudflare.py — Dependency Wiring (Composition Root)
---------------------------------------------------------
This file has ONE job: wire all the pieces together and run the sync.

It does NOT contain any business logic. It just:
  1. Reads configuration from environment variables (and CLI overrides)
  2. Loads cloudflare.json and applies defaults
  3. Creates concrete implementations of each interface
  4. Injects them into the classes that need them
  5. Calls the top-level use case (SyncApplicationService.execute)
  6. Reports the result and exits

This is the ONLY module that reads the process environment. Everything
below it receives branch, secrets and flags as explicit parameters.

Dependency graph (what depends on what):
                    sync_cloudflare.py  (wires everything)
                            │
                            ▼
                 SyncApplicationService ──► GitHubOutputSink
                            │
              ┌─────────────┴──────────────┐
              ▼                            ▼
      ProjectReconciler            ArtifactPublisher
              │                     │            │
              ▼                     ▼            ▼
       IPagesProjects        IWorkerScripts  ICommandRunner
              └──── CloudflareClient ───┘   (ShellCommandRunner)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import dataclass, field

import httpx

# Domain layer
from cfsync.domain.entities import SyncResult
from cfsync.domain.errors import ConfigError

# Application layer
from cfsync.application.artifact_publisher import ArtifactPublisher
from cfsync.application.bindings import to_binding_text
from cfsync.application.project_reconciler import ProjectReconciler
from cfsync.application.sync_service import SyncApplicationService

# Infrastructure layer
from cfsync.infrastructure.cloudflare_client import CloudflareClient
from cfsync.infrastructure.command_runner import ShellCommandRunner
from cfsync.infrastructure.config_loader import (
    apply_defaults,
    load_config,
    parse_artifact_config,
    parse_project_config,
    repo_info_from_slug,
)
from cfsync.infrastructure.github_output import GitHubOutputSink

LOG_FORMAT  = "%(asctime)s [%(levelname)s] %(name)s — %(message)s"
LOG_DATEFMT = "%H:%M:%S"

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Settings:
    """Everything the run needs from the outside world, read once."""
    api_token:      str
    account_id:     str
    config_path:    str
    branch:         str
    working_dir:    str
    allow_recreate: bool            = False
    repo_slug:      str | None      = None
    output_path:    str | None      = None
    secrets:        dict[str, str]  = field(default_factory=dict)


def _parse_secrets(raw: str | None) -> dict[str, str]:
    """WORKER_SECRETS holds a JSON object of name → value."""
    if not raw or not raw.strip():
        return {}
    try:
        secrets = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"WORKER_SECRETS is not valid JSON: {exc.msg}") from None
    if not isinstance(secrets, dict):
        raise ConfigError("WORKER_SECRETS must be a JSON object")
    return {str(k): to_binding_text(v) for k, v in secrets.items()}


def read_settings(args: argparse.Namespace, env: dict[str, str]) -> Settings:
    """
    Read required settings from `env`, with CLI arguments taking precedence.
    Fails fast with a clear error if anything required is missing.
    """
    api_token   = env.get("CLOUDFLARE_API_TOKEN")
    account_id  = env.get("CLOUDFLARE_ACCOUNT_ID")
    config_path = args.config or env.get("CONFIG_PATH")
    branch      = args.branch or env.get("GITHUB_HEAD_REF") or env.get("GITHUB_REF_NAME")

    if not api_token or not account_id:
        log.error("Error: CLOUDFLARE_API_TOKEN and CLOUDFLARE_ACCOUNT_ID must be set")
        sys.exit(1)

    if not config_path:
        log.error("Error: CONFIG_PATH must be set")
        sys.exit(1)

    if not branch:
        log.error("Error: branch unknown; pass --branch or set GITHUB_REF_NAME")
        sys.exit(1)

    try:
        secrets = _parse_secrets(env.get("WORKER_SECRETS"))
    except ConfigError as exc:
        log.error("Error: %s", exc)
        sys.exit(1)

    return Settings(
        api_token      = api_token,
        account_id     = account_id,
        config_path    = config_path,
        branch         = branch,
        working_dir    = args.working_dir or env.get("WORKING_DIR") or os.getcwd(),
        allow_recreate = args.allow_recreate or env.get("ALLOW_RECREATE") == "true",
        repo_slug      = env.get("GITHUB_REPOSITORY"),
        output_path    = env.get("GITHUB_OUTPUT"),
        secrets        = secrets,
    )


# ---------------------------------------------------------------------------
# Dependency wiring
# ---------------------------------------------------------------------------

async def build_and_run(settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> SyncResult:
    """
    Wires all dependencies together and executes the sync use case.

    This is the Composition Root — the only place that knows which
    concrete class implements each interface. `transport` lets tests
    replace the network without touching anything else.
    """
    repo_info = repo_info_from_slug(settings.repo_slug) or (None, None)
    try:
        config = apply_defaults(
            load_config(settings.config_path),
            settings.working_dir,
            repo_owner = repo_info[0],
            repo_name  = repo_info[1],
        )
        project = parse_project_config(config)
        worker  = parse_artifact_config(config)
    except ConfigError as exc:
        log.error("Error: %s", exc)
        return SyncResult(status="failed", elapsed_secs=0.0, error_message=str(exc))

    allow_recreate = settings.allow_recreate or project.allow_recreate

    async with httpx.AsyncClient(transport=transport) as client:
        # --- Wire the dependency graph bottom-up ---

        # Infrastructure implementations
        cloudflare = CloudflareClient(
            token  = settings.api_token,
            client = client,       # injected — CloudflareClient doesn't create this
        )
        outputs = GitHubOutputSink(settings.output_path)

        # Application services (receive infrastructure via injection)
        reconciler = ProjectReconciler(
            projects   = cloudflare,           # injected IPagesProjects
            account_id = settings.account_id,
        )
        publisher = ArtifactPublisher(
            scripts     = cloudflare,           # injected IWorkerScripts
            runner      = ShellCommandRunner(), # injected ICommandRunner
            account_id  = settings.account_id,
            working_dir = settings.working_dir,
        )

        # Top-level use case (receives application services via injection)
        sync_service = SyncApplicationService(
            reconciler = reconciler,
            publisher  = publisher,
            outputs    = outputs,   # injected IOutputSink
        )

        # --- Execute ---
        return await sync_service.execute(
            project        = project,
            worker         = worker,
            branch         = settings.branch,
            secrets        = settings.secrets,
            allow_recreate = allow_recreate,
        )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync a Cloudflare Pages project and its companion worker from cloudflare.json"
    )
    parser.add_argument("--config", help="Path to cloudflare.json (default: $CONFIG_PATH)")
    parser.add_argument("--branch", help="Branch being deployed (default: $GITHUB_HEAD_REF or $GITHUB_REF_NAME)")
    parser.add_argument("--working-dir", help="Directory builds run in (default: $WORKING_DIR or cwd)")
    parser.add_argument(
        "--allow-recreate",
        action = "store_true",
        help   = "Allow deleting a Direct Upload project to recreate it with GitHub integration",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level   = logging.DEBUG if args.verbose else logging.INFO,
        format  = LOG_FORMAT,
        datefmt = LOG_DATEFMT,
    )
    # httpx logs every request at INFO; keep that for --verbose only
    logging.getLogger("httpx").setLevel(logging.DEBUG if args.verbose else logging.WARNING)

    settings = read_settings(args, dict(os.environ))
    result   = asyncio.run(build_and_run(settings))

    # --- Report ---
    if result.status == "success":
        log.info("✅ Success | pages=%s | worker=%s | %.1fs", result.pages_url, result.worker_url or "-", result.elapsed_secs)
    else:
        log.error("❌ Failed | %s", result.error_message)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Infrastructure — cloudflare.json loading
----------------------------------------
Reads the declarative config, fills in defaults, and translates the raw
dict into the frozen domain entities. Shape validation happens HERE so the
application layer can assume well-formed input.

Minimal config is just {"name": "..."}; everything else has a default:

    production_branch  → "main"
    repo.owner/name    → from GITHUB_REPOSITORY (passed in by the caller)
    build              → npm run build → dist
    preview            → all branches, no exclusions
    worker             → enabled automatically when a worker/ folder exists
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from cfsync.domain.entities import (
    BindingSpec,
    BuildSettings,
    D1DatabaseRef,
    DesiredArtifactConfig,
    DesiredProjectConfig,
    KvNamespaceRef,
    PreviewSettings,
    R2BucketRef,
    RepoRef,
)
from cfsync.domain.errors import ConfigError

log = logging.getLogger(__name__)

WORKER_DIR   = "worker"
DEFAULT_MAIN = "worker/worker.js"

PROJECT_DEFAULTS = {
    "production_branch": "main",
    "build": {
        "command": "npm run build",
        "output":  "dist",
        "root":    "",
    },
    "preview": {
        "branches": ["*"],
        "exclude":  [],
    },
}


def load_config(path: str | Path) -> dict:
    """Parse cloudflare.json. Raises ConfigError if it is missing or not a JSON object."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return raw


def deep_merge(defaults: dict, overrides: dict) -> dict:
    """
    Recursively merge `overrides` onto `defaults` without mutating either.
    Nested dicts merge key by key; lists and scalars (None included) replace.
    """
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def compatibility_date_today() -> str:
    return datetime.now(tz=timezone.utc).date().isoformat()


def apply_defaults(
    raw: dict,
    working_dir: str | Path,
    repo_owner: str | None = None,
    repo_name: str | None = None,
) -> dict:
    """
    Return a copy of `raw` with every default filled in.
    Empty strings count as unset, except build.root where "" is the default.
    """
    result = deep_merge(PROJECT_DEFAULTS, raw)
    for section in ("build", "preview"):
        if not isinstance(result.get(section), dict):
            result[section] = copy.deepcopy(PROJECT_DEFAULTS[section])

    if not result.get("production_branch"):
        result["production_branch"] = PROJECT_DEFAULTS["production_branch"]
    for key in ("command", "output"):
        if not result["build"].get(key):
            result["build"][key] = PROJECT_DEFAULTS["build"][key]
    if result["build"].get("root") is None:
        result["build"]["root"] = ""
    if result["preview"].get("branches") is None:
        result["preview"]["branches"] = ["*"]
    if result["preview"].get("exclude") is None:
        result["preview"]["exclude"] = []

    repo = result.get("repo") if isinstance(result.get("repo"), dict) else {}
    if not repo.get("owner") and repo_owner:
        repo["owner"] = repo_owner
    if not repo.get("name") and repo_name:
        repo["name"] = repo_name
    result["repo"] = repo

    if "worker" not in result and (Path(working_dir) / WORKER_DIR).is_dir():
        log.info("Detected %s/ folder, enabling worker deployment with defaults", WORKER_DIR)
        result["worker"] = {}

    worker = result.get("worker")
    if worker is not None:
        if not isinstance(worker, dict):
            raise ConfigError("'worker' must be an object")
        if not worker.get("name"):
            worker["name"] = result.get("name")
        if not worker.get("main"):
            worker["main"] = DEFAULT_MAIN
        if not worker.get("compatibility_date"):
            worker["compatibility_date"] = compatibility_date_today()
        if worker.get("deploy_previews") is None:
            worker["deploy_previews"] = True
        # build_command and bindings stay optional: worker.js may be pre-built

    return result


def repo_info_from_slug(slug: str | None) -> tuple[str, str] | None:
    """Split "owner/name" (the GITHUB_REPOSITORY format). None if unusable."""
    if not slug or "/" not in slug:
        return None
    owner, name = slug.split("/", 1)
    return owner, name


# ---------------------------------------------------------------------------
# Raw dict → domain entities
# ---------------------------------------------------------------------------

def _require_str(value: object, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{field}' is required and must be a non-empty string")
    return value


def _str_list(value: object, field: str) -> tuple[str, ...] | None:
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{field}' must be a list of strings")
    return tuple(value)


def _refs(items: object, field: str, keys: tuple[str, str]) -> list[tuple[str, str]]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise ConfigError(f"'{field}' must be a list")
    pairs = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ConfigError(f"'{field}[{i}]' must be an object")
        pairs.append(tuple(_require_str(item.get(k), f"{field}[{i}].{k}") for k in keys))
    return pairs


def parse_project_config(cfg: dict) -> DesiredProjectConfig:
    repo    = cfg.get("repo") or {}
    build   = cfg.get("build") or {}
    preview = cfg.get("preview") or {}

    return DesiredProjectConfig(
        name              = _require_str(cfg.get("name"), "name"),
        repo              = RepoRef(
            owner = _require_str(repo.get("owner"), "repo.owner"),
            name  = _require_str(repo.get("name"), "repo.name"),
        ),
        production_branch = _require_str(cfg.get("production_branch"), "production_branch"),
        build             = BuildSettings(
            command = build.get("command"),
            output  = build.get("output"),
            root    = build.get("root"),
        ),
        preview           = PreviewSettings(
            branches = _str_list(preview.get("branches"), "preview.branches"),
            exclude  = _str_list(preview.get("exclude"), "preview.exclude"),
        ),
        allow_recreate    = cfg.get("allow_recreate") is True,
    )


def parse_binding_spec(raw: dict | None) -> BindingSpec:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("'worker.bindings' must be an object")
    env = raw.get("environment_variables") or {}
    if not isinstance(env, dict):
        raise ConfigError("'worker.bindings.environment_variables' must be an object")

    return BindingSpec(
        environment_variables = dict(env),
        kv_namespaces = tuple(
            KvNamespaceRef(binding=b, id=i)
            for b, i in _refs(raw.get("kv_namespaces"), "worker.bindings.kv_namespaces", ("binding", "id"))
        ),
        d1_databases  = tuple(
            D1DatabaseRef(binding=b, database_id=i)
            for b, i in _refs(raw.get("d1_databases"), "worker.bindings.d1_databases", ("binding", "database_id"))
        ),
        r2_buckets    = tuple(
            R2BucketRef(binding=b, bucket_name=n)
            for b, n in _refs(raw.get("r2_buckets"), "worker.bindings.r2_buckets", ("binding", "bucket_name"))
        ),
    )


def parse_artifact_config(cfg: dict) -> DesiredArtifactConfig | None:
    """None when the config declares no worker."""
    worker = cfg.get("worker")
    if worker is None:
        return None

    return DesiredArtifactConfig(
        name                = _require_str(worker.get("name"), "worker.name"),
        main                = _require_str(worker.get("main"), "worker.main"),
        compatibility_date  = _require_str(worker.get("compatibility_date"), "worker.compatibility_date"),
        build_command       = worker.get("build_command") or None,
        compatibility_flags = _str_list(worker.get("compatibility_flags"), "worker.compatibility_flags") or (),
        deploy_previews     = worker.get("deploy_previews") is not False,
        bindings            = parse_binding_spec(worker.get("bindings")),
    )

"""Tests for cloudflare.json loading, defaults and parsing."""

from __future__ import annotations

import json
import re

import pytest

from cfsync.domain.entities import D1DatabaseRef, KvNamespaceRef, R2BucketRef
from cfsync.domain.errors import ConfigError
from cfsync.infrastructure.config_loader import (
    apply_defaults,
    deep_merge,
    load_config,
    parse_artifact_config,
    parse_project_config,
    repo_info_from_slug,
)


class TestDeepMerge:
    def test_simple(self):
        assert deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_nested(self):
        assert deep_merge({"a": {"b": 1, "c": 2}, "d": 3}, {"a": {"c": 5}}) == {"a": {"b": 1, "c": 5}, "d": 3}

    def test_lists_replaced(self):
        assert deep_merge({"arr": [1, 2, 3]}, {"arr": [4, 5]}) == {"arr": [4, 5]}

    def test_empty_sides(self):
        assert deep_merge({"a": 1, "b": {"c": 2}}, {}) == {"a": 1, "b": {"c": 2}}
        assert deep_merge({}, {"a": 1, "b": {"c": 2}}) == {"a": 1, "b": {"c": 2}}

    def test_none_overrides(self):
        assert deep_merge({"a": 1, "b": 2}, {"a": None}) == {"a": None, "b": 2}

    def test_inputs_not_mutated(self):
        defaults, overrides = {"a": {"b": 1}}, {"a": {"c": 2}}
        deep_merge(defaults, overrides)
        assert defaults == {"a": {"b": 1}}
        assert overrides == {"a": {"c": 2}}


class TestApplyDefaults:
    def test_minimal_config(self, tmp_path):
        result = apply_defaults({"name": "my-app"}, tmp_path)

        assert result["production_branch"] == "main"
        assert result["build"] == {"command": "npm run build", "output": "dist", "root": ""}
        assert result["preview"] == {"branches": ["*"], "exclude": []}
        assert "worker" not in result

    def test_preserves_overrides(self, tmp_path):
        raw = {"name": "my-app", "production_branch": "master", "build": {"command": "yarn build", "output": "build"}}
        result = apply_defaults(raw, tmp_path)

        assert result["production_branch"] == "master"
        assert result["build"] == {"command": "yarn build", "output": "build", "root": ""}

    def test_repo_from_caller(self, tmp_path):
        result = apply_defaults({"name": "my-app"}, tmp_path, repo_owner="myorg", repo_name="myrepo")
        assert result["repo"] == {"owner": "myorg", "name": "myrepo"}

    def test_explicit_repo_wins(self, tmp_path):
        raw = {"name": "my-app", "repo": {"owner": "explicit-owner", "name": "explicit-repo"}}
        result = apply_defaults(raw, tmp_path, repo_owner="myorg", repo_name="myrepo")
        assert result["repo"] == {"owner": "explicit-owner", "name": "explicit-repo"}

    def test_worker_folder_enables_worker(self, worker_dir):
        result = apply_defaults({"name": "my-app"}, worker_dir)

        assert result["worker"]["name"] == "my-app"
        assert result["worker"]["main"] == "worker/worker.js"
        assert result["worker"]["deploy_previews"] is True
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", result["worker"]["compatibility_date"])
        assert "build_command" not in result["worker"]

    def test_explicit_worker_keeps_values(self, tmp_path):
        raw = {"name": "my-app", "worker": {"main": "custom/worker.js", "deploy_previews": False}}
        result = apply_defaults(raw, tmp_path)

        assert result["worker"]["main"] == "custom/worker.js"
        assert result["worker"]["deploy_previews"] is False
        assert result["worker"]["name"] == "my-app"

    def test_empty_preview_lists_are_kept(self, tmp_path):
        result = apply_defaults({"name": "my-app", "preview": {"branches": [], "exclude": []}}, tmp_path)
        assert result["preview"] == {"branches": [], "exclude": []}

    def test_raw_config_not_mutated(self, tmp_path):
        raw = {"name": "my-app", "worker": {}}
        apply_defaults(raw, tmp_path)
        assert raw == {"name": "my-app", "worker": {}}


class TestLoadConfig:
    def test_reads_json(self, tmp_path):
        path = tmp_path / "cloudflare.json"
        path.write_text(json.dumps({"name": "my-app"}), encoding="utf-8")
        assert load_config(path) == {"name": "my-app"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "cloudflare.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "cloudflare.json"
        path.write_text("{name: ", encoding="utf-8")
        with pytest.raises(ConfigError, match="not valid JSON"):
            load_config(path)

    def test_non_object(self, tmp_path):
        path = tmp_path / "cloudflare.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ConfigError, match="JSON object"):
            load_config(path)


class TestParsing:
    def full_config(self, tmp_path) -> dict:
        return apply_defaults({
            "name": "my-app",
            "repo": {"owner": "myorg", "name": "myrepo"},
            "allow_recreate": True,
            "worker": {
                "name": "api",
                "build_command": "npm run build:worker",
                "compatibility_date": "2024-01-01",
                "compatibility_flags": ["nodejs_compat"],
                "bindings": {
                    "environment_variables": {"PORT": 3000},
                    "kv_namespaces": [{"binding": "KV", "id": "kv-id"}],
                    "d1_databases": [{"binding": "DB", "database_id": "db-id"}],
                    "r2_buckets": [{"binding": "R2", "bucket_name": "bucket"}],
                },
            },
        }, tmp_path)

    def test_project(self, tmp_path):
        project = parse_project_config(self.full_config(tmp_path))

        assert project.name == "my-app"
        assert project.repo.owner == "myorg"
        assert project.build.command == "npm run build"
        assert project.preview.branches == ("*",)
        assert project.allow_recreate is True

    def test_artifact(self, tmp_path):
        worker = parse_artifact_config(self.full_config(tmp_path))

        assert worker.name == "api"
        assert worker.build_command == "npm run build:worker"
        assert worker.compatibility_flags == ("nodejs_compat",)
        assert worker.bindings.environment_variables == {"PORT": 3000}
        assert worker.bindings.kv_namespaces == (KvNamespaceRef("KV", "kv-id"),)
        assert worker.bindings.d1_databases == (D1DatabaseRef("DB", "db-id"),)
        assert worker.bindings.r2_buckets == (R2BucketRef("R2", "bucket"),)

    def test_no_worker(self, tmp_path):
        assert parse_artifact_config(apply_defaults({"name": "my-app"}, tmp_path)) is None

    def test_allow_recreate_defaults_off(self, tmp_path):
        cfg = apply_defaults({"name": "my-app", "repo": {"owner": "o", "name": "r"}}, tmp_path)
        assert parse_project_config(cfg).allow_recreate is False

    @pytest.mark.parametrize("raw, field", [
        ({"repo": {"owner": "o", "name": "r"}}, "'name'"),
        ({"name": "my-app", "repo": {"name": "r"}}, "'repo.owner'"),
        ({"name": "my-app", "repo": {"owner": "o"}}, "'repo.name'"),
    ])
    def test_missing_required_fields(self, tmp_path, raw, field):
        with pytest.raises(ConfigError, match=re.escape(field)):
            parse_project_config(apply_defaults(raw, tmp_path))

    def test_malformed_binding(self, tmp_path):
        cfg = apply_defaults({"name": "my-app", "worker": {"bindings": {"kv_namespaces": [{"binding": "KV"}]}}}, tmp_path)
        with pytest.raises(ConfigError, match=re.escape("kv_namespaces[0].id")):
            parse_artifact_config(cfg)

    def test_bindings_must_be_an_object(self, tmp_path):
        cfg = apply_defaults({"name": "my-app", "worker": {"bindings": "oops"}}, tmp_path)
        with pytest.raises(ConfigError, match=re.escape("'worker.bindings' must be an object")):
            parse_artifact_config(cfg)

    def test_empty_preview_branches_survive_parsing(self, tmp_path):
        cfg = apply_defaults({"name": "my-app", "repo": {"owner": "o", "name": "r"}, "preview": {"branches": []}}, tmp_path)
        assert parse_project_config(cfg).preview.branches == ()


class TestRepoInfoFromSlug:
    def test_parses_slug(self):
        assert repo_info_from_slug("myorg/myrepo") == ("myorg", "myrepo")
        assert repo_info_from_slug("my-org/my-repo-name") == ("my-org", "my-repo-name")

    def test_unusable(self):
        assert repo_info_from_slug(None) is None
        assert repo_info_from_slug("") is None
        assert repo_info_from_slug("no-slash") is None

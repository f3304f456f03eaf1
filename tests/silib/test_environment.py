"""
Unit tests for silib.environment — repository checks and path resolution.
"""

import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))
from silib import config, environment
from silib.context import ImportContext
from silib.errors import ConfigurationError, RepositorySyncError


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "_config_path", lambda: tmp_path / "missing.json")
    config.reset_config()
    yield
    config.reset_config()


def _make_templates(root: Path, stack: str = "iam-generic", version: str = "1.4.0", branch: str = "master") -> Path:
    templates = root / "templates"
    (templates / "stacks" / stack).mkdir(parents=True)
    (templates / "stacks" / stack / "VERSION").write_text(f"{version}\n", encoding="utf-8")
    (templates / ".git").mkdir()
    (templates / ".git" / "HEAD").write_text(f"ref: refs/heads/{branch}\n", encoding="utf-8")
    return templates


def _ctx(tmp_path: Path, **kwargs) -> ImportContext:
    return ImportContext(
        resource_name="my-role",
        sceptre_stack_name="iam-generic",
        initial_template=tmp_path / "initial-template.yaml",
        list_resources_report=tmp_path / "resources.json",
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Template version
# ---------------------------------------------------------------------------


class TestReadTemplateVersion:
    def test_reads_stripped_version(self, tmp_path):
        templates = _make_templates(tmp_path)
        assert environment.read_template_version(templates, "iam-generic") == "1.4.0"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unable to set template_version"):
            environment.read_template_version(tmp_path, "iam-generic")

    def test_empty_file(self, tmp_path):
        templates = _make_templates(tmp_path, version="")
        with pytest.raises(ConfigurationError, match="is empty"):
            environment.read_template_version(templates, "iam-generic")


# ---------------------------------------------------------------------------
# Git checks
# ---------------------------------------------------------------------------


class TestRepositorySync:
    def test_on_tracked_branch(self, tmp_path):
        templates = _make_templates(tmp_path)
        assert environment.on_tracked_branch(templates, "master")
        assert not environment.on_tracked_branch(templates, "main")

    def test_detached_head_not_on_branch(self, tmp_path):
        templates = _make_templates(tmp_path)
        (templates / ".git" / "HEAD").write_text("3f2a9c0\n", encoding="utf-8")
        assert not environment.on_tracked_branch(templates, "master")

    def test_in_sync(self, tmp_path):
        templates = _make_templates(tmp_path)
        with patch.object(environment, "_git_rev_parse", return_value="abc123") as rev_parse:
            environment.check_repository_sync(templates)
        refs = [c.args[1] for c in rev_parse.call_args_list]
        assert refs == ["master", "origin/master"]

    def test_out_of_sync(self, tmp_path):
        templates = _make_templates(tmp_path)
        with patch.object(environment, "_git_rev_parse", side_effect=["abc123", "def456"]):
            with pytest.raises(RepositorySyncError, match="not in sync"):
                environment.check_repository_sync(templates)

    def test_wrong_branch(self, tmp_path):
        templates = _make_templates(tmp_path, branch="feature/x")
        with patch.object(environment, "_git_rev_parse", return_value="abc123") as rev_parse:
            with pytest.raises(RepositorySyncError, match="master branch is checked out"):
                environment.check_repository_sync(templates)
        rev_parse.assert_not_called()

    def test_dev_mode_skips_branch_check_only(self, tmp_path):
        templates = _make_templates(tmp_path, branch="feature/x")
        with patch.object(environment, "_git_rev_parse", side_effect=["abc123", "def456"]):
            with pytest.raises(RepositorySyncError, match="not in sync"):
                environment.check_repository_sync(templates, dev_mode=True)

    def test_git_failure_becomes_sync_error(self, tmp_path):
        error = subprocess.CalledProcessError(128, ["git"], stderr="fatal: not a git repository")
        with patch.object(environment.subprocess, "run", side_effect=error):
            with pytest.raises(RepositorySyncError, match="not a git repository"):
                environment._git_rev_parse(tmp_path, "master")

    def test_git_rev_parse_output(self, tmp_path):
        completed = subprocess.CompletedProcess(["git"], 0, stdout="abc123\n", stderr="")
        with patch.object(environment.subprocess, "run", return_value=completed) as run:
            assert environment._git_rev_parse(tmp_path, "origin/master") == "abc123"
        assert run.call_args.args[0] == ["git", "rev-parse", "origin/master"]
        assert run.call_args.kwargs["cwd"] == str(tmp_path)


# ---------------------------------------------------------------------------
# resolve_environment
# ---------------------------------------------------------------------------


class TestResolveEnvironment:
    def test_resolves_from_environment_variables(self, tmp_path, monkeypatch):
        templates = _make_templates(tmp_path)
        env_dir = tmp_path / "sceptre-environment"
        env_dir.mkdir()
        monkeypatch.setenv("SCEPTRE_ENV_DIR", str(env_dir))
        monkeypatch.setenv("SCEPTRE_TEMPLATE_DIR", str(templates))
        monkeypatch.delenv("DEV_MODE", raising=False)

        ctx = _ctx(tmp_path)
        with patch.object(environment, "check_repository_sync") as sync:
            environment.resolve_environment(ctx)

        assert ctx.sceptre_environment == env_dir
        assert ctx.sceptre_templates == templates
        assert ctx.template_version == "1.4.0"
        sync.assert_called_once_with(templates, dev_mode=False)

    def test_dev_mode_passed_through(self, tmp_path, monkeypatch):
        templates = _make_templates(tmp_path)
        monkeypatch.setenv("DEV_MODE", "true")
        ctx = _ctx(tmp_path, sceptre_environment=tmp_path, sceptre_templates=templates)

        with patch.object(environment, "check_repository_sync") as sync:
            environment.resolve_environment(ctx)

        assert ctx.dev_mode is True
        sync.assert_called_once_with(templates, dev_mode=True)

    def test_missing_environment_dir(self, tmp_path):
        templates = _make_templates(tmp_path)
        ctx = _ctx(tmp_path, sceptre_environment=tmp_path / "nope", sceptre_templates=templates)
        with pytest.raises(ConfigurationError, match="sceptre-environment"):
            environment.resolve_environment(ctx)

    def test_missing_version_reported_first(self, tmp_path):
        ctx = _ctx(tmp_path, sceptre_environment=tmp_path / "nope", sceptre_templates=tmp_path / "none")
        with pytest.raises(ConfigurationError, match="template_version"):
            environment.resolve_environment(ctx)


# ---------------------------------------------------------------------------
# common-env.yaml, output path and bucket
# ---------------------------------------------------------------------------


class TestCommonEnv:
    def _env(self, tmp_path: Path, *accounts: str) -> Path:
        env_dir = tmp_path / "sceptre-environment"
        for account in accounts:
            account_dir = env_dir / "nonprod" / account
            account_dir.mkdir(parents=True)
            (account_dir / "common-env.yaml").write_text(
                "template_bucket_name: my-template-bucket\n", encoding="utf-8",
            )
        return env_dir

    def test_single_match(self, tmp_path):
        env_dir = self._env(tmp_path, "datalake-nonprod")
        ctx = _ctx(tmp_path, sceptre_environment=env_dir)

        path = environment.set_common_env_path(ctx, aws_profile="datalake-nonprod")

        assert path == env_dir / "nonprod" / "datalake-nonprod" / "common-env.yaml"
        assert ctx.common_env == path

    def test_profile_from_environment(self, tmp_path, monkeypatch):
        env_dir = self._env(tmp_path, "datalake-nonprod")
        monkeypatch.setenv("AWS_PROFILE", "datalake-nonprod")
        ctx = _ctx(tmp_path, sceptre_environment=env_dir)
        assert environment.set_common_env_path(ctx).name == "common-env.yaml"

    def test_no_match(self, tmp_path):
        env_dir = self._env(tmp_path, "datalake-nonprod")
        ctx = _ctx(tmp_path, sceptre_environment=env_dir)
        with pytest.raises(ConfigurationError, match="Could not set common-env.yaml"):
            environment.set_common_env_path(ctx, aws_profile="other")

    def test_multiple_matches(self, tmp_path):
        env_dir = self._env(tmp_path, "datalake-nonprod")
        prod = env_dir / "prod" / "datalake-nonprod"
        prod.mkdir(parents=True)
        (prod / "common-env.yaml").write_text("{}\n", encoding="utf-8")
        ctx = _ctx(tmp_path, sceptre_environment=env_dir)
        with pytest.raises(ConfigurationError, match="Could not set common-env.yaml, got"):
            environment.set_common_env_path(ctx, aws_profile="datalake-nonprod")

    def test_empty_profile(self, tmp_path, monkeypatch):
        monkeypatch.delenv("AWS_PROFILE", raising=False)
        ctx = _ctx(tmp_path, sceptre_environment=tmp_path)
        with pytest.raises(ConfigurationError, match="AWS_PROFILE"):
            environment.set_common_env_path(ctx)

    def test_explicit_common_env_wins(self, tmp_path):
        explicit = tmp_path / "elsewhere" / "common-env.yaml"
        ctx = _ctx(tmp_path, common_env=explicit)
        assert environment.set_common_env_path(ctx, aws_profile="") == explicit

    def test_output_path_created_beside_common_env(self, tmp_path):
        env_dir = self._env(tmp_path, "datalake-nonprod")
        ctx = _ctx(tmp_path, common_env=env_dir / "nonprod" / "datalake-nonprod" / "common-env.yaml")

        output = environment.set_output_path(ctx, "iam")

        assert output == env_dir / "nonprod" / "datalake-nonprod" / "iam"
        assert output.is_dir()

    def test_explicit_output_path_wins(self, tmp_path):
        ctx = _ctx(tmp_path, output_path=tmp_path / "out")
        assert environment.set_output_path(ctx, "iam") == tmp_path / "out"
        assert not (tmp_path / "out").exists()

    def test_template_bucket(self, tmp_path):
        env_dir = self._env(tmp_path, "datalake-nonprod")
        ctx = _ctx(tmp_path, common_env=env_dir / "nonprod" / "datalake-nonprod" / "common-env.yaml")
        assert environment.set_template_bucket(ctx) == "my-template-bucket"
        assert ctx.template_bucket_name == "my-template-bucket"

    def test_template_bucket_missing(self, tmp_path):
        common_env = tmp_path / "common-env.yaml"
        common_env.write_text("region: ap-southeast-2\n", encoding="utf-8")
        ctx = _ctx(tmp_path, common_env=common_env)
        with pytest.raises(ConfigurationError, match="template_bucket_name not found"):
            environment.set_template_bucket(ctx)

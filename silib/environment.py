"""
silib.environment — Locate the Sceptre environment and template repositories.

Resolves the template version, checks the template repository is on its
tracked branch and in sync with its remote, and works out where
common-env.yaml lives and where the generated values file goes.
"""

import glob
import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

import yaml

from silib.config import config_value
from silib.context import ImportContext
from silib.errors import ConfigurationError, RepositorySyncError

logger = logging.getLogger(__name__)

COMMON_ENV_FILENAME = "common-env.yaml"


def is_dev_mode() -> bool:
    """DEV_MODE set to any non-empty value bypasses the branch check."""
    return bool(os.environ.get("DEV_MODE"))


def sceptre_environment_dir() -> Path:
    return Path(os.environ.get("SCEPTRE_ENV_DIR") or config_value("sceptre_environment_dir"))


def sceptre_template_dir() -> Path:
    return Path(os.environ.get("SCEPTRE_TEMPLATE_DIR") or config_value("sceptre_template_dir"))


# ---------------------------------------------------------------------------
# Template version
# ---------------------------------------------------------------------------


def read_template_version(sceptre_templates: Path, sceptre_stack_name: str) -> str:
    """
    Read stacks/<stack>/VERSION from the template repository.

    Raises:
        ConfigurationError: the VERSION file is missing or unreadable
    """
    version_file = Path(sceptre_templates) / "stacks" / sceptre_stack_name / "VERSION"
    try:
        version = version_file.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ConfigurationError(f"Unable to set template_version from {version_file}: {e}") from e
    if not version:
        raise ConfigurationError(f"Unable to set template_version: {version_file} is empty")
    return version


# ---------------------------------------------------------------------------
# Git checks
# ---------------------------------------------------------------------------


def _git_rev_parse(repo: Path, ref: str) -> str:
    try:
        result = subprocess.run(
            ["git", "rev-parse", ref],
            cwd=str(repo),
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        stderr = getattr(e, "stderr", "") or ""
        raise RepositorySyncError(f"git rev-parse {ref} failed in {repo}: {stderr.strip() or e}") from e
    return result.stdout.strip()


def on_tracked_branch(repo: Path, branch: str) -> bool:
    """True when .git/HEAD points at refs/heads/<branch>."""
    head_file = Path(repo) / ".git" / "HEAD"
    try:
        head = head_file.read_text(encoding="utf-8")
    except OSError:
        return False
    return head.strip() == f"ref: refs/heads/{branch}"


def check_repository_sync(repo: Path, dev_mode: bool = False) -> None:
    """
    Ensure the template repository reflects the released templates.

    The tracked branch must be checked out (skipped in DEV_MODE) and the local
    branch must point at the same commit as its remote counterpart.

    Raises:
        RepositorySyncError: either check fails
    """
    branch = config_value("tracked_branch", "master")
    remote = config_value("git_remote", "origin")

    if not dev_mode and not on_tracked_branch(repo, branch):
        raise RepositorySyncError(f"Ensure that the {branch} branch is checked out in {repo}")

    local_hash = _git_rev_parse(repo, branch)
    remote_hash = _git_rev_parse(repo, f"{remote}/{branch}")

    if local_hash != remote_hash:
        raise RepositorySyncError(f"Local {branch} branch is not in sync with upstream")

    logger.debug("Template repository %s is at %s", repo, local_hash)


# ---------------------------------------------------------------------------
# Run-level resolution
# ---------------------------------------------------------------------------


def resolve_environment(ctx: ImportContext) -> ImportContext:
    """
    Fill in the directories, template version and dev mode for a run.

    Raises:
        ConfigurationError: any directory is missing or the version can't be read
        RepositorySyncError: the template repository is out of sync
    """
    ctx.sceptre_environment = ctx.sceptre_environment or sceptre_environment_dir()
    ctx.sceptre_templates = ctx.sceptre_templates or sceptre_template_dir()
    ctx.dev_mode = ctx.dev_mode or is_dev_mode()

    ctx.template_version = read_template_version(ctx.sceptre_templates, ctx.sceptre_stack_name)

    if not ctx.sceptre_environment.is_dir():
        raise ConfigurationError(
            f"Could not find the sceptre-environment at {ctx.sceptre_environment}, aborting..."
        )

    if not ctx.sceptre_templates.is_dir():
        raise ConfigurationError(
            f"Could not find the sceptre templates at {ctx.sceptre_templates}, aborting..."
        )

    check_repository_sync(ctx.sceptre_templates, dev_mode=ctx.dev_mode)
    return ctx


def set_common_env_path(ctx: ImportContext, aws_profile: Optional[str] = None) -> Path:
    """
    Locate common-env.yaml unless one was passed with -c.

    The file is expected at <sceptre_environment>/*/<AWS_PROFILE>/common-env.yaml
    and exactly one match is required.
    """
    if ctx.common_env:
        return ctx.common_env

    profile = aws_profile if aws_profile is not None else os.environ.get("AWS_PROFILE", "")
    if not profile:
        raise ConfigurationError("Could not set common-env.yaml: AWS_PROFILE is not set")

    pattern = str(Path(ctx.sceptre_environment) / "*" / profile / COMMON_ENV_FILENAME)
    matches = sorted(glob.glob(pattern))
    if len(matches) != 1:
        got = " ".join(matches) if matches else pattern
        raise ConfigurationError(f"Could not set common-env.yaml, got {got}")

    ctx.common_env = Path(matches[0])
    logger.debug("Using common-env.yaml at %s", ctx.common_env)
    return ctx.common_env


def set_output_path(ctx: ImportContext, suggested_output_dir: str) -> Path:
    """
    Directory for the generated values file.

    Defaults to <dir of common-env.yaml>/<suggested_output_dir>, created if
    missing. An explicit -o wins.
    """
    if ctx.output_path:
        return ctx.output_path

    ctx.output_path = Path(ctx.common_env).parent / suggested_output_dir
    ctx.output_path.mkdir(parents=True, exist_ok=True)
    return ctx.output_path


def set_template_bucket(ctx: ImportContext) -> str:
    """Read template_bucket_name from common-env.yaml."""
    try:
        with open(ctx.common_env, "r", encoding="utf-8") as f:
            common_env = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Unable to read {ctx.common_env}: {e}") from e

    bucket = common_env.get("template_bucket_name") if isinstance(common_env, dict) else None
    if not bucket:
        raise ConfigurationError(f"template_bucket_name not found in {ctx.common_env}")

    ctx.template_bucket_name = str(bucket)
    return ctx.template_bucket_name

import getpass
import logging
import subprocess
from pathlib import Path

from errors import TagError

logger = logging.getLogger(__name__)


def git(*args: str, cwd: Path | None = None) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            ["git", *args], cwd=cwd, capture_output=True, text=True, check=False,
        )
    except OSError as exc:
        raise TagError(f"cannot run git: {exc}") from exc


def head_sha(cwd: Path | None = None) -> str:
    proc = git("rev-parse", "--short=8", "HEAD", cwd=cwd)
    if proc.returncode != 0:
        raise TagError(f"git rev-parse failed: {proc.stderr.strip()}")
    return proc.stdout.strip()


def is_clean(cwd: Path | None = None) -> bool:
    # refresh stat info first, diff-index trusts it
    git("update-index", "-q", "--refresh", cwd=cwd)
    return git("diff-index", "--quiet", "HEAD", "--", cwd=cwd).returncode == 0


def head_root_tag(cwd: Path | None = None, user: str | None = None) -> str:
    sha = head_sha(cwd)
    if is_clean(cwd):
        return f"git-{sha}"
    tag = f"dev-{sha}-{user or getpass.getuser()}"
    logger.info("working tree is dirty, tagging as %s", tag)
    return tag

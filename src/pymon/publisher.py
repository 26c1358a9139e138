"""Publish finished reports to a git remote."""

import logging
import os
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from pymon.models import PublishResult

logger = logging.getLogger(__name__)


class GitPublisher:
    """
    Stages, commits and pushes exactly the given report files.

    Every git call runs with a timeout. Failures are logged and reported as
    PublishResult.FAILED, never raised.
    """

    def __init__(
        self,
        repo_dir: str | os.PathLike,
        remote: str = "origin",
        branch: str = "main",
        timeout: float = 60.0,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        """
        Initialize the GitPublisher.

        Args:
            repo_dir: Working tree of the repository that receives the reports.
            remote: Remote to push to.
            branch: Branch to push.
            timeout: Limit for each git command (seconds).
            runner: Callable with the ``subprocess.run`` signature.
        """
        self.repo_dir = Path(repo_dir).expanduser()
        self.remote = remote
        self.branch = branch
        self.timeout = timeout
        self._run = runner

    def _git(self, *args: str) -> subprocess.CompletedProcess | None:
        """Run one git command; None when it could not run at all."""
        cmd = ["git", *args]
        try:
            proc = self._run(
                cmd,
                cwd=self.repo_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.error("ERROR: %s timed out after %ss", " ".join(cmd[:2]), self.timeout)
            return None
        except OSError as exc:
            logger.error("ERROR: cannot run git: %s", exc)
            return None

        for stream in (proc.stdout, proc.stderr):
            if stream and stream.strip():
                logger.info("%s", stream.strip())
        return proc

    def publish(self, report_paths: Sequence[str | os.PathLike], *, stamp: str, host: str) -> PublishResult:
        """
        Commit and push the given reports.

        Returns SKIPPED when the staged reports match what is already
        committed, SUCCEEDED after a clean push, FAILED otherwise.
        """
        logger.info("Starting Git upload process")

        if not (self.repo_dir / ".git").exists():
            logger.error("ERROR: Not a git repository: %s", self.repo_dir)
            return PublishResult.FAILED

        paths = [os.fspath(p) for p in report_paths]
        if not paths:
            logger.info("No changes to commit")
            return PublishResult.SKIPPED

        proc = self._git("add", "--", *paths)
        if proc is None or proc.returncode != 0:
            logger.error("ERROR: git add failed")
            return PublishResult.FAILED

        proc = self._git("diff", "--cached", "--quiet", "--", *paths)
        if proc is None or proc.returncode not in (0, 1):
            logger.error("ERROR: git diff failed")
            return PublishResult.FAILED
        if proc.returncode == 0:
            logger.info("No changes to commit")
            return PublishResult.SKIPPED

        message = f"Automated report - {stamp} - {host}"
        proc = self._git("commit", "-m", message, "--", *paths)
        if proc is None or proc.returncode != 0:
            logger.error("ERROR: git commit failed")
            return PublishResult.FAILED

        proc = self._git("push", self.remote, self.branch)
        if proc is None or proc.returncode != 0:
            logger.error("ERROR: Git push failed")
            return PublishResult.FAILED

        logger.info("Git push successful")
        return PublishResult.SUCCEEDED

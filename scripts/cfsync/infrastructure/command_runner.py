from __future__ import annotations

import logging
import subprocess

from cfsync.domain.entities import CommandResult
from cfsync.domain.interfaces import ICommandRunner

log = logging.getLogger(__name__)


class ShellCommandRunner(ICommandRunner):
    """
    Runs build commands through the shell, blocking until they exit.

    The child inherits this process's environment and standard streams, so
    build output appears inline in the job log. There is no timeout.
    """

    def run(self, command: str, cwd: str) -> CommandResult:
        log.debug("Running %r in %s", command, cwd)
        completed = subprocess.run(command, shell=True, cwd=cwd, check=False)
        return CommandResult(command=command, returncode=completed.returncode)

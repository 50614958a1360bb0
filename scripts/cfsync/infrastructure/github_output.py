from __future__ import annotations

import logging

from cfsync.domain.interfaces import IOutputSink

log = logging.getLogger(__name__)


class GitHubOutputSink(IOutputSink):
    """
    Appends `name=value` lines to the file GitHub Actions exposes as
    $GITHUB_OUTPUT. Without a file (local runs) outputs are only logged.
    """

    def __init__(self, output_path: str | None) -> None:
        self._output_path = output_path

    def set_output(self, name: str, value: str) -> None:
        if not self._output_path:
            log.debug("No output file configured, dropping %s=%s", name, value)
            return
        with open(self._output_path, "a", encoding="utf-8") as f:
            f.write(f"{name}={value}\n")

"""Remote shells and directory mirroring over the system ssh/rsync binaries.

The system binaries are used so the user's SSH config, agent and keys apply
unchanged. Hosts are passed through verbatim (``host``, ``user@host`` or an
alias from ``~/.ssh/config``).
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .config import ExecConfig
from .executor import Invocation, InvocationResult, ProcessExecutor

logger = logging.getLogger(__name__)


def _remote_path(host: str, path: str) -> str:
    return f"{host}:{_dir_path(path)}"


def _dir_path(path: str) -> str:
    # A trailing slash makes rsync copy the directory's contents, not the directory itself.
    return path.rstrip("/") + "/"


class RemoteExecutor:
    def __init__(self, config: Optional[ExecConfig] = None, executor: Optional[ProcessExecutor] = None):
        self.config = config or ExecConfig()
        self.executor = executor or ProcessExecutor(self.config)

    def _ssh_argv(self, host: str) -> List[str]:
        return [*self.config.ssh_args(), host, self.config.remote_shell_command]

    def _rsync_args(self, source: str, destination: str) -> List[str]:
        return [*self.config.rsync_flags, f"--rsh={self.config.rsh()}", source, destination]

    def _rsync(self, source: str, destination: str) -> None:
        logger.info("rsync %s -> %s", source, destination)
        result = self.executor.execute(
            Invocation(program=self.config.rsync, args=tuple(self._rsync_args(source, destination)))
        )
        result.check()

    def run_shell(self, host: str, command: str) -> InvocationResult:
        """Run *command* through a login shell on *host*; the text is sent on ssh's stdin."""
        return self.executor.execute(
            Invocation(program=self.config.ssh, args=tuple(self._ssh_argv(host)), stdin=command)
        )

    def download_dir(self, host: str, remote_dir: str, local_dir: str) -> None:
        """Copy the contents of *remote_dir* on *host* into *local_dir*.

        Raises an ExecError subclass on any failure, including a non-zero
        rsync exit status.
        """
        self._rsync(_remote_path(host, remote_dir), _dir_path(local_dir))

    def upload_dir(self, host: str, local_dir: str, remote_dir: str) -> None:
        """Copy the contents of *local_dir* into *remote_dir*, which must exist on *host*."""
        self._rsync(_dir_path(local_dir), _remote_path(host, remote_dir))


def run_remote_shell(host: str, command: str, config: Optional[ExecConfig] = None) -> InvocationResult:
    return RemoteExecutor(config).run_shell(host, command)


def download_dir(host: str, remote_dir: str, local_dir: str, config: Optional[ExecConfig] = None) -> None:
    RemoteExecutor(config).download_dir(host, remote_dir, local_dir)


def upload_dir(host: str, local_dir: str, remote_dir: str, config: Optional[ExecConfig] = None) -> None:
    RemoteExecutor(config).upload_dir(host, local_dir, remote_dir)

"""POSIX process execution for local and remote scripting.

Provides:
- Running a program with a stdin payload and capturing stdout/stderr
- Feeding scripts to the local shell
- Feeding scripts to a remote login shell over ssh
- Mirroring directories to and from remote hosts with rsync
"""

from .config import ExecConfig
from .errors import CancelledError, ConfigError, ExecError, ExitStatusError, PipeIOError, StartError
from .executor import (
    CANCELLED,
    EXITED,
    IO_FAILED,
    START_FAILED,
    Invocation,
    InvocationResult,
    ProcessExecutor,
    exec_program,
    execute,
)
from .remote import RemoteExecutor, download_dir, run_remote_shell, upload_dir
from .shell import ShellRunner, run_shell

__all__ = [
    "ExecConfig",
    "ExecError",
    "StartError",
    "PipeIOError",
    "ExitStatusError",
    "CancelledError",
    "ConfigError",
    "EXITED",
    "START_FAILED",
    "IO_FAILED",
    "CANCELLED",
    "Invocation",
    "InvocationResult",
    "ProcessExecutor",
    "execute",
    "exec_program",
    "ShellRunner",
    "run_shell",
    "RemoteExecutor",
    "run_remote_shell",
    "download_dir",
    "upload_dir",
]

__version__ = "0.1.0"

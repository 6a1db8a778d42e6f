from __future__ import annotations

import os
from typing import Dict, Optional

from .config import ExecConfig
from .executor import Invocation, InvocationResult, ProcessExecutor


class ShellRunner:
    """Feed scripts to the system command interpreter.

    The script travels on the interpreter's standard input, never on its
    command line, so it needs no quoting. ``cwd`` of ``None`` inherits the
    caller's working directory.
    """

    def __init__(
        self,
        cwd: Optional[str] = None,
        config: Optional[ExecConfig] = None,
        executor: Optional[ProcessExecutor] = None,
    ):
        self.config = config or ExecConfig()
        self.executor = executor or ProcessExecutor(self.config)
        self.default_cwd = str(os.fspath(cwd)) if cwd else None

    def run(
        self,
        script: str,
        *,
        cwd: Optional[str] = None,
        env_overrides: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> InvocationResult:
        return self.executor.execute(
            Invocation(
                program=self.config.shell,
                cwd=cwd or self.default_cwd,
                stdin=script,
                env=env_overrides,
                timeout=timeout,
            )
        )


def run_shell(script: str, config: Optional[ExecConfig] = None) -> InvocationResult:
    """Run *script* with ``sh`` in the current working directory."""
    return ShellRunner(config=config).run(script)

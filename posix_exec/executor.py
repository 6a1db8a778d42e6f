from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from typing import IO, List, Mapping, Optional, Tuple, Union

from .config import ExecConfig
from .errors import CancelledError, ExitStatusError, PipeIOError, StartError

logger = logging.getLogger(__name__)

# Outcome of an invocation: exited | start_failed | io_failed | cancelled
EXITED = "exited"
START_FAILED = "start_failed"
IO_FAILED = "io_failed"
CANCELLED = "cancelled"

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class Invocation:
    """Everything needed to launch one program.

    ``cwd`` of ``None`` or ``""`` inherits the caller's working directory.
    ``env`` holds overrides merged on top of the caller's environment.
    """

    program: str
    cwd: Optional[str] = None
    args: Tuple[str, ...] = ()
    stdin: Union[str, bytes] = ""
    env: Optional[Mapping[str, str]] = None
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))
        if self.env is not None:
            object.__setattr__(self, "env", dict(self.env))

    @property
    def argv(self) -> List[str]:
        return [self.program, *self.args]


@dataclass(frozen=True)
class InvocationResult:
    stdout: str
    stderr: str
    outcome: str
    exit_code: Optional[int] = None
    error: Optional[BaseException] = field(default=None, compare=False)
    duration_ms: int = 0
    argv: Tuple[str, ...] = ()
    cwd: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome == EXITED and self.exit_code == 0

    @property
    def failed(self) -> bool:
        return not self.success

    @property
    def command(self) -> str:
        return shlex.join(self.argv)

    def check(self) -> "InvocationResult":
        """Return self when the child exited with 0, else raise the matching ExecError."""
        if self.outcome == START_FAILED:
            raise StartError(f"failed to start {self.command}: {self.error}", self) from self.error
        if self.outcome == CANCELLED:
            raise CancelledError(f"{self.command} cancelled: {self.error}", self) from self.error
        if self.outcome == IO_FAILED:
            raise PipeIOError(f"I/O failure while running {self.command}: {self.error}", self) from self.error
        if self.exit_code != 0:
            raise ExitStatusError(
                f"{self.command} exited with status {self.exit_code}",
                exit_code=int(self.exit_code if self.exit_code is not None else -1),
                result=self,
            )
        return self


def _feed(stream: IO[bytes], payload: bytes) -> None:
    try:
        if payload:
            stream.write(payload)
    except BrokenPipeError:
        # The child exited or closed stdin without consuming all of it.
        logger.debug("child closed stdin after a partial write of %d bytes", len(payload))
    finally:
        # Always signal end of input, even after a failed write.
        try:
            stream.close()
        except BrokenPipeError:
            pass


def _drain(stream: IO[bytes], sink: List[bytes]) -> None:
    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
        sink.append(chunk)


def _close_pipes(proc: subprocess.Popen) -> None:
    for stream in (proc.stdin, proc.stdout, proc.stderr):
        if stream is None or stream.closed:
            continue
        try:
            stream.close()
        except OSError as exc:
            logger.debug("pid %s: error closing pipe: %s", proc.pid, exc)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


def execute(
    invocation: Invocation,
    *,
    encoding: str = "utf-8",
    errors: str = "replace",
) -> InvocationResult:
    """Run one program to completion and collect its output.

    Stdin delivery and the stdout and stderr drains run as three independent
    tasks, so a child that fills one pipe while we are busy with another can
    never stall the invocation. The child is reaped and every pipe is closed
    before this returns, on every path.

    Start failures, pipe failures, timeouts and non-zero exits are reported in
    the result's ``outcome``; nothing is raised for them here. Use
    ``InvocationResult.check()`` to turn them into exceptions. A ``str``
    payload that *encoding* cannot represent is a caller error: the
    ``UnicodeEncodeError`` propagates before anything is spawned.
    """
    argv = invocation.argv
    cwd = invocation.cwd or None
    env = None
    if invocation.env:
        env = os.environ.copy()
        env.update(invocation.env)
    payload = invocation.stdin
    if isinstance(payload, str):
        payload = payload.encode(encoding)

    start = time.monotonic()
    logger.debug("spawn: %s (cwd=%s)", shlex.join(argv), cwd or ".")
    try:
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            env=env,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except (OSError, ValueError) as exc:
        logger.warning("failed to start %s: %s", argv[0], exc)
        return InvocationResult(
            stdout="",
            stderr="",
            outcome=START_FAILED,
            error=exc,
            duration_ms=_elapsed_ms(start),
            argv=tuple(argv),
            cwd=cwd,
        )

    out_chunks: List[bytes] = []
    err_chunks: List[bytes] = []
    io_error: Optional[BaseException] = None
    timed_out = False
    deadline = None if invocation.timeout is None else start + invocation.timeout
    try:
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix=f"posix-exec-{proc.pid}") as pool:
            tasks = [
                pool.submit(_feed, proc.stdin, payload),
                pool.submit(_drain, proc.stdout, out_chunks),
                pool.submit(_drain, proc.stderr, err_chunks),
            ]
            _, pending = wait(tasks, timeout=_remaining(deadline))
            if pending:
                timed_out = True
                logger.warning("pid %s: timeout after %ss, killing %s", proc.pid, invocation.timeout, argv[0])
                proc.kill()
            for task in tasks:
                exc = task.exception()
                if exc is None:
                    continue
                if not isinstance(exc, (OSError, ValueError)):
                    raise exc
                if io_error is None:
                    io_error = exc
        _close_pipes(proc)
        try:
            exit_code = proc.wait(timeout=None if timed_out else _remaining(deadline))
        except subprocess.TimeoutExpired:
            # The child closed its pipes but kept running.
            timed_out = True
            logger.warning("pid %s: timeout after %ss, killing %s", proc.pid, invocation.timeout, argv[0])
            proc.kill()
            exit_code = proc.wait()
    finally:
        _close_pipes(proc)
        if proc.returncode is None:
            proc.kill()
            proc.wait()

    if timed_out:
        outcome = CANCELLED
        error: Optional[BaseException] = subprocess.TimeoutExpired(argv, invocation.timeout or 0)
    elif io_error is not None:
        outcome = IO_FAILED
        error = io_error
        logger.warning("pid %s: I/O failure: %s", proc.pid, io_error)
    else:
        outcome = EXITED
        error = None

    result = InvocationResult(
        stdout=b"".join(out_chunks).decode(encoding, errors),
        stderr=b"".join(err_chunks).decode(encoding, errors),
        outcome=outcome,
        exit_code=exit_code,
        error=error,
        duration_ms=_elapsed_ms(start),
        argv=tuple(argv),
        cwd=cwd,
    )
    logger.debug("pid %s: %s exit_code=%s in %dms", proc.pid, outcome, exit_code, result.duration_ms)
    return result


def exec_program(program: str, cwd: Optional[str], stdin: Union[str, bytes], *args: str) -> InvocationResult:
    """Positional shorthand for ``execute(Invocation(program, cwd, args, stdin))``."""
    return execute(Invocation(program=program, cwd=cwd, args=args, stdin=stdin))


class ProcessExecutor:
    """Runs invocations with the encoding and default timeout of an ExecConfig."""

    def __init__(self, config: Optional[ExecConfig] = None):
        self.config = config or ExecConfig()

    def execute(self, invocation: Invocation) -> InvocationResult:
        if invocation.timeout is None and self.config.timeout is not None:
            invocation = replace(invocation, timeout=self.config.timeout)
        return execute(invocation, encoding=self.config.encoding)

    def run(
        self,
        program: str,
        *args: str,
        cwd: Optional[str] = None,
        stdin: Union[str, bytes] = "",
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> InvocationResult:
        return self.execute(
            Invocation(program=program, cwd=cwd, args=args, stdin=stdin, env=env, timeout=timeout)
        )

from __future__ import annotations

import logging
from typing import IO, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from .config import ExecConfig
from .errors import ConfigError, ExecError
from .executor import EXITED, Invocation, InvocationResult, ProcessExecutor
from .remote import RemoteExecutor
from .shell import ShellRunner

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

console = Console(stderr=True)


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    root = logging.getLogger()
    # Leave an embedding application's handlers alone.
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("posix_exec").setLevel(level)


def _show_summary(result: InvocationResult) -> None:
    table = Table(title="Invocation")
    table.add_column("field")
    table.add_column("value")
    table.add_row("command", result.command)
    table.add_row("cwd", result.cwd or ".")
    table.add_row("outcome", result.outcome)
    table.add_row("exit_code", str(result.exit_code))
    table.add_row("duration_ms", str(result.duration_ms))
    table.add_row("stdout bytes", str(len(result.stdout)))
    table.add_row("stderr bytes", str(len(result.stderr)))
    if result.error is not None:
        table.add_row("error", str(result.error))
    console.print(table)


def _shell_status(exit_code: int) -> int:
    # subprocess reports death by signal N as -N; shells report 128 + N.
    if exit_code < 0:
        return 128 - exit_code
    return exit_code


def _report(result: InvocationResult, summary: bool) -> int:
    click.echo(result.stdout, nl=False)
    click.echo(result.stderr, nl=False, err=True)
    if summary:
        _show_summary(result)
    if result.outcome == EXITED:
        return _shell_status(int(result.exit_code or 0))
    click.echo(f"posix-exec: {result.outcome}: {result.error}", err=True)
    return 1


@click.group()
@click.option("--config", "config_path", default=None, help="YAML config file (default: $POSIX_EXEC_CONFIG or ./posix_exec.yaml)")
@click.option("-v", "--verbose", count=True, help="Log to stderr (-v info, -vv debug)")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: int) -> None:
    """Run local and remote programs and capture their output."""
    _configure_logging(verbose)
    try:
        ctx.obj = ExecConfig.load(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


@cli.command("exec", context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.argument("program")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("--cwd", default=None, help="Working directory for the program")
@click.option("--stdin-file", type=click.File("rb"), default=None, help="File to send on the program's stdin ('-' for ours)")
@click.option("--timeout", type=float, default=None, help="Kill the program after this many seconds")
@click.option("--summary", is_flag=True, help="Print a summary table to stderr")
@click.pass_obj
def exec_cmd(
    config: ExecConfig,
    program: str,
    args: Tuple[str, ...],
    cwd: Optional[str],
    stdin_file: Optional[IO[bytes]],
    timeout: Optional[float],
    summary: bool,
) -> int:
    """Run PROGRAM with ARGS and relay its output."""
    payload = stdin_file.read() if stdin_file is not None else b""
    result = ProcessExecutor(config).execute(
        Invocation(program=program, cwd=cwd, args=args, stdin=payload, timeout=timeout)
    )
    return _report(result, summary)


@cli.command("shell")
@click.argument("script", type=click.File("r"), default="-")
@click.option("--summary", is_flag=True, help="Print a summary table to stderr")
@click.pass_obj
def shell_cmd(config: ExecConfig, script: IO[str], summary: bool) -> int:
    """Feed SCRIPT (default: our stdin) to the system shell."""
    result = ShellRunner(config=config).run(script.read())
    return _report(result, summary)


@cli.command("remote-shell")
@click.argument("host")
@click.argument("script", type=click.File("r"), default="-")
@click.option("--summary", is_flag=True, help="Print a summary table to stderr")
@click.pass_obj
def remote_shell_cmd(config: ExecConfig, host: str, script: IO[str], summary: bool) -> int:
    """Feed SCRIPT (default: our stdin) to a login shell on HOST over ssh."""
    result = RemoteExecutor(config).run_shell(host, script.read())
    return _report(result, summary)


def _sync(direction: str, fn, *args: str) -> int:
    try:
        fn(*args)
    except ExecError as e:
        if e.result is not None:
            click.echo(e.result.stderr, nl=False, err=True)
        click.echo(f"posix-exec: {direction} failed: {e}", err=True)
        exit_code = getattr(e, "exit_code", None)
        return _shell_status(exit_code) if exit_code else 1
    return 0


@cli.command("download")
@click.argument("host")
@click.argument("remote_dir")
@click.argument("local_dir")
@click.pass_obj
def download_cmd(config: ExecConfig, host: str, remote_dir: str, local_dir: str) -> int:
    """Mirror REMOTE_DIR on HOST into LOCAL_DIR with rsync."""
    return _sync("download", RemoteExecutor(config).download_dir, host, remote_dir, local_dir)


@cli.command("upload")
@click.argument("host")
@click.argument("local_dir")
@click.argument("remote_dir")
@click.pass_obj
def upload_cmd(config: ExecConfig, host: str, local_dir: str, remote_dir: str) -> int:
    """Mirror LOCAL_DIR into the existing REMOTE_DIR on HOST with rsync."""
    return _sync("upload", RemoteExecutor(config).upload_dir, host, local_dir, remote_dir)


def main(argv: Optional[list] = None) -> int:
    try:
        rv = cli(args=argv, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except click.exceptions.Abort:
        return 1
    except SystemExit as e:
        return int(e.code or 0)
    return int(rv or 0)


if __name__ == "__main__":
    raise SystemExit(main())

from posix_exec.config import ExecConfig
from posix_exec.shell import ShellRunner, run_shell


def test_shell_runner_success_echo(tmp_path):
    runner = ShellRunner(cwd=str(tmp_path))
    result = runner.run("echo hello")
    assert result.success is True
    assert result.exit_code == 0
    assert "hello" in result.stdout


def test_shell_runner_failure_command(tmp_path):
    runner = ShellRunner(cwd=str(tmp_path))
    result = runner.run("exit 2")
    assert result.success is False
    assert result.exit_code == 2


def test_shell_runner_multiline_script_with_stderr():
    result = run_shell("echo one\necho two >&2\necho three\n")
    assert result.stdout == "one\nthree\n"
    assert result.stderr == "two\n"


def test_shell_runner_env_overrides(tmp_path):
    runner = ShellRunner(cwd=str(tmp_path))
    result = runner.run('printf %s "$GREETING"', env_overrides={"GREETING": "hi"})
    assert result.stdout == "hi"


def test_shell_runner_uses_configured_interpreter():
    result = ShellRunner(config=ExecConfig(shell="/nonexistent/shell")).run("echo hi")
    assert result.outcome == "start_failed"

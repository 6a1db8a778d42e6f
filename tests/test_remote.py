import pytest

from posix_exec.config import ExecConfig
from posix_exec.errors import ExitStatusError, StartError
from posix_exec.executor import EXITED, START_FAILED, InvocationResult
from posix_exec.remote import RemoteExecutor


class FakeExecutor:
    def __init__(self, exit_code=0, outcome=EXITED):
        self.exit_code = exit_code
        self.outcome = outcome
        self.invocations = []

    def execute(self, invocation):
        self.invocations.append(invocation)
        return InvocationResult(
            stdout="",
            stderr="rsync: boom\n" if self.exit_code else "",
            outcome=self.outcome,
            exit_code=self.exit_code if self.outcome == EXITED else None,
            argv=tuple(invocation.argv),
        )


def test_remote_shell_sends_command_on_stdin():
    fake = FakeExecutor()
    RemoteExecutor(executor=fake).run_shell("user@box", "uname -a\n")
    inv = fake.invocations[0]
    assert inv.argv == ["ssh", "user@box", "sh -il"]
    assert inv.stdin == "uname -a\n"
    assert inv.cwd is None


def test_remote_shell_includes_ssh_extra_args():
    fake = FakeExecutor()
    config = ExecConfig(ssh_extra_args="-p 2222 -o BatchMode=yes")
    RemoteExecutor(config, executor=fake).run_shell("box", "true")
    assert fake.invocations[0].argv == ["ssh", "-p", "2222", "-o", "BatchMode=yes", "box", "sh -il"]


def test_download_dir_prefixes_remote_source():
    fake = FakeExecutor()
    assert RemoteExecutor(executor=fake).download_dir("box", "/srv/data", "/tmp/data") is None
    inv = fake.invocations[0]
    assert inv.argv == ["rsync", "-acrv", "--rsh=ssh", "box:/srv/data/", "/tmp/data/"]
    assert inv.stdin == ""


def test_upload_dir_prefixes_remote_destination():
    fake = FakeExecutor()
    RemoteExecutor(executor=fake).upload_dir("box", "/tmp/data", "/srv/data")
    assert fake.invocations[0].argv == ["rsync", "-acrv", "--rsh=ssh", "/tmp/data/", "box:/srv/data/"]


def test_rsync_rsh_carries_ssh_extra_args():
    fake = FakeExecutor()
    config = ExecConfig(ssh_extra_args="-p 2222")
    RemoteExecutor(config, executor=fake).upload_dir("box", "a", "b")
    assert "--rsh=ssh -p 2222" in fake.invocations[0].argv


def test_sync_failure_raises_with_exit_code():
    fake = FakeExecutor(exit_code=23)
    with pytest.raises(ExitStatusError) as excinfo:
        RemoteExecutor(executor=fake).download_dir("box", "/srv", "/tmp/x")
    assert excinfo.value.exit_code == 23
    assert "boom" in excinfo.value.result.stderr


def test_sync_start_failure_raises():
    fake = FakeExecutor(outcome=START_FAILED)
    with pytest.raises(StartError):
        RemoteExecutor(executor=fake).upload_dir("box", "/tmp/x", "/srv")

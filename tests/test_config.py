import pytest

from posix_exec.config import CONFIG_ENV_VAR, ExecConfig
from posix_exec.errors import ConfigError


def test_defaults_when_no_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    cfg = ExecConfig.load()
    assert cfg.shell == "sh"
    assert cfg.rsync_flags == ["-acrv"]
    assert cfg.timeout is None


def test_load_from_default_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    (tmp_path / "posix_exec.yaml").write_text("shell: bash\ntimeout: 30\n", encoding="utf-8")
    cfg = ExecConfig.load()
    assert cfg.shell == "bash"
    assert cfg.timeout == 30.0


def test_load_from_env_var(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("ssh_extra_args: -p 2222\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert ExecConfig.load().ssh_args() == ["-p", "2222"]


def test_explicit_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        ExecConfig.load(str(tmp_path / "nope.yaml"))


def test_unknown_keys_raise(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("shel: bash\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        ExecConfig.load(str(path))


def test_invalid_types_raise():
    with pytest.raises(ConfigError):
        ExecConfig.from_dict({"rsync_flags": "-a"})
    with pytest.raises(ConfigError):
        ExecConfig.from_dict({"timeout": -1})


def test_save_and_reload(tmp_path):
    cfg = ExecConfig(rsync="/usr/local/bin/rsync", rsync_flags=["-az"])
    path = cfg.save(str(tmp_path / "out" / "posix_exec.yaml"))
    assert ExecConfig.load(str(path)) == cfg


def test_rsh_quotes_extra_args():
    cfg = ExecConfig(ssh_extra_args="-i '/keys/my key'")
    assert cfg.rsh() == "ssh -i '/keys/my key'"


def test_unknown_encoding_raises():
    with pytest.raises(ConfigError):
        ExecConfig.from_dict({"encoding": "no-such-codec"})
    assert ExecConfig.from_dict({"encoding": "latin-1"}).encoding == "latin-1"

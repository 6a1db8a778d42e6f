from __future__ import annotations

import codecs
import os
import shlex
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import List, Optional

import yaml

from .errors import ConfigError

CONFIG_ENV_VAR = "POSIX_EXEC_CONFIG"
DEFAULT_CONFIG_NAME = "posix_exec.yaml"


@dataclass
class ExecConfig:
    """Program names and flags used by the shell and remote wrappers."""

    shell: str = "sh"
    ssh: str = "ssh"
    remote_shell_command: str = "sh -il"
    ssh_extra_args: str = ""  # e.g. "-o BatchMode=yes -p 2222"
    rsync: str = "rsync"
    rsync_flags: List[str] = field(default_factory=lambda: ["-acrv"])
    encoding: str = "utf-8"
    timeout: Optional[float] = None

    def ssh_args(self) -> List[str]:
        extra = (self.ssh_extra_args or "").strip()
        if not extra:
            return []
        try:
            return shlex.split(extra)
        except ValueError as exc:
            raise ConfigError(f"ssh_extra_args is not valid shell syntax: {extra!r}") from exc

    def rsh(self) -> str:
        """Value for rsync's ``--rsh`` option."""
        return shlex.join([self.ssh, *self.ssh_args()])

    @classmethod
    def from_dict(cls, raw: dict) -> "ExecConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        cfg = cls()
        for key, value in raw.items():
            if key == "rsync_flags":
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigError("rsync_flags must be a list of strings")
                value = list(value)
            elif key == "timeout":
                if value is not None:
                    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                        raise ConfigError("timeout must be a positive number or null")
                    value = float(value)
            elif key == "encoding":
                if not isinstance(value, str):
                    raise ConfigError("encoding must be a string")
                try:
                    codecs.lookup(value)
                except LookupError as exc:
                    raise ConfigError(f"Unknown encoding: {value!r}") from exc
            elif not isinstance(value, str):
                raise ConfigError(f"{key} must be a string")
            setattr(cfg, key, value)
        return cfg

    @classmethod
    def load(cls, path: Optional[str] = None) -> "ExecConfig":
        """Load configuration from *path*, ``$POSIX_EXEC_CONFIG`` or ``./posix_exec.yaml``.

        Falls back to defaults when no file is named and the default file
        does not exist. A file that was named explicitly must exist.
        """
        explicit = path or os.environ.get(CONFIG_ENV_VAR)
        if explicit:
            config_path = Path(explicit)
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_path}")
        else:
            config_path = Path.cwd() / DEFAULT_CONFIG_NAME
            if not config_path.exists():
                return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"{config_path} must contain a mapping")
        return cls.from_dict(raw)

    def save(self, path: str) -> Path:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, "w", encoding="utf-8") as f:
            yaml.safe_dump(asdict(self), f, sort_keys=False)
        return out

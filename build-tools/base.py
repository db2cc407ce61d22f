import os
import sys
import logging
import platform
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from errors import ConfigError

PROTOC_NAME = "protoc"
PROTOC_VERSION = "3.5.1"
PROTOC_URL = (
    "https://github.com/google/protobuf/releases/download"
    "/v{version}/{name}-{version}-{os}-{arch}.zip"
)
PROTOC_MEMBER = "bin/protoc"

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def platform_key(system: str) -> str:
    return "osx" if system == "Darwin" else "linux"


@dataclass(frozen=True)
class ToolSpec:
    name: str
    version: str
    os: str
    arch: str
    url_template: str
    member: str

    @property
    def url(self) -> str:
        return self.url_template.format(
            name=self.name, version=self.version, os=self.os, arch=self.arch,
        )


def protoc_spec(system: str | None = None, machine: str | None = None) -> ToolSpec:
    return ToolSpec(
        name=PROTOC_NAME,
        version=PROTOC_VERSION,
        os=platform_key(system if system is not None else platform.system()),
        arch=machine if machine is not None else platform.machine(),
        url_template=PROTOC_URL,
        member=PROTOC_MEMBER,
    )


def log_level_from(environ: Mapping[str, str]) -> str:
    level = (environ.get("BUILD_TOOLS_LOG_LEVEL") or "WARNING").strip().upper()
    if level not in logging.getLevelNamesMapping():
        raise ConfigError(f"BUILD_TOOLS_LOG_LEVEL: unknown level {level!r}")
    return level


def timeout_from(environ: Mapping[str, str]) -> float | None:
    raw = environ.get("PROTOC_HTTP_TIMEOUT", "").strip()
    if not raw:
        return None
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigError(f"PROTOC_HTTP_TIMEOUT: not a number: {raw!r}") from None
    if not timeout > 0:
        raise ConfigError(f"PROTOC_HTTP_TIMEOUT: must be positive, got {raw!r}")
    return timeout


@dataclass
class ProvisionEnv:
    cache_dir: Path
    http_timeout: float | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] = os.environ) -> "ProvisionEnv":
        return cls(
            cache_dir=Path(environ.get("PROTOC_CACHE_DIR") or os.getcwd()),
            http_timeout=timeout_from(environ),
            log_level=log_level_from(environ),
        )


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format=LOG_FORMAT,
    )

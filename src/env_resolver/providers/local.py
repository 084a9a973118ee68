"""Local providers: process environment, dotenv files and flat YAML files."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from dotenv import dotenv_values

from env_resolver.errors import ProviderError
from env_resolver.providers.base import ProviderSource, RawEnvironment
from env_resolver.settings import RuntimeSettings

logger = logging.getLogger(__name__)


class ProcessEnvProvider:
    """Snapshot of ``os.environ`` (or an injected mapping) at load time."""

    source = ProviderSource.PROCESS

    def __init__(self, environ: Mapping[str, str] | None = None, *, name: str = "process.env") -> None:
        self.name = name
        self._environ = environ

    async def load(self) -> RawEnvironment:
        return self.load_sync()

    def load_sync(self) -> RawEnvironment:
        environ = os.environ if self._environ is None else self._environ
        return {key: value for key, value in environ.items() if isinstance(value, str)}


class DotenvProvider:
    """Read ``KEY=value`` files with python-dotenv.

    With ``expand=True`` the provider layers ``<path>.defaults``, ``<path>``,
    ``<path>.local``, ``<path>.<env>`` and ``<path>.<env>.local``; later files win.
    Missing files contribute nothing.
    """

    source = ProviderSource.DOTENV

    def __init__(
        self,
        path: str | Path = ".env",
        *,
        expand: bool = False,
        environment: str | None = None,
        name: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.expand = expand
        self._environment = environment
        prefix = "dotenv-expand" if expand else "dotenv"
        self.name = name or f"{prefix}({self.path.as_posix()})"

    async def load(self) -> RawEnvironment:
        return await asyncio.to_thread(self.load_sync)

    def load_sync(self) -> RawEnvironment:
        merged: RawEnvironment = {}
        for candidate in self.candidate_paths():
            if not candidate.is_file():
                continue
            merged.update(self._read(candidate))
        return merged

    def candidate_paths(self) -> tuple[Path, ...]:
        if not self.expand:
            return (self.path,)
        env = self._environment or RuntimeSettings.from_env().environment
        base = str(self.path)
        return (
            Path(f"{base}.defaults"),
            self.path,
            Path(f"{base}.local"),
            Path(f"{base}.{env}"),
            Path(f"{base}.{env}.local"),
        )

    def _read(self, path: Path) -> RawEnvironment:
        try:
            parsed = dotenv_values(path, interpolate=False, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ProviderError(self.name, f"unable to read {path}: {exc}") from exc
        values = {key: value for key, value in parsed.items() if value is not None}
        logger.debug(
            "dotenv file loaded", extra={"provider": self.name, "path": str(path), "keys": len(values)}
        )
        return values


class YamlFileProvider:
    """Read a flat YAML mapping; scalars are rendered as strings.

    Nested mappings and lists are rendered as JSON so ``json`` fields can read them.
    """

    source = ProviderSource.FILE

    def __init__(self, path: str | Path, *, required: bool = False, name: str | None = None) -> None:
        self.path = Path(path)
        self.required = required
        self.name = name or f"yaml({self.path.as_posix()})"

    async def load(self) -> RawEnvironment:
        return await asyncio.to_thread(self.load_sync)

    def load_sync(self) -> RawEnvironment:
        if not self.path.exists():
            if self.required:
                raise ProviderError(self.name, f"file not found: {self.path}")
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                parsed = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ProviderError(self.name, f"invalid YAML in {self.path}: {exc}") from exc
        except OSError as exc:
            raise ProviderError(self.name, f"unable to read {self.path}: {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, Mapping):
            raise ProviderError(self.name, f"YAML root must be a mapping: {self.path}")

        out: RawEnvironment = {}
        for key, value in parsed.items():
            if value is None:
                continue
            out[str(key)] = _render_scalar(value)
        return out


def _render_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def process_env(environ: Mapping[str, str] | None = None) -> ProcessEnvProvider:
    return ProcessEnvProvider(environ)


def dotenv(
    path: str | Path = ".env", *, expand: bool = False, environment: str | None = None
) -> DotenvProvider:
    return DotenvProvider(path, expand=expand, environment=environment)


def yaml_file(path: str | Path, *, required: bool = False) -> YamlFileProvider:
    return YamlFileProvider(path, required=required)


__all__ = [
    "DotenvProvider",
    "ProcessEnvProvider",
    "YamlFileProvider",
    "dotenv",
    "process_env",
    "yaml_file",
]

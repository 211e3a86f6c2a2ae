"""Classification sets for the interrupt-context audit and their loader."""

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable

import toml
import yaml
from loguru import logger

DEFAULT_SOURCE_FUNCTION = "x86_exception_handler"

# Blocking primitives that must never run in interrupt context
DEFAULT_BLACKLIST = frozenset(
    {
        "mutex_acquire",
        "mutex_acquire_timeout",
        "mutex_acquire_timeout_internal",
    }
)

# A path ends when it reaches one of these
DEFAULT_SINKS = frozenset({"thread_preempt", "panic", "_panic"})

CONFIG_SECTION = "context_audit"


class AuditConfigError(ValueError):
    """Raised when an audit configuration file cannot be used."""


@dataclass(frozen=True)
class AuditConfig:
    """Source, blacklist and sink display names for one audit run."""

    source_function: str = DEFAULT_SOURCE_FUNCTION
    blacklist: frozenset[str] = field(default=DEFAULT_BLACKLIST)
    sinks: frozenset[str] = field(default=DEFAULT_SINKS)

    def __post_init__(self):
        # Accept any iterable of names but always store frozensets
        object.__setattr__(self, "blacklist", frozenset(self.blacklist))
        object.__setattr__(self, "sinks", frozenset(self.sinks))

    def is_source(self, name: str) -> bool:
        return name == self.source_function

    def is_sink(self, name: str) -> bool:
        return name in self.sinks

    def is_blacklisted(self, name: str) -> bool:
        return name in self.blacklist

    def with_overrides(
        self,
        source_function: str | None = None,
        blacklist: Iterable[str] | None = None,
        sinks: Iterable[str] | None = None,
    ) -> "AuditConfig":
        """Return a copy with every given override applied."""
        changes: dict[str, Any] = {}
        if source_function:
            changes["source_function"] = source_function
        if blacklist is not None:
            changes["blacklist"] = frozenset(blacklist)
        if sinks is not None:
            changes["sinks"] = frozenset(sinks)
        return replace(self, **changes)


SUPPORTED_FORMATS = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
}


def read_structured_file(
    file_path: Path, error: type[Exception] = AuditConfigError
) -> dict[str, Any]:
    """Read a JSON, YAML or TOML file whose root is a mapping."""
    format_type = SUPPORTED_FORMATS.get(file_path.suffix.lower())
    if not format_type:
        raise error(f"Unsupported file format: {file_path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise error(f"Cannot read {file_path}: {e}") from e

    try:
        if format_type == "json":
            data = json.loads(content)
        elif format_type == "yaml":
            data = yaml.safe_load(content)
        else:
            data = toml.loads(content)
    except (json.JSONDecodeError, yaml.YAMLError, toml.TomlDecodeError) as e:
        raise error(f"Failed to parse {format_type} file {file_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise error(f"Root must be a mapping: {file_path}")
    return data


def _name_set(data: dict[str, Any], key: str, file_path: Path) -> frozenset[str] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise AuditConfigError(f"'{key}' must be a list of names in {file_path}")
    return frozenset(value)


def load_config(file_path: Path, base: AuditConfig | None = None) -> AuditConfig:
    """Load classification sets from a YAML, TOML or JSON file.

    Keys left out of the file keep the values of ``base`` (the defaults when
    no base is given). The keys may also sit under a ``context_audit`` table.
    """
    file_path = Path(file_path)
    data = read_structured_file(file_path)
    if isinstance(data.get(CONFIG_SECTION), dict):
        data = data[CONFIG_SECTION]

    source = data.get("source_function")
    if source is not None and not isinstance(source, str):
        raise AuditConfigError(f"'source_function' must be a string in {file_path}")

    config = (base or AuditConfig()).with_overrides(
        source_function=source,
        blacklist=_name_set(data, "blacklist", file_path),
        sinks=_name_set(data, "sinks", file_path),
    )
    logger.info(
        f"Loaded audit config from {file_path}: source={config.source_function}, "
        f"{len(config.blacklist)} blacklisted, {len(config.sinks)} sinks"
    )
    return config

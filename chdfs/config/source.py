"""Key-value configuration source with typed getters.

Values can come from a plain mapping or from a YAML file. Nested mappings are
flattened into dotted keys so both of these describe the same setting::

    fs.ofs.user.appid: 1250000000

    fs:
      ofs:
        user:
          appid: 1250000000

String values may reference the environment as ``${VAR}`` or
``${VAR:default}``; YAML files are expanded on load.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Union

import yaml

from chdfs.exceptions import ConfigError, ConfigErrorReason

logger = logging.getLogger(__name__)

_DECIMAL_PATTERN = re.compile(r"^[+-]?\d+$")
_HEX_PATTERN = re.compile(r"^([+-]?)0[xX]([0-9a-fA-F]+)$")
_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::(?P<default>[^}]*))?\}")


def _flatten(values: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in values.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten(value, full_key))
        else:
            flat[full_key] = value
    return flat


def parse_int(value: Any) -> int:
    """Parse an integer setting the way Hadoop's ``Configuration.getLong`` does.

    Accepts ints and decimal or ``0x`` hex strings (surrounding whitespace is
    ignored). Raises ValueError for anything else, including booleans.
    """
    if isinstance(value, bool):
        raise ValueError(f"boolean {value!r} is not a number")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError(f"{value!r} is not a number")
    text = value.strip()
    if _DECIMAL_PATTERN.match(text):
        return int(text)
    hex_match = _HEX_PATTERN.match(text)
    if hex_match:
        sign, digits = hex_match.groups()
        number = int(digits, 16)
        return -number if sign == "-" else number
    raise ValueError(f"{value!r} is not a number")


def expand_env_references(key: str, value: Any) -> Any:
    """Expand ``${VAR}`` and ``${VAR:default}`` in a string value (or list of them).

    Raises:
        ConfigError: If a referenced variable is unset and has no default
    """
    if isinstance(value, list):
        return [expand_env_references(key, item) for item in value]
    if not isinstance(value, str):
        return value

    def lookup(match: "re.Match[str]") -> str:
        name = match.group("name")
        if name in os.environ:
            return os.environ[name]
        if match.group("default") is not None:
            return match.group("default")
        raise ConfigError(
            f"config {key} references environment variable {name}, which is not set and has no default",
            reason=ConfigErrorReason.INVALID_SOURCE,
            key=key,
        )

    return _ENV_REFERENCE.sub(lookup, value)


class Configuration(Mapping[str, Any]):
    """Flat, dotted-key configuration with Hadoop-style typed accessors."""

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = _flatten(values or {})

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Configuration({self._values!r})"

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._values.get(key)
        if value is None:
            return default
        return str(value)

    def get_int(self, key: str, default: int) -> int:
        """Return the integer value of ``key``, or ``default`` when absent.

        Raises:
            ValueError: If the key is present but not a number
        """
        value = self._values.get(key)
        if value is None:
            return default
        return parse_int(value)

    def get_bool(self, key: str, default: bool) -> bool:
        """Return the boolean value of ``key``; unrecognised values yield ``default``."""
        value = self._values.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text == "true":
                return True
            if text == "false":
                return False
        return default

    @classmethod
    def from_yaml(cls, path: Union[str, Path], *, enable_env_substitution: bool = True) -> "Configuration":
        """Load a YAML mapping file into a Configuration.

        Raises:
            ConfigError: If the file is missing, unparsable, not a mapping, or
                references an unset environment variable
        """
        config_path = Path(path)
        logger.info("Loading config from %s", config_path)
        try:
            with open(config_path, "r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
        except OSError as exc:
            raise ConfigError(
                f"Config file {config_path} cannot be read: {exc}",
                reason=ConfigErrorReason.INVALID_SOURCE,
                path=str(config_path),
            ) from exc
        except yaml.YAMLError as exc:
            raise ConfigError(
                f"Invalid YAML in config file {config_path}: {exc}",
                reason=ConfigErrorReason.INVALID_SOURCE,
                path=str(config_path),
            ) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file {config_path} must contain a YAML mapping",
                reason=ConfigErrorReason.INVALID_SOURCE,
                path=str(config_path),
            )

        conf = cls(data)
        if enable_env_substitution:
            for key, value in list(conf.items()):
                conf.set(key, expand_env_references(key, value))
        return conf


ConfigSource = Union[Configuration, Mapping[str, Any]]


def as_configuration(source: Optional[ConfigSource]) -> Configuration:
    """Wrap a plain mapping into a Configuration; pass Configurations through."""
    if isinstance(source, Configuration):
        return source
    return Configuration(source or {})

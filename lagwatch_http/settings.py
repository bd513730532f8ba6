"""Layered, case-insensitive configuration store addressed by dotted keys."""

from __future__ import annotations

import re
import tomllib
from collections.abc import Mapping
from typing import Any

_MISSING = object()
_OCTAL = re.compile(r"[+-]?0[0-7_]+")
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}


def _lower_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key).lower(): _lower_keys(item) for key, item in value.items()}
    return value


def _deep_merge(base: dict, top: dict) -> dict:
    result = dict(base)
    for key, value in top.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _deep_merge(current, value)
        else:
            result[key] = value
    return result


def _to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (str, int)):
        return str(value)
    if isinstance(value, bytes):
        return value.decode()
    return ""


def _parse_int(text: str) -> int:
    head, dot, tail = text.partition(".")
    if dot and tail and set(tail) == {"0"}:
        text = head
    try:
        if _OCTAL.fullmatch(text):
            return int(text, 8)
        return int(text, 0)
    except ValueError:
        return 0


class Settings:
    """Configuration with override, file and default layers, highest first."""

    def __init__(self) -> None:
        self._overrides: dict[str, Any] = {}
        self._config: dict[str, Any] = {}
        self._defaults: dict[str, Any] = {}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        settings = cls()
        settings._config = _lower_keys(data)
        return settings

    @classmethod
    def load_toml(cls, path: str) -> "Settings":
        with open(path, "rb") as handle:
            return cls.from_mapping(tomllib.load(handle))

    def reset(self) -> None:
        self._overrides.clear()
        self._config.clear()
        self._defaults.clear()

    @staticmethod
    def _parts(key: str) -> list[str]:
        return key.lower().split(".")

    def _store(self, layer: dict, key: str, value: Any) -> None:
        *parents, leaf = self._parts(key)
        node = layer
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[leaf] = _lower_keys(value)

    def set(self, key: str, value: Any) -> None:
        self._store(self._overrides, key, value)

    def set_default(self, key: str, value: Any) -> None:
        self._store(self._defaults, key, value)

    @staticmethod
    def _search(layer: dict, parts: list[str]) -> Any:
        node: Any = layer
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str) -> Any:
        """Return the value for ``key``; maps from every layer are merged."""
        parts = self._parts(key)
        found = [
            value
            for layer in (self._overrides, self._config, self._defaults)
            if (value := self._search(layer, parts)) is not _MISSING
        ]
        if not found:
            return None
        if not isinstance(found[0], dict):
            return found[0]
        merged: dict[str, Any] = {}
        for value in reversed(found):
            if isinstance(value, dict):
                merged = _deep_merge(merged, value)
        return merged

    def is_set(self, key: str) -> bool:
        return self.get(key) is not None

    def get_string(self, key: str) -> str:
        return _to_string(self.get(key))

    def get_int(self, key: str) -> int:
        value = self.get(key)
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            return _parse_int(value)
        return 0

    def get_bool(self, key: str) -> bool:
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            return value in _TRUE
        return False

    def get_string_list(self, key: str) -> list[str]:
        value = self.get(key)
        if isinstance(value, (list, tuple)):
            return [_to_string(item) for item in value]
        if isinstance(value, str):
            return value.split()
        return []

    def get_string_map(self, key: str) -> dict[str, Any]:
        value = self.get(key)
        return dict(value) if isinstance(value, dict) else {}

    def get_string_map_string(self, key: str) -> dict[str, str]:
        value = self.get(key)
        if not isinstance(value, dict):
            return {}
        return {name: _to_string(item) for name, item in value.items()}
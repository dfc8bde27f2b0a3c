"""Config settings – sources of setting values.

A loader reports only the values its source actually holds, already
coerced to the field types. ``SettingsFactory`` layers several loaders, so a
later source never resets an earlier one back to a field default.
"""
from __future__ import annotations

import abc
import dataclasses
import os
import types
import typing
from typing import Any, Mapping, TypeVar, Union

from tagcache.config.settings.base import Settings
from tagcache.config.validation import InvalidSettingValueError

T = TypeVar("T", bound=Settings)

_TRUE_LITERALS = frozenset({"1", "true", "yes", "on"})
_NONE_LITERALS = frozenset({"", "none", "null"})


def coerce(raw: str, hint: Any) -> Any:
    """Convert the string *raw* to the resolved annotation *hint*.

    Raises ``ValueError`` when *raw* does not parse.
    """
    origin = typing.get_origin(hint)
    if origin is Union or origin is types.UnionType:
        if raw.strip().lower() in _NONE_LITERALS:
            return None
        members = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        hint = members[0] if len(members) == 1 else str
        origin = typing.get_origin(hint)
    if hint is bool:
        return raw.strip().lower() in _TRUE_LITERALS
    if hint is int:
        return int(raw)
    if hint is float:
        return float(raw)
    if hint is list or origin is list:
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


class SettingsLoader(abc.ABC):
    """Port: a source of setting values."""

    @abc.abstractmethod
    def values(self, settings_class: type[T]) -> dict[str, Any]:
        """Return the fields this source provides, keyed by field name."""

    def setting_name(self, settings_class: type[T], field_name: str) -> str:
        """Name of *field_name* as it appears in this source."""
        return field_name

    def load(self, settings_class: type[T]) -> T:
        """Build *settings_class* from this source alone."""
        return settings_class.from_values(
            self.values(settings_class),
            name_for=lambda name: self.setting_name(settings_class, name),
        )


class EnvSettingsLoader(SettingsLoader):
    """Read ``<PREFIX>_<FIELD>`` variables from the environment.

    *environ* defaults to ``os.environ``; tests can pass a plain dict.
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ

    def _source(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def setting_name(self, settings_class: type[T], field_name: str) -> str:
        return f"{settings_class._prefix}_{field_name}".upper().lstrip("_")

    def values(self, settings_class: type[T]) -> dict[str, Any]:
        source = self._source()
        hints = typing.get_type_hints(settings_class)
        found: dict[str, Any] = {}
        for field in dataclasses.fields(settings_class):  # type: ignore[arg-type]
            env_key = self.setting_name(settings_class, field.name)
            raw = source.get(env_key)
            if raw is None:
                continue
            try:
                found[field.name] = coerce(raw, hints.get(field.name, str))
            except ValueError as exc:
                raise InvalidSettingValueError(env_key, raw, str(exc)) from exc
        return found


class DotenvSettingsLoader(EnvSettingsLoader):
    """Read ``<PREFIX>_<FIELD>`` pairs from a ``.env`` file.

    Variables already set in the process environment win unless
    *override* is true. ``os.environ`` itself is left untouched.
    """

    def __init__(self, env_file: str = ".env", override: bool = False) -> None:
        super().__init__()
        self._env_file = env_file
        self._override = override

    def _source(self) -> Mapping[str, str]:
        try:
            from dotenv import dotenv_values  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError("Install 'tagcache[dotenv]' to use DotenvSettingsLoader") from exc
        file_values = {k: v for k, v in dotenv_values(self._env_file).items() if v is not None}
        if self._override:
            return {**os.environ, **file_values}
        return {**file_values, **os.environ}


__all__ = ["DotenvSettingsLoader", "EnvSettingsLoader", "SettingsLoader", "coerce"]

"""Config settings – SettingsFactory."""
from __future__ import annotations

from typing import Any, Sequence, TypeVar

from tagcache.config.settings.base import Settings
from tagcache.config.settings.loaders import SettingsLoader
from tagcache.observability.logging import get_logger

T = TypeVar("T", bound=Settings)

_log = get_logger(__name__)


class SettingsFactory:
    """Layer several loaders and explicit overrides into one settings object.

    Precedence, lowest first: field defaults, each loader in order,
    *overrides*. A loader that raises is logged as
    ``settings_loader_skipped`` and contributes nothing.
    """

    @staticmethod
    def create(
        settings_cls: type[T],
        loaders: Sequence[SettingsLoader] | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> T:
        """Build *settings_cls*.

        Raises
        ------
        MissingRequiredSettingError
            A field without a default is provided by no source.
        InvalidSettingValueError
            The merged values fail the class's own validation.
        ConfigError
            Any other construction failure, e.g. an unknown override key.
        """
        merged: dict[str, Any] = {}
        sources: dict[str, str] = {}

        for loader in loaders or []:
            name = type(loader).__name__
            try:
                found = loader.values(settings_cls)
            except Exception as exc:  # noqa: BLE001 – skip failing loaders
                _log.warning("settings_loader_skipped", loader=name, error=str(exc))
                continue
            merged.update(found)
            sources.update(dict.fromkeys(found, name))

        if overrides:
            merged.update(overrides)
            sources.update(dict.fromkeys(overrides, "overrides"))

        settings = settings_cls.from_values(merged)
        _log.debug("settings_loaded", settings=settings_cls.__name__, sources=sources)
        return settings


__all__ = ["SettingsFactory"]

"""Config settings – Settings base class."""
from __future__ import annotations

import dataclasses
from typing import Any, Callable, ClassVar, Mapping, TypeVar

from tagcache.config.validation import ConfigError, MissingRequiredSettingError

S = TypeVar("S", bound="Settings")


@dataclasses.dataclass
class Settings:
    """Base class for 12-factor settings.

    Subclasses set ``_prefix``; ``EnvSettingsLoader`` reads
    ``<PREFIX>_<FIELD>`` environment variables. ``_validate`` runs on every
    construction, so an instance is never observed in an invalid state.
    """

    _prefix: ClassVar[str] = ""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Override to add cross-field validation."""

    @classmethod
    def from_values(
        cls: type[S],
        values: Mapping[str, Any],
        name_for: Callable[[str], str] | None = None,
    ) -> S:
        """Construct from *values*, falling back to field defaults.

        *name_for* maps a field name to the name reported when a required
        field is absent (an env loader reports ``CACHE_REDIS_URL`` rather
        than ``redis_url``).
        """
        for field in dataclasses.fields(cls):  # type: ignore[arg-type]
            if field.name in values:
                continue
            if field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING:
                raise MissingRequiredSettingError(name_for(field.name) if name_for else field.name)
        try:
            return cls(**values)
        except ConfigError:
            raise
        except Exception as exc:
            raise ConfigError(f"Failed to construct {cls.__name__}: {exc}") from exc


__all__ = ["Settings"]

"""Configuration extensions and the typed per-project registry that owns them."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar, cast

from buildgate.errors import (
    ConfigurationError,
    DuplicateExtensionError,
    UnknownExtensionError,
)
from buildgate.lazy import Property, Provider

E = TypeVar("E")


class ConfigurationExtension:
    """Named bundle of :class:`~buildgate.lazy.Property` fields for one integration.

    Fields are read/write during configuration and read-only once
    :meth:`freeze` has run at finalization.
    """

    integration: ClassVar[str] = "extension"

    def __init__(self) -> None:
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def properties(self) -> Iterator[tuple[str, Property[Any]]]:
        for name, value in vars(self).items():
            if isinstance(value, Property):
                yield name, value

    def freeze(self) -> None:
        for _, prop in self.properties():
            prop.freeze()
        self._frozen = True


@dataclass(frozen=True, slots=True)
class ExtensionKey(Generic[E]):
    """Typed identifier used instead of untyped name lookups."""

    name: str
    extension_type: type[E]


class ExtensionRegistry:
    """One instance per key per project; lookups return the declared type."""

    __slots__ = ("_by_name",)

    def __init__(self) -> None:
        self._by_name: dict[str, tuple[ExtensionKey[Any], object]] = {}

    def create(self, key: ExtensionKey[E], *args: object, **kwargs: object) -> E:
        if key.name in self._by_name:
            raise DuplicateExtensionError(f"extension already registered: {key.name}")
        instance = key.extension_type(*args, **kwargs)
        self._by_name[key.name] = (key, instance)
        return instance

    def add(self, key: ExtensionKey[E], instance: E) -> E:
        if key.name in self._by_name:
            raise DuplicateExtensionError(f"extension already registered: {key.name}")
        if not isinstance(instance, key.extension_type):
            raise ConfigurationError(
                f"extension {key.name} must be a {key.extension_type.__name__}"
            )
        self._by_name[key.name] = (key, instance)
        return instance

    def get(self, key: ExtensionKey[E]) -> E:
        found = self.find(key)
        if found is None:
            raise UnknownExtensionError(f"extension not registered: {key.name}")
        return found

    def find(self, key: ExtensionKey[E]) -> E | None:
        entry = self._by_name.get(key.name)
        if entry is None:
            return None
        registered_key, instance = entry
        if registered_key.extension_type is not key.extension_type:
            raise UnknownExtensionError(
                f"extension {key.name} is a {registered_key.extension_type.__name__}, "
                f"not a {key.extension_type.__name__}"
            )
        return cast("E", instance)

    def configuration_extensions(self) -> tuple[ConfigurationExtension, ...]:
        return tuple(
            instance
            for _, instance in self._by_name.values()
            if isinstance(instance, ConfigurationExtension)
        )

    def freeze_all(self) -> None:
        for extension in self.configuration_extensions():
            extension.freeze()


def configure(extension: ConfigurationExtension, settings: Mapping[str, object]) -> None:
    """Apply user settings (snake_case keys) as explicit values."""

    available = dict(extension.properties())
    unknown = sorted(key for key in settings if key not in available)
    if unknown:
        raise ConfigurationError(
            f"unknown {extension.integration} settings: {', '.join(unknown)}"
        )
    for key in sorted(settings):
        value = settings[key]
        prop = available[key]
        if isinstance(value, Provider):
            prop.set(value)
            continue
        try:
            prop.set(_coerce_setting(prop, value))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"{extension.integration}.{key}: {exc}") from exc


def _coerce_setting(prop: Property[Any], value: object) -> object:
    coerce = getattr(prop.value_type, "of", None)
    if isinstance(value, str) and callable(coerce):
        parsed = coerce(value)
        if parsed is None:
            raise ValueError(f"unsupported value {value!r}")
        return parsed
    return value


__all__ = [
    "ConfigurationExtension",
    "ExtensionKey",
    "ExtensionRegistry",
    "configure",
]

"""Deferred, possibly-unset values and the combinators that compose them.

A :class:`Provider` never evaluates eagerly: every read walks the chain of
combinators again, so a provider built during configuration observes whatever
state exists at the moment it is read. Unset values propagate through
``map``/``zip``/``filter`` without invoking the supplied functions.

:class:`Property` is the mutable flavour owned by configuration extensions. Its
state is an explicit tagged variant (``Unset | Convention | Explicit | Derived``)
instead of hidden provider machinery.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Generic, TypeVar, cast

from buildgate.errors import ConfigurationFrozenError, UnsetValueError

T = TypeVar("T")
U = TypeVar("U")
V = TypeVar("V")


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<unset>"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()


class Provider(Generic[T]):
    """Read-only deferred value."""

    __slots__ = ("_compute", "_description")

    def __init__(
        self,
        compute: Callable[[], T | _Missing],
        *,
        description: str = "provider",
    ) -> None:
        self._compute = compute
        self._description = description

    @property
    def description(self) -> str:
        return self._description

    def _resolve(self) -> T | _Missing:
        return self._compute()

    def get(self) -> T:
        """Return the resolved value or raise :class:`UnsetValueError`."""
        value = self._resolve()
        if value is MISSING:
            raise UnsetValueError(self._description)
        return cast("T", value)

    def get_or_none(self) -> T | None:
        value = self._resolve()
        if value is MISSING:
            return None
        return cast("T", value)

    def get_or_else(self, default: T) -> T:
        value = self._resolve()
        if value is MISSING:
            return default
        return cast("T", value)

    def is_present(self) -> bool:
        return self._resolve() is not MISSING

    def map(self, fn: Callable[[T], U | None]) -> Provider[U]:
        """Apply ``fn`` on read. ``fn`` returning ``None`` yields an unset value."""

        def compute() -> U | _Missing:
            value = self._resolve()
            if value is MISSING:
                return MISSING
            result = fn(cast("T", value))
            return MISSING if result is None else result

        return Provider(compute, description=f"map({self._description})")

    def flat_map(self, fn: Callable[[T], Provider[U]]) -> Provider[U]:
        def compute() -> U | _Missing:
            value = self._resolve()
            if value is MISSING:
                return MISSING
            return fn(cast("T", value))._resolve()

        return Provider(compute, description=f"flat_map({self._description})")

    def zip(self, other: Provider[U], fn: Callable[[T, U], V | None]) -> Provider[V]:
        """Combine two providers; unset on either side short-circuits ``fn``."""

        def compute() -> V | _Missing:
            left = self._resolve()
            if left is MISSING:
                return MISSING
            right = other._resolve()
            if right is MISSING:
                return MISSING
            result = fn(cast("T", left), cast("U", right))
            return MISSING if result is None else result

        return Provider(
            compute, description=f"zip({self._description}, {other.description})"
        )

    def filter(self, predicate: Callable[[T], bool]) -> Provider[T]:
        def compute() -> T | _Missing:
            value = self._resolve()
            if value is MISSING:
                return MISSING
            return value if predicate(cast("T", value)) else MISSING

        return Provider(compute, description=f"filter({self._description})")

    def or_else(self, fallback: T | Provider[T]) -> Provider[T]:
        def compute() -> T | _Missing:
            value = self._resolve()
            if value is not MISSING:
                return value
            if isinstance(fallback, Provider):
                return cast("Provider[T]", fallback)._resolve()
            return fallback

        return Provider(compute, description=f"or_else({self._description})")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._description})"


@dataclass(frozen=True, slots=True)
class Unset:
    """No value and no convention."""


@dataclass(frozen=True, slots=True)
class Convention(Generic[T]):
    """Fallback used when nothing explicit was ever supplied."""

    default: T | Provider[T]


@dataclass(frozen=True, slots=True)
class Explicit(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Derived(Generic[T]):
    source: Provider[T]


ValueState = Unset | Convention[Any] | Explicit[Any] | Derived[Any]
UNSET: Final = Unset()


class Property(Provider[T]):
    """Mutable lazy value with a convention, writable until frozen.

    Resolution order: the last explicit or derived write, then the convention.
    A derived write whose source is unset falls back to the convention. Values
    coming from providers are type-checked and validated when read.
    """

    __slots__ = (
        "_value_type",
        "_validator",
        "_normalize",
        "_override",
        "_convention",
        "_frozen",
    )

    def __init__(
        self,
        value_type: type[T],
        *,
        name: str = "property",
        validator: Callable[[T], None] | None = None,
        normalize: Callable[[T], T] | None = None,
    ) -> None:
        super().__init__(self._resolve_state, description=name)
        self._value_type = value_type
        self._validator = validator
        self._normalize = normalize
        self._override: Unset | Explicit[T] | Derived[T] = UNSET
        self._convention: Unset | Convention[T] = UNSET
        self._frozen = False

    @property
    def name(self) -> str:
        return self._description

    @property
    def value_type(self) -> type[T]:
        return self._value_type

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def state(self) -> ValueState:
        """Effective variant: an explicit/derived write wins over the convention."""
        if not isinstance(self._override, Unset):
            return self._override
        return self._convention

    def set(self, value: T | Provider[T]) -> Property[T]:
        self._assert_writable()
        if isinstance(value, Provider):
            self._override = Derived(cast("Provider[T]", value))
        else:
            self._override = Explicit(self._check(value))
        return self

    def unset(self) -> Property[T]:
        self._assert_writable()
        self._override = UNSET
        return self

    def convention(self, default: T | Provider[T]) -> Property[T]:
        self._assert_writable()
        if isinstance(default, Provider):
            self._convention = Convention(cast("Provider[T]", default))
        else:
            self._convention = Convention(self._check(default))
        return self

    def freeze(self) -> None:
        self._frozen = True

    def _resolve_state(self) -> T | _Missing:
        override = self._override
        if isinstance(override, Explicit):
            return override.value
        if isinstance(override, Derived):
            value = override.source._resolve()
            if value is not MISSING:
                return self._check(value)
        convention = self._convention
        if isinstance(convention, Convention):
            default = convention.default
            if isinstance(default, Provider):
                value = cast("Provider[T]", default)._resolve()
                return MISSING if value is MISSING else self._check(value)
            return default
        return MISSING

    def _assert_writable(self) -> None:
        if self._frozen:
            raise ConfigurationFrozenError(
                f"{self._description} cannot be changed after finalization"
            )

    def _check(self, value: object) -> T:
        if value is None:
            raise TypeError(f"{self._description} does not accept None; use unset()")
        expected = self._value_type
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        elif expected is Path and isinstance(value, str):
            value = Path(value)
        if not isinstance(value, expected) or (
            isinstance(value, bool) and expected in (int, float)
        ):
            raise TypeError(
                f"{self._description} expects {expected.__name__}, got {type(value).__name__}"
            )
        checked = cast("T", value)
        if self._normalize is not None:
            checked = self._normalize(checked)
        if self._validator is not None:
            self._validator(checked)
        return checked


def provider_of(value: T) -> Provider[T]:
    """Provider that always resolves to ``value``."""
    return Provider(lambda: value, description=repr(value))


def not_defined() -> Provider[Any]:
    return Provider(lambda: MISSING, description="not defined")


def provider_from(fn: Callable[[], T | None], *, description: str = "provider") -> Provider[T]:
    """Provider over a plain callable; ``None`` means unset."""

    def compute() -> T | _Missing:
        result = fn()
        return MISSING if result is None else result

    return Provider(compute, description=description)


__all__ = [
    "MISSING",
    "UNSET",
    "Convention",
    "Derived",
    "Explicit",
    "Property",
    "Provider",
    "Unset",
    "ValueState",
    "not_defined",
    "provider_from",
    "provider_of",
]

"""Typed field access for YAML config sections.

Errors name the dotted key (``api.timeout``) so a bad file points straight
at the offending entry. Validators share one signature, ``(value, key)``,
and are passed to :func:`read_field`.
"""

from __future__ import annotations

from typing import Any, Callable, Collection, Mapping, TypeVar

T = TypeVar("T")
Validator = Callable[[Any, str], T]

_REQUIRED: Any = object()


def get_section(raw: Mapping[str, Any], key: str, *, required: bool) -> Mapping[str, Any]:
    """Return the ``key`` mapping of the root config.

    Raises:
        ValueError: If a required section is missing.
        TypeError: If the section is not a mapping.
    """
    section = raw.get(key)
    if section is None:
        if required:
            raise ValueError(f"Missing required config: {key}")
        return {}
    if not isinstance(section, Mapping):
        raise TypeError(f"{key} must be an object")
    return section


def read_field(
    section: Mapping[str, Any],
    prefix: str,
    name: str,
    expect: Validator[T],
    default: Any = _REQUIRED,
) -> T:
    """Read ``prefix.name`` from ``section`` and validate it with ``expect``.

    Without ``default`` the key is mandatory. Defaults go through the same
    validator, so a wrong default fails as loudly as a wrong file.
    """
    key = f"{prefix}.{name}"
    if name in section:
        return expect(section[name], key)
    if default is _REQUIRED:
        raise ValueError(f"Missing required config: {key}")
    return expect(default, key)


def _check_type(value: Any, key: str, types: tuple[type, ...], noun: str) -> Any:
    # bool is an int subclass; only accept it where asked for explicitly.
    if (isinstance(value, bool) and bool not in types) or not isinstance(value, types):
        raise TypeError(f"{key} must be {noun}")
    return value


def expect_str(value: Any, key: str) -> str:
    return _check_type(value, key, (str,), "a string")


def expect_bool(value: Any, key: str) -> bool:
    return _check_type(value, key, (bool,), "a boolean")


def expect_int(value: Any, key: str) -> int:
    return _check_type(value, key, (int,), "an integer")


def expect_float(value: Any, key: str) -> float:
    return float(_check_type(value, key, (int, float), "a number"))


def one_of(choices: Collection[str]) -> Validator[str]:
    """Build a validator accepting a case-insensitive member of ``choices``."""

    def _expect(value: Any, key: str) -> str:
        normalized = expect_str(value, key).strip().lower()
        if normalized not in choices:
            raise ValueError(f"{key} must be one of {sorted(choices)}")
        return normalized

    return _expect

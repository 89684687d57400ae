"""Column transforms: declarative rules mapped onto value mutations.

Each :class:`ColumnTransform` is compiled once from its config entry, which
validates the free-form ``config``/``config2`` strings, then applied to one
value at a time with the table's :class:`~customs.transforms.RandomSource`.

Values arrive as the driver returns them: ``None`` for NULL, ``str`` or
``bytes`` for text and binary columns, numbers and temporal types
otherwise. Generated values are ``str`` except for ``ipv6_bin`` (``bytes``),
``random_int`` (``int``) and ``null`` (``None``).
"""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from customs.constants import PRESERVE_EMPTY_KINDS, TransformKind
from customs.exceptions import TransformConfigError
from customs.transforms.random_source import LOWER_ALPHANUMERIC
from customs.utils.hashing import hash_to_charset

if TYPE_CHECKING:
    from customs.config import TransformConfig
    from customs.transforms.random_source import RandomSource

__all__ = [
    "MAX_INT",
    "ColumnTransform",
    "apply_transform",
    "is_empty",
    "parse_int_range",
]

MAX_INT = 2**63 - 1
DEFAULT_ALPHANUM_LENGTH = 6
DEFAULT_LOREM_LENGTH = 20
DEFAULT_MONEY_MAX = Decimal("500.00")
EMAIL_HASH_LENGTH = 11
DOMAIN_HASH_LENGTH = 6
HOSTNAME_PREFIX_LENGTH = 2

_RANGE = re.compile(r"^\s*(-?\d+)\s*-\s*(-?\d+)\s*$")


def is_empty(value: Any) -> bool:
    """NULL, empty string and empty bytes count as empty."""
    if value is None:
        return True
    if isinstance(value, (str, bytes, bytearray)):
        return len(value) == 0
    return False


def _empty_like(value: Any) -> str | bytes:
    return b"" if isinstance(value, (bytes, bytearray)) else ""


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8", "surrogateescape")
    # NULL and non-text values hash as the empty string
    return b""


def _as_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", "surrogateescape")
    if value is None:
        return ""
    return str(value)


def parse_int_range(config: str | None) -> tuple[int, int]:
    """
    Parse a ``random_int`` range.

    Parameters
    ----------
    config : str | None
        ``"low-high"``, a single upper bound, or empty

    Returns
    -------
    tuple[int, int]
        Inclusive bounds; ``(0, bound)`` for a single bound and
        ``(0, MAX_INT)`` when empty

    Raises
    ------
    TransformConfigError
        If the string is neither form, or low exceeds high

    Examples
    --------
    >>> parse_int_range("10-20")
    (10, 20)
    >>> parse_int_range("99")
    (0, 99)
    """
    if config is None or not config.strip():
        return 0, MAX_INT
    match = _RANGE.match(config)
    if match:
        low, high = int(match.group(1)), int(match.group(2))
    else:
        try:
            low, high = 0, int(config.strip())
        except ValueError:
            raise TransformConfigError(
                f"random_int config must be 'low-high' or an upper bound, got {config!r}"
            ) from None
    if low > high:
        raise TransformConfigError(f"random_int range is empty: {config!r}")
    return low, high


def _parse_length(kind: TransformKind, config: str | None, default: int) -> int:
    if config is None or not config.strip():
        return default
    try:
        length = int(config.strip())
    except ValueError:
        raise TransformConfigError(
            f"{kind.value} config must be an integer length, got {config!r}"
        ) from None
    if length < 0:
        raise TransformConfigError(f"{kind.value} length must not be negative: {config!r}")
    return length


def _parse_money(config: str | None) -> Decimal:
    if config is None or not config.strip():
        return DEFAULT_MONEY_MAX
    try:
        amount = Decimal(config.strip())
    except InvalidOperation:
        raise TransformConfigError(
            f"random_money config must be a decimal amount, got {config!r}"
        ) from None
    if not amount.is_finite() or amount < 0:
        raise TransformConfigError(f"random_money maximum must be >= 0: {config!r}")
    return amount


@dataclass(frozen=True)
class ColumnTransform:
    """
    One compiled transform rule.

    Attributes
    ----------
    kind : TransformKind
        Transform kind
    config : str | None
        First parameter (replacement, length, range, maximum or pattern)
    config2 : str | None
        Second parameter (regex replacement)
    pattern : re.Pattern | None
        Compiled ``config`` for ``regex``
    length : int
        Output length for ``random_alphanum`` and ``lorem_ipsum``
    int_range : tuple[int, int]
        Inclusive bounds for ``random_int``
    money_max : Decimal
        Upper bound for ``random_money``
    """

    kind: TransformKind
    config: str | None = None
    config2: str | None = None
    pattern: re.Pattern | None = None
    length: int = 0
    int_range: tuple[int, int] = (0, MAX_INT)
    money_max: Decimal = DEFAULT_MONEY_MAX

    @classmethod
    def compile(
        cls, kind: TransformKind, config: str | None = None, config2: str | None = None
    ) -> ColumnTransform:
        """
        Validate parameters and build a transform.

        Raises
        ------
        TransformConfigError
            For a missing or invalid regex, or malformed length, range or
            amount strings
        """
        kind = TransformKind(kind)
        params: dict[str, Any] = {}
        if kind is TransformKind.REGEX:
            if not config:
                raise TransformConfigError("regex transform requires a pattern in config")
            try:
                params["pattern"] = re.compile(config)
            except re.error as e:
                raise TransformConfigError(f"Invalid regex {config!r}: {e}") from e
        elif kind is TransformKind.RANDOM_ALPHANUM:
            params["length"] = _parse_length(kind, config, DEFAULT_ALPHANUM_LENGTH)
        elif kind is TransformKind.LOREM_IPSUM:
            params["length"] = _parse_length(kind, config, DEFAULT_LOREM_LENGTH)
        elif kind is TransformKind.RANDOM_INT:
            params["int_range"] = parse_int_range(config)
        elif kind is TransformKind.RANDOM_MONEY:
            params["money_max"] = _parse_money(config)
        return cls(kind=kind, config=config, config2=config2, **params)

    @classmethod
    def from_config(cls, transform: TransformConfig) -> ColumnTransform:
        return cls.compile(transform.kind, transform.config, transform.config2)

    def apply(self, source: RandomSource, value: Any) -> Any:
        """Return the transformed value; the original is never mutated."""
        if self.kind in PRESERVE_EMPTY_KINDS and is_empty(value):
            return value
        return _HANDLERS[self.kind](self, source, value)


def apply_transform(
    kind: TransformKind,
    source: RandomSource,
    value: Any,
    config: str | None = None,
    config2: str | None = None,
) -> Any:
    """Compile and apply a single transform."""
    return ColumnTransform.compile(kind, config, config2).apply(source, value)


# -- handlers -----------------------------------------------------------------

Handler = Callable[[ColumnTransform, "RandomSource", Any], Any]


def _replace_if_not_empty(t: ColumnTransform, source: RandomSource, value: Any) -> Any:
    if is_empty(value):
        return _empty_like(value)
    return t.config or ""


def _addr1(t: ColumnTransform, source: RandomSource, value: Any) -> str:
    number = source.randint(0, 255)
    return f"{number} {source.fake.last_name()} {source.fake.street_suffix()}"


def _hostname(t: ColumnTransform, source: RandomSource, value: Any) -> str:
    text = _as_text(value)
    prefix = text[:HOSTNAME_PREFIX_LENGTH]
    return prefix + source.string(len(text) - len(prefix), LOWER_ALPHANUMERIC)


def _email_hash(t: ColumnTransform, source: RandomSource, value: Any) -> str:
    return f"{hash_to_charset(_as_bytes(value), EMAIL_HASH_LENGTH)}@example"


def _domain_hash(t: ColumnTransform, source: RandomSource, value: Any) -> str:
    return f"{hash_to_charset(_as_bytes(value), DOMAIN_HASH_LENGTH)}.example"


def _ipv6_bin(t: ColumnTransform, source: RandomSource, value: Any) -> bytes:
    return ipaddress.IPv6Address(source.fake.ipv6()).packed


def _lorem_ipsum(t: ColumnTransform, source: RandomSource, value: Any) -> str:
    text = ""
    while len(text) < t.length:
        word = source.fake.word()
        text = f"{text} {word}" if text else word
    return text[: t.length]


def _random_int(t: ColumnTransform, source: RandomSource, value: Any) -> int:
    low, high = t.int_range
    return source.randint(low, high)


def _random_money(t: ColumnTransform, source: RandomSource, value: Any) -> str:
    cents = source.randint(0, int(t.money_max * 100))
    return f"{cents // 100}.{cents % 100:02d}"


def _regex(t: ColumnTransform, source: RandomSource, value: Any) -> Any:
    if value is None:
        return None
    return t.pattern.sub(t.config2 or "", _as_text(value))


_HANDLERS: dict[TransformKind, Handler] = {
    TransformKind.EMPTY: lambda t, s, v: _empty_like(v),
    TransformKind.NULL: lambda t, s, v: None,
    TransformKind.REPLACE: lambda t, s, v: t.config or "",
    TransformKind.REPLACE_IF_NOT_EMPTY: _replace_if_not_empty,
    TransformKind.FIRSTNAME: lambda t, s, v: s.fake.first_name(),
    TransformKind.LASTNAME: lambda t, s, v: s.fake.last_name(),
    TransformKind.FULLNAME: lambda t, s, v: s.fake.name(),
    TransformKind.ORGANIZATION: lambda t, s, v: s.fake.company(),
    TransformKind.ADDR1: _addr1,
    TransformKind.ADDR2: lambda t, s, v: s.fake.secondary_address(),
    TransformKind.CITY: lambda t, s, v: s.fake.city(),
    TransformKind.POSTAL_CODE: lambda t, s, v: s.fake.postcode(),
    TransformKind.PHONE: lambda t, s, v: s.fake.phone_number(),
    TransformKind.STATE_CODE: lambda t, s, v: s.fake.state_abbr(),
    TransformKind.COUNTRY_CODE: lambda t, s, v: s.fake.country_code(),
    TransformKind.MAC_ADDRESS: lambda t, s, v: s.fake.mac_address(),
    TransformKind.USERNAME: lambda t, s, v: s.fake.user_name(),
    TransformKind.EMAIL: lambda t, s, v: s.fake.email(),
    TransformKind.EMAIL_HASH: _email_hash,
    TransformKind.DOMAIN_HASH: _domain_hash,
    TransformKind.HOSTNAME: _hostname,
    TransformKind.IPV4: lambda t, s, v: s.fake.ipv4(),
    TransformKind.IPV6: lambda t, s, v: s.fake.ipv6(),
    TransformKind.IPV6_BIN: _ipv6_bin,
    TransformKind.RANDOM_ALPHANUM: lambda t, s, v: s.string(t.length),
    TransformKind.LOREM_IPSUM: _lorem_ipsum,
    TransformKind.RANDOM_INT: _random_int,
    TransformKind.RANDOM_MONEY: _random_money,
    TransformKind.REGEX: _regex,
}

"""Version parsing, ordering and version range expressions."""

from __future__ import annotations

import functools
import re
from typing import TYPE_CHECKING

from .errors import MalformedRangeError

if TYPE_CHECKING:
    from collections.abc import Iterable

SNAPSHOT = "SNAPSHOT"

_TOKEN_RE = re.compile(r"\d+|[^\W\d_]+")
_LEADING_DIGITS_RE = re.compile(r"^(\d+)(.*)$")
_TIMESTAMP_RE = re.compile(r"^.*-\d{8}\.\d{6}-\d+$")


def _token_key(token: str) -> tuple[int, int | str]:
    # numbers sort before words
    if token.isdigit():
        return 0, int(token)
    return 1, token.lower()


@functools.total_ordering
class Version:
    """A dot and dash separated version string.

    The leading numeric segments are compared numerically, with trailing zeros being insignificant, so that
    ``1.0`` and ``1.0.0`` are the same version. Whatever follows is the qualifier. A qualified version always
    sorts before the same numeric version without a qualifier, so ``1.0-SNAPSHOT < 1.0``.
    """

    def __init__(self, text: str) -> None:
        """Parse a version string.

        Args:
            text: The version, for example ``4.13.2`` or ``2.0-SNAPSHOT``

        Raises:
            ValueError: if the version string is empty

        """
        text = text.strip()
        if not _TOKEN_RE.search(text):
            msg = f"Invalid version string {text!r}"
            raise ValueError(msg)
        self.text: str = text

        head, separator, tail = text.partition("-")
        numeric: list[int] = []
        qualifier = tail
        segments = head.split(".")
        for i, segment in enumerate(segments):
            m = _LEADING_DIGITS_RE.match(segment)
            if m is None:
                qualifier = ".".join(segments[i:]) + (separator + tail if separator else "")
                break
            numeric.append(int(m.group(1)))
            if m.group(2):
                qualifier = ".".join([m.group(2), *segments[i + 1 :]]) + (separator + tail if separator else "")
                break
        while numeric and numeric[-1] == 0:
            numeric.pop()
        self.numeric: tuple[int, ...] = tuple(numeric)
        self.qualifier: tuple[str, ...] = tuple(_TOKEN_RE.findall(qualifier))
        self._key = (
            self.numeric,
            0 if self.qualifier else 1,
            tuple(_token_key(t) for t in self.qualifier),
        )

    @property
    def tokens(self) -> tuple[str, ...]:
        """All tokens of the version in order, as they were written."""
        return tuple(_TOKEN_RE.findall(self.text))

    @property
    def is_snapshot(self) -> bool:
        return self.text.upper().endswith(f"-{SNAPSHOT}") or bool(_TIMESTAMP_RE.match(self.text))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Version):
            return self._key == other._key
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.text!r})"


def compare_versions(a: str | Version, b: str | Version) -> int:
    """Compare two versions, returning -1, 0 or 1."""
    if isinstance(a, str):
        a = Version(a)
    if isinstance(b, str):
        b = Version(b)
    if a < b:
        return -1
    if a == b:
        return 0
    return 1


class VersionRange:
    """A set of versions described by two optional bounds or by a version prefix."""

    def __init__(
        self,
        lower: Version | None = None,
        upper: Version | None = None,
        *,
        lower_inclusive: bool = True,
        upper_inclusive: bool = False,
        prefix: tuple[str, ...] | None = None,
    ) -> None:
        if lower is not None and upper is not None:
            if lower > upper:
                msg = f"Range lower bound {lower} is greater than upper bound {upper}"
                raise MalformedRangeError(msg)
            if lower == upper and not (lower_inclusive and upper_inclusive):
                msg = f"Range ({lower},{upper}) can not contain any version"
                raise MalformedRangeError(msg)
        self.lower: Version | None = lower
        self.upper: Version | None = upper
        self.lower_inclusive: bool = lower_inclusive and lower is not None
        self.upper_inclusive: bool = upper_inclusive and upper is not None
        self.prefix: tuple[str, ...] | None = prefix

    @classmethod
    def exactly(cls, version: str | Version) -> VersionRange:
        """Return the range containing only ``version``."""
        if isinstance(version, str):
            version = Version(version)
        return cls(version, version, lower_inclusive=True, upper_inclusive=True)

    @classmethod
    def unbounded(cls) -> VersionRange:
        """Return the range containing every version."""
        return cls(prefix=())

    @property
    def is_exact(self) -> bool:
        return self.prefix is None and self.lower is not None and self.lower == self.upper

    def contains(self, version: str | Version) -> bool:
        """Check whether ``version`` lies inside this range."""
        if isinstance(version, str):
            version = Version(version)
        if self.prefix is not None:
            tokens = version.tokens
            if len(tokens) < len(self.prefix):
                return False
            return all(_token_key(a) == _token_key(b) for a, b in zip(tokens, self.prefix))
        if self.lower is not None:
            if version < self.lower or (version == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if version > self.upper or (version == self.upper and not self.upper_inclusive):
                return False
        return True

    __contains__ = contains

    def filter(self, versions: Iterable[Version]) -> list[Version]:
        """Return the distinct versions inside this range, sorted ascending."""
        return sorted({v for v in versions if self.contains(v)})

    def __eq__(self, other: object) -> bool:
        return isinstance(other, VersionRange) and str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))

    def __str__(self) -> str:
        if self.prefix is not None:
            return ".".join((*self.prefix, "*"))
        if self.is_exact:
            return f"[{self.lower}]"
        return "{}{},{}{}".format(
            "[" if self.lower_inclusive else "(",
            "" if self.lower is None else self.lower,
            "" if self.upper is None else self.upper,
            "]" if self.upper_inclusive else ")",
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self)!r})"


def is_range_expression(text: str) -> bool:
    """Check if ``text`` is a range or prefix rather than a plain version."""
    text = text.strip()
    return bool(text) and (text[0] in "[(" or text[-1] in "])" or "*" in text)


def _parse_prefix(text: str, original: str) -> VersionRange:
    if text == "*":
        return VersionRange.unbounded()
    if not text.endswith(".*") or "*" in text[:-2]:
        msg = f"Wildcard must be the last segment of {original!r}"
        raise MalformedRangeError(msg)
    prefix = tuple(_TOKEN_RE.findall(text[:-2]))
    if not prefix:
        msg = f"Empty version prefix in {original!r}"
        raise MalformedRangeError(msg)
    return VersionRange(prefix=prefix)


def _parse_bound(text: str, original: str) -> Version | None:
    text = text.strip()
    if not text:
        return None
    try:
        return Version(text)
    except ValueError as e:
        msg = f"Invalid bound {text!r} in range {original!r}"
        raise MalformedRangeError(msg) from e


def parse_version_range(text: str) -> VersionRange:
    """Parse a version range expression.

    Accepted forms are ``[a,b]``, ``[a,b)``, ``(a,b]``, ``(a,b)``, ``(a,)``, ``(,b]``, ``[a]``, a bare prefix such
    as ``1.2.*`` (also inside brackets, ``[1.2.*]``) and a bare version, which is the range containing exactly
    that version.

    Raises:
        MalformedRangeError: on unbalanced brackets or non-monotonic bounds

    """
    expression = text.strip()
    if not expression:
        msg = "Empty version range"
        raise MalformedRangeError(msg)
    opening, closing = expression[0], expression[-1]
    if opening not in "[(" and closing not in "])":
        if any(c in expression for c in "[]()"):
            msg = f"Unbalanced brackets in version range {text!r}"
            raise MalformedRangeError(msg)
        if "*" in expression:
            return _parse_prefix(expression, text)
        if "," in expression:
            msg = f"Version range {text!r} must be enclosed in brackets"
            raise MalformedRangeError(msg)
        return VersionRange.exactly(_parse_bound(expression, text))  # type: ignore[arg-type]

    if len(expression) < 2 or opening not in "[(" or closing not in "])":  # noqa: PLR2004
        msg = f"Unbalanced brackets in version range {text!r}"
        raise MalformedRangeError(msg)
    inner = expression[1:-1]
    if any(c in inner for c in "[]()"):
        msg = f"Unbalanced brackets in version range {text!r}"
        raise MalformedRangeError(msg)

    if "," not in inner:
        if opening != "[" or closing != "]":
            msg = f"Single version range {text!r} must use inclusive brackets"
            raise MalformedRangeError(msg)
        inner = inner.strip()
        if "*" in inner:
            return _parse_prefix(inner, text)
        version = _parse_bound(inner, text)
        if version is None:
            msg = f"Empty version range {text!r}"
            raise MalformedRangeError(msg)
        return VersionRange.exactly(version)

    if inner.count(",") > 1:
        msg = f"Too many bounds in version range {text!r}"
        raise MalformedRangeError(msg)
    lower_text, upper_text = inner.split(",")
    return VersionRange(
        _parse_bound(lower_text, text),
        _parse_bound(upper_text, text),
        lower_inclusive=opening == "[",
        upper_inclusive=closing == "]",
    )

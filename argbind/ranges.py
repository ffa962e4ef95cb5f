"""
Argbind ranges: closed-or-unbounded integer intervals.

A Range describes either an arity (how many string tokens an argument
consumes) or a positional index (which argument positions a positional
parameter claims).

Text forms
- "N"      exactly N            (min == max == N)
- "N..M"   from N to M          (N <= M)
- "N..*"   N or more            (variable)
- "*"      zero or more         (same as "0..*")
- "..M"    zero to M
- "N.."    N or more            (same as "N..*")
- ".."     zero or more         (same as "0..*")

Ranges are immutable values: equality, hashing and ordering use the bounds
only, and copies-with-change keep 0 <= min <= max.
"""
import functools
import re
import sys

from .faults import InvalidRangeError
from .utils import Unset, coalesce

UNBOUNDED = sys.maxsize
"""Upper bound used by variable ranges ("N..*")."""

_PATTERN = re.compile(r"(?:(?P<min>\d+)?\s*\.\.\s*(?P<max>\d+|\*)?|(?P<fixed>\d+|\*))")


@functools.total_ordering
class Range:
    """
    Integer interval with an optional unbounded upper end.

    Parameters
    - min: lower bound (int >= 0).
    - max: upper bound; Unset means "same as min", UNBOUNDED means variable.
    - unspecified: marks a range that was derived rather than declared
      (used for default arities). Ignored by equality.
    - original: the text the range was parsed from, when parsed.
    """
    __slots__ = ("_min", "_max", "_unspecified", "_original")

    def __init__(self, min, max=Unset, /, *, unspecified=False, original=Unset):
        max = coalesce(max, min)
        for bound in (min, max):
            if not isinstance(bound, int) or isinstance(bound, bool):
                raise TypeError("range bounds must be integers")
        if min < 0 or max < 0:
            raise InvalidRangeError(f"Invalid negative range (min={min}, max={max})")
        if min > max:
            raise InvalidRangeError(f"Invalid range (min={min}, max={max}): min must not exceed max")
        self._min = min
        self._max = max
        self._unspecified = bool(unspecified)
        self._original = coalesce(original, None)

    @classmethod
    def parse(cls, text, /):
        """
        Build a Range from its text form (see the module docstring).

        Raises InvalidRangeError for anything else.
        """
        if not isinstance(text, str):
            raise TypeError("Range.parse() argument must be a string")
        if not (match := _PATTERN.fullmatch(stripped := text.strip())):
            raise InvalidRangeError(f"Invalid range {text!r}: expected 'N', 'N..M' or 'N..*'")
        if (fixed := match["fixed"]) is not None:
            if fixed == "*":
                return cls(0, UNBOUNDED, original=stripped)
            return cls(int(fixed), original=stripped)
        upper = match["max"]
        return cls(
            int(match["min"] or 0),
            UNBOUNDED if upper in (None, "*") else int(upper),
            original=stripped,
        )

    @classmethod
    def of(cls, object, /):
        """Coerce a Range, an int or a range string into a Range."""
        if isinstance(object, Range):
            return object
        if isinstance(object, int) and not isinstance(object, bool):
            return cls(object)
        if isinstance(object, str):
            return cls.parse(object)
        raise TypeError(f"cannot build a range from {type(object).__name__!r}")

    @classmethod
    def capacity(cls, arity, index, /):
        """
        Total number of tokens a positional with this arity and index can take.
        """
        if arity.max == 0 or index.size == 1:
            return arity
        if index.variable:
            return cls(arity.min, UNBOUNDED)
        if arity.size == 1:
            return cls(arity.min * index.size)
        if arity.variable:
            return cls(arity.min * index.size, UNBOUNDED)
        return cls(arity.min * index.size, arity.max * index.size)

    @property
    def min(self):
        return self._min

    @property
    def max(self):
        return self._max

    @property
    def variable(self):
        return self._max == UNBOUNDED

    @property
    def unspecified(self):
        return self._unspecified

    @property
    def original(self):
        return self._original

    @property
    def size(self):
        return 1 + self._max - self._min

    def contains(self, value, /):
        return self._min <= value <= self._max

    __contains__ = contains

    def with_min(self, min, /):
        return Range(min, max(min, self._max), unspecified=self._unspecified)

    def with_max(self, max, /):
        return Range(min(self._min, max), max, unspecified=self._unspecified)

    def __replace__(self, *unused, **changes):
        assert not unused, "positional arguments are not allowed"
        return Range(
            changes.get("min", self._min),
            changes.get("max", self._max),
            unspecified=changes.get("unspecified", self._unspecified),
        )

    def __eq__(self, other):
        if not isinstance(other, Range):
            return NotImplemented
        return (self._min, self._max) == (other._min, other._max)

    def __lt__(self, other):
        if not isinstance(other, Range):
            return NotImplemented
        return (self._min, self._max) < (other._min, other._max)

    def __hash__(self):
        return hash((self._min, self._max, self.variable))

    def __str__(self):
        if self._min == self._max:
            return str(self._min)
        return f"{self._min}..{"*" if self.variable else self._max}"

    def __repr__(self):
        return f"Range({str(self)!r})"


__all__ = (
    "Range",
    "UNBOUNDED",
)

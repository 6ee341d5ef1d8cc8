"""Date format patterns: grammar, rendering and strict parsing.

Patterns use the PHP ``date()`` letters (``Y-m-d H:i:s``, ``U``, ``U.u``,
``Y-m-d\\TH:i:sP``...). A backslash escapes the following character. The
pattern itself is tokenized by a small Lark grammar and cached.
"""

from __future__ import annotations

import calendar
import enum
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache

from lark import Lark, Token
from lark.exceptions import LarkError

from pydatenorm._constants import RFC2822, RFC3339, TWO_DIGIT_YEAR_PIVOT
from pydatenorm._errors import (
    ERR_MSG_INVALID_PATTERN,
    FormatPatternError,
    InvalidTimezoneError,
)
from pydatenorm._timezones import (
    OFFSET_RE,
    UTC,
    ensure_aware,
    format_offset,
    resolve_timezone,
    timezone_name,
)

SPECIFIERS = "dDjlNSwzWFmMntLoYyaABgGhHisuveIOPpTZcrU"

_GRAMMAR = r"""
pattern: (ESCAPE | SPECIFIER | LITERAL)*

ESCAPE: /\\[\s\S]?/
SPECIFIER: /[dDjlNSwzWFmMntLoYyaABgGhHisuveIOPpTZcrU]/
LITERAL: /[^\\dDjlNSwzWFmMntLoYyaABgGhHisuveIOPpTZcrU]/
"""

_pattern_parser = Lark(_GRAMMAR, start="pattern", parser="lalr")

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_DAY_LOOKUP: dict[str, int] = {}
for _i, _name in enumerate(DAY_NAMES):
    _DAY_LOOKUP[_name.lower()] = _i
    _DAY_LOOKUP[_name[:3].lower()] = _i

_MONTH_LOOKUP: dict[str, int] = {}
for _i, _name in enumerate(MONTH_NAMES, start=1):
    _MONTH_LOOKUP[_name.lower()] = _i
    _MONTH_LOOKUP[_name[:3].lower()] = _i
_MONTH_LOOKUP["sept"] = 9

DIGITS = "0123456789"
SEPARATORS = ";:/.,-()"
BLANKS = " \t\u00a0\u202f"

_WORD_RE = re.compile(r"[A-Za-z]+")
_TZ_OFFSET_RE = re.compile(r"(?:GMT|UTC)?[+-]\d{1,2}(?::?\d{2})?(?::?\d{2})?")
_TZ_NAME_RE = re.compile(r"[A-Za-z][A-Za-z0-9_/+\-]*")
_SIGNED_INT_RE = re.compile(r"[+-]?[0-9]+")
_MERIDIAN_RE = re.compile(r"([AaPp])\.?[Mm]\.?")


class TokenKind(enum.Enum):
    """Kinds of pattern tokens."""

    SPECIFIER = "specifier"
    ESCAPE = "escape"
    LITERAL = "literal"


@dataclass(frozen=True)
class FormatToken:
    """A single element of a compiled format pattern."""

    kind: TokenKind
    char: str
    offset: int = 0


@lru_cache(maxsize=128)
def compile_pattern(pattern: str) -> tuple[FormatToken, ...]:
    """Tokenize a format pattern.

    Raises FormatPatternError if the grammar rejects the pattern.
    """
    try:
        tree = _pattern_parser.parse(pattern)
    except LarkError as e:
        raise FormatPatternError(
            ERR_MSG_INVALID_PATTERN,
            f"cannot parse format pattern {pattern!r}: {e}",
            wrapped=e,
        ) from e

    tokens: list[FormatToken] = []
    for tok in tree.children:
        if not isinstance(tok, Token):
            continue
        if tok.type == "ESCAPE":
            tokens.append(FormatToken(TokenKind.ESCAPE, str(tok)[1:], tok.start_pos or 0))
        elif tok.type == "SPECIFIER":
            tokens.append(FormatToken(TokenKind.SPECIFIER, str(tok), tok.start_pos or 0))
        else:
            tokens.append(FormatToken(TokenKind.LITERAL, str(tok), tok.start_pos or 0))
    return tuple(tokens)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _ordinal_suffix(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def _epoch_seconds(dt: datetime) -> int:
    return calendar.timegm(dt.utctimetuple())


def _swatch_beat(dt: datetime) -> str:
    utc = dt.astimezone(timezone.utc)
    seconds = utc.hour * 3600 + utc.minute * 60 + utc.second + 3600
    return f"{int((seconds % 86400) / 86.4):03d}"


def _abbreviation(dt: datetime) -> str:
    name = dt.tzname() or ""
    if not name or name.startswith(("UTC+", "UTC-")):
        return format_offset(dt.utcoffset())
    return name


_RENDERERS: dict[str, Callable[[datetime], str]] = {
    # Day
    "d": lambda dt: f"{dt.day:02d}",
    "D": lambda dt: DAY_NAMES[dt.weekday()][:3],
    "j": lambda dt: str(dt.day),
    "l": lambda dt: DAY_NAMES[dt.weekday()],
    "N": lambda dt: str(dt.isoweekday()),
    "S": lambda dt: _ordinal_suffix(dt.day),
    "w": lambda dt: str(dt.isoweekday() % 7),
    "z": lambda dt: str(dt.timetuple().tm_yday - 1),
    # Week
    "W": lambda dt: f"{dt.isocalendar()[1]:02d}",
    # Month
    "F": lambda dt: MONTH_NAMES[dt.month - 1],
    "m": lambda dt: f"{dt.month:02d}",
    "M": lambda dt: MONTH_NAMES[dt.month - 1][:3],
    "n": lambda dt: str(dt.month),
    "t": lambda dt: str(calendar.monthrange(dt.year, dt.month)[1]),
    # Year
    "L": lambda dt: "1" if calendar.isleap(dt.year) else "0",
    "o": lambda dt: str(dt.isocalendar()[0]),
    "Y": lambda dt: f"{dt.year:04d}",
    "y": lambda dt: f"{dt.year % 100:02d}",
    # Time
    "a": lambda dt: "am" if dt.hour < 12 else "pm",
    "A": lambda dt: "AM" if dt.hour < 12 else "PM",
    "B": _swatch_beat,
    "g": lambda dt: str(dt.hour % 12 or 12),
    "G": lambda dt: str(dt.hour),
    "h": lambda dt: f"{dt.hour % 12 or 12:02d}",
    "H": lambda dt: f"{dt.hour:02d}",
    "i": lambda dt: f"{dt.minute:02d}",
    "s": lambda dt: f"{dt.second:02d}",
    "u": lambda dt: f"{dt.microsecond:06d}",
    "v": lambda dt: f"{dt.microsecond // 1000:03d}",
    # Timezone
    "e": timezone_name,
    "I": lambda dt: "1" if dt.dst() else "0",
    "O": lambda dt: format_offset(dt.utcoffset(), colon=False),
    "P": lambda dt: format_offset(dt.utcoffset()),
    "p": lambda dt: "Z" if not dt.utcoffset() else format_offset(dt.utcoffset()),
    "T": _abbreviation,
    "Z": lambda dt: str(int(dt.utcoffset().total_seconds())),
    # Full date/time
    "c": lambda dt: format_datetime(dt, RFC3339),
    "r": lambda dt: format_datetime(dt, RFC2822),
    "U": lambda dt: str(_epoch_seconds(dt)),
}


def format_datetime(value: datetime, pattern: str) -> str:
    """Render ``value`` using a PHP-style format pattern.

    Naive values are treated as UTC.
    """
    dt = ensure_aware(value)
    out: list[str] = []
    for tok in compile_pattern(pattern):
        if tok.kind is TokenKind.SPECIFIER:
            out.append(_RENDERERS[tok.char](dt))
        else:
            out.append(tok.char)
    return "".join(out)


# ---------------------------------------------------------------------------
# Strict parsing
# ---------------------------------------------------------------------------

@dataclass
class ParseResult:
    """Outcome of a strict parse: a value, or positional errors.

    ``errors`` and ``warnings`` keep the last message recorded at each
    position; the counts include every message.
    """

    value: datetime | None
    errors: dict[int, str] = field(default_factory=dict)
    error_count: int = 0
    warnings: dict[int, str] = field(default_factory=dict)
    warning_count: int = 0

    @property
    def ok(self) -> bool:
        return self.value is not None

    def formatted_errors(self) -> list[str]:
        return [f"at position {pos}: {msg}" for pos, msg in self.errors.items()]


_EPOCH_FIELDS = {
    "year": 1970,
    "month": 1,
    "day": 1,
    "hour": 0,
    "minute": 0,
    "second": 0,
    "microsecond": 0,
}


class _StrictParser:
    """Consumes a string according to a compiled pattern."""

    def __init__(
        self,
        text: str,
        tokens: tuple[FormatToken, ...],
        tz: tzinfo | None,
        now: datetime | None,
    ) -> None:
        self.text = text
        self.tokens = tokens
        self.tz = tz
        self.now = now
        self.pos = 0
        self.fields: dict[str, int | None] = dict.fromkeys(_EPOCH_FIELDS)
        self.day_of_year: int | None = None
        self.timestamp: int | None = None
        self.parsed_tz: tzinfo | None = None
        self.allow_trailing = False
        self.result = ParseResult(None)

    # --- bookkeeping ---

    def error(self, message: str, pos: int | None = None) -> None:
        self.result.errors[self.pos if pos is None else pos] = message
        self.result.error_count += 1

    def warn(self, message: str, pos: int | None = None) -> None:
        self.result.warnings[self.pos if pos is None else pos] = message
        self.result.warning_count += 1

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def read_digits(self, min_len: int, max_len: int) -> str | None:
        end = self.pos
        while end < len(self.text) and end - self.pos < max_len and self.text[end] in DIGITS:
            end += 1
        if end - self.pos < min_len:
            return None
        digits = self.text[self.pos:end]
        self.pos = end
        return digits

    def read_number(self, min_len: int, max_len: int) -> int | None:
        digits = self.read_digits(min_len, max_len)
        return None if digits is None else int(digits)

    def match(self, regex: re.Pattern[str]) -> str | None:
        m = regex.match(self.text, self.pos)
        if not m:
            return None
        self.pos = m.end()
        return m.group(0)

    # --- main loop ---

    def run(self) -> ParseResult:
        i = 0
        while i < len(self.tokens) and self.pos < len(self.text):
            tok = self.tokens[i]
            if tok.kind is TokenKind.SPECIFIER:
                self.consume_specifier(tok.char)
            elif tok.kind is TokenKind.ESCAPE:
                self.consume_escape(tok.char)
            else:
                self.consume_literal(tok.char)
            i += 1

        for tok in self.tokens[i:]:
            if tok.kind is TokenKind.LITERAL and tok.char in "!|+* ":
                self.consume_literal(tok.char)
                continue
            self.error("Not enough data available to satisfy format")
            break

        if self.pos < len(self.text):
            if self.allow_trailing:
                self.warn("Trailing data")
            else:
                self.error("Trailing data")

        if self.result.error_count:
            return self.result
        self.result.value = self.build()
        return self.result

    def consume_specifier(self, spec: str) -> None:
        f = self.fields
        if spec in "dj":
            value = self.read_number(1, 2)
            if value is None:
                self.error("A two digit day could not be found")
            else:
                f["day"] = value
        elif spec in "Dl":
            start = self.pos
            word = self.match(_WORD_RE)
            if word is None or word.lower() not in _DAY_LOOKUP:
                self.error("A textual day could not be found", start)
        elif spec == "S":
            if self.text[self.pos:self.pos + 2].lower() in ("st", "nd", "rd", "th"):
                self.pos += 2
        elif spec == "z":
            value = self.read_number(1, 3)
            if value is None or value > 365:
                self.error("A three digit day-of-year could not be found")
            else:
                self.day_of_year = value
        elif spec in "FM":
            start = self.pos
            word = self.match(_WORD_RE)
            if word is None or word.lower() not in _MONTH_LOOKUP:
                self.error("A textual month could not be found", start)
            else:
                f["month"] = _MONTH_LOOKUP[word.lower()]
        elif spec in "mn":
            value = self.read_number(1, 2)
            if value is None:
                self.error("A two digit month could not be found")
            else:
                f["month"] = value
        elif spec == "Y":
            value = self.read_number(1, 4)
            if value is None:
                self.error("A four digit year could not be found")
            else:
                f["year"] = value
        elif spec == "y":
            value = self.read_number(2, 2)
            if value is None:
                self.error("A two digit year could not be found")
            else:
                f["year"] = value + (2000 if value < TWO_DIGIT_YEAR_PIVOT else 1900)
        elif spec in "aA":
            self.consume_meridian()
        elif spec in "ghGH":
            value = self.read_number(1, 2)
            if value is None:
                self.error("A two digit hour could not be found")
            elif spec in "gh" and value > 12:
                self.error("Hour cannot be higher than 12")
            else:
                f["hour"] = value
        elif spec == "i":
            value = self.read_number(2, 2)
            if value is None:
                self.error("A two digit minute could not be found")
            else:
                f["minute"] = value
        elif spec == "s":
            value = self.read_number(2, 2)
            if value is None:
                self.error("A two digit second could not be found")
            else:
                f["second"] = value
        elif spec == "v":
            value = self.read_number(3, 3)
            if value is None:
                self.error("A three digit millisecond could not be found")
            else:
                f["microsecond"] = value * 1000
        elif spec == "u":
            digits = self.read_digits(1, 6)
            if digits is None:
                self.error("A six digit microsecond could not be found")
            else:
                f["microsecond"] = int(digits.ljust(6, "0"))
        elif spec == "U":
            raw = self.match(_SIGNED_INT_RE)
            if raw is None:
                self.error("A unix timestamp could not be found")
            else:
                self.timestamp = int(raw)
        elif spec in "eTOPp":
            self.consume_timezone()
        else:
            # Rendering-only letters must appear verbatim.
            self.consume_literal(spec)

    def consume_meridian(self) -> None:
        hour = self.fields["hour"]
        if hour is None:
            self.error("Meridian can only come after an hour has been found")
            return
        raw = self.match(_MERIDIAN_RE)
        if raw is None:
            self.error("A meridian could not be found")
            return
        if hour > 12:
            self.error("Hour cannot be higher than 12")
            return
        pm = raw[0].lower() == "p"
        self.fields["hour"] = hour % 12 + (12 if pm else 0)

    def consume_timezone(self) -> None:
        start = self.pos
        ch = self.peek()
        if ch and ch in "Zz" and not self.text[self.pos + 1:self.pos + 2].isalpha():
            self.pos += 1
            self.parsed_tz = UTC
            return
        raw = self.match(_TZ_OFFSET_RE)
        if raw is not None and OFFSET_RE.match(raw):
            self.parsed_tz = resolve_timezone(raw)
            return
        self.pos = start
        raw = self.match(_TZ_NAME_RE)
        if raw is not None:
            try:
                self.parsed_tz = resolve_timezone(raw)
                return
            except InvalidTimezoneError:
                self.pos = start
        self.error("The timezone could not be found in the database")

    def consume_escape(self, char: str) -> None:
        if not char or self.peek() != char:
            self.error("The escaped character could not be found")
            return
        self.pos += 1

    def consume_literal(self, char: str) -> None:
        if char == " ":
            while self.peek() and self.peek() in BLANKS:
                self.pos += 1
        elif char == "#":
            if self.peek() and self.peek() in SEPARATORS:
                self.pos += 1
            else:
                self.error("The separation symbol ([;:/.,-]) could not be found")
        elif char in SEPARATORS:
            if self.peek() == char:
                self.pos += 1
            else:
                self.error("The separation symbol could not be found")
        elif char == "?":
            if self.peek():
                self.pos += 1
            else:
                self.error("Unexpected data found.")
        elif char == "*":
            while self.peek() and self.peek() not in " " + SEPARATORS and self.peek() not in DIGITS:
                self.pos += 1
        elif char == "!":
            self.fields.update(_EPOCH_FIELDS)
            self.day_of_year = None
            self.timestamp = None
            self.parsed_tz = None
        elif char == "|":
            for name, value in _EPOCH_FIELDS.items():
                if self.fields[name] is None:
                    self.fields[name] = value
        elif char == "+":
            self.allow_trailing = True
        elif self.peek() == char:
            self.pos += 1
        else:
            self.error("The format separator does not match")

    # --- assembly ---

    def build(self) -> datetime | None:
        f = self.fields
        if self.timestamp is not None:
            value = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(
                seconds=self.timestamp, microseconds=f["microsecond"] or 0
            )
            if self.parsed_tz is not None:
                value = value.astimezone(self.parsed_tz)
            return value

        zone = self.parsed_tz or self.tz or UTC
        now = (self.now or datetime.now(timezone.utc)).astimezone(zone)

        year = f["year"] if f["year"] is not None else now.year
        month = f["month"] if f["month"] is not None else now.month
        day = f["day"] if f["day"] is not None else now.day
        if self.day_of_year is not None:
            month, day = 1, self.day_of_year + 1

        time_fields = ("hour", "minute", "second", "microsecond")
        if any(f[name] is not None for name in time_fields):
            hour, minute, second, micro = (f[name] or 0 for name in time_fields)
        else:
            hour, minute, second, micro = now.hour, now.minute, now.second, now.microsecond

        end = len(self.text)
        try:
            extra_years, month_index = divmod(month - 1, 12)
            base = datetime(year + extra_years, month_index + 1, 1, tzinfo=zone)
            value = base + timedelta(
                days=day - 1, hours=hour, minutes=minute, seconds=second, microseconds=micro
            )
        except (ValueError, OverflowError):
            self.error("The parsed date was invalid", end)
            return None

        if self.day_of_year is None and not (
            1 <= month <= 12 and 1 <= day <= calendar.monthrange(year, month)[1]
        ):
            self.warn("The parsed date was invalid", end)
        if hour > 23 or minute > 59 or second > 59:
            self.warn("The parsed time was invalid", end)
        return value


def parse_with_format(
    text: str,
    pattern: str,
    tz: tzinfo | None = None,
    now: datetime | None = None,
) -> ParseResult:
    """Strictly parse ``text`` with a PHP-style format pattern.

    A zone found in the text (or a ``U`` timestamp, which is UTC) wins
    over ``tz``. Fields missing from the pattern take their value from
    ``now`` (the current time by default).

    Returns a ParseResult; ``value`` is None when errors were recorded.
    """
    parser = _StrictParser(text, compile_pattern(pattern), tz, now)
    return parser.run()

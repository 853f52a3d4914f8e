"""Spreadsheet number-format codes.

Turns a value plus a format code such as ``"#,##0.00"``, ``"0%"`` or
``"yyyy-mm-dd"`` into display text.  Formatting never fails: a code that
is not recognized is treated as a custom pattern, and a custom pattern
that cannot be rendered comes back verbatim.

Codes may hold up to four ``;``-separated sections (positive, negative,
zero, text).  A negative number rendered by an explicit negative section
is shown without its sign, so ``"0.00;(0.00)"`` gives ``(1.50)`` for
``-1.5``.  Colour tokens such as ``[Red]`` are ignored.

Dates and times are spreadsheet serial days: 1 is 1900-01-01 and the
fraction is the time of day.
"""

from __future__ import annotations

import decimal
import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from sheetscript.values import display, is_number

_MAX_DECIMALS = 30

_COLOR_RE = re.compile(
    r"\[(?:black|white|red|green|blue|yellow|magenta|cyan|color\s*\d+)\]", re.IGNORECASE
)
_NUMBER_RE = re.compile(r"^(?P<thousands>#,##)?0(?:\.(?P<dec>0+))?$")
_CURRENCY_RE = re.compile(r"^(?P<symbol>[$€£¥])(?P<thousands>#,##)?0(?:\.(?P<dec>0+))?$")
_PERCENT_RE = re.compile(r"^0(?:\.(?P<dec>0+))?%$")
_SCIENTIFIC_RE = re.compile(r"^0(?:\.(?P<dec>0+))?[eE][+-]0+$")
_DATE_TOKEN_RE = re.compile(
    r'"[^"]*"|\\.|am/pm|a/p|yyyy|yy|mmmmm|mmmm|mmm|mm|m|dddd|ddd|dd|d|hh|h|ss|s|.',
    re.IGNORECASE | re.DOTALL,
)
_DATE_SEPARATORS = frozenset(" -/.:,()")
_TIME_TOKENS = frozenset({"h", "hh", "s", "ss", "am/pm", "a/p"})

_MONTHS = (
    "January", "February", "March", "April", "May", "June", "July",
    "August", "September", "October", "November", "December",
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_EPOCH = datetime(1899, 12, 30)


class FormatKind(str, Enum):
    general = "general"
    number = "number"
    currency = "currency"
    percentage = "percentage"
    scientific = "scientific"
    date = "date"
    time = "time"
    custom = "custom"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _general(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return display(value)


def _split_sections(code: str) -> list[str]:
    sections: list[str] = []
    current: list[str] = []
    quoted = False
    escaped = False
    for ch in code:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            quoted = not quoted
        elif ch == ";" and not quoted:
            sections.append("".join(current))
            current = []
            continue
        current.append(ch)
    sections.append("".join(current))
    return sections


def _fixed(value: int | float, decimals: int, thousands: bool) -> str:
    """Fixed-point text rounded half away from zero, without a sign."""
    exact = decimal.Decimal(value) if isinstance(value, int) else decimal.Decimal(repr(value))
    context = decimal.Context(prec=max(400, decimals + 320))
    rounded = abs(exact).quantize(
        decimal.Decimal(1).scaleb(-decimals), rounding=decimal.ROUND_HALF_UP, context=context
    )
    return format(rounded, f"{',' if thousands else ''}.{decimals}f")


def _group(digits: str) -> str:
    head = len(digits) % 3 or 3
    return ",".join([digits[:head]] + [digits[i:i + 3] for i in range(head, len(digits), 3)])


def serial_to_datetime(serial: float) -> datetime | None:
    """Convert spreadsheet serial days to a datetime, or ``None`` if out of range.

    Serials below 61 are shifted by a day to follow the 1900 leap-year
    convention, so serial 1 is 1900-01-01 and serial 61 is 1900-03-01.
    """
    if not math.isfinite(serial) or serial < 0:
        return None
    seconds = round(serial * 86400)
    if serial < 61:
        seconds += 86400
    try:
        return _EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        return None


def _date_tokens(pattern: str) -> list[tuple[str, str]] | None:
    """Split a date/time pattern into ``(kind, text)`` tokens.

    Kinds are ``"code"`` for date parts and ``"lit"`` for literal text.
    Returns ``None`` when the pattern holds anything else.
    """
    tokens: list[tuple[str, str]] = []
    for match in _DATE_TOKEN_RE.finditer(pattern):
        text = match.group(0)
        lowered = text.lower()
        if text.startswith('"'):
            tokens.append(("lit", text[1:-1]))
        elif text.startswith("\\"):
            tokens.append(("lit", text[1:]))
        elif len(text) > 1 or lowered in "ymdhs":
            tokens.append(("code", lowered))
        elif text in _DATE_SEPARATORS:
            tokens.append(("lit", text))
        else:
            return None
    if not any(kind == "code" for kind, _ in tokens):
        return None
    # m/mm next to hours or seconds means minutes.
    codes = [i for i, (kind, _) in enumerate(tokens) if kind == "code"]
    for pos, i in enumerate(codes):
        text = tokens[i][1]
        if text not in ("m", "mm"):
            continue
        before = tokens[codes[pos - 1]][1] if pos > 0 else ""
        after = tokens[codes[pos + 1]][1] if pos + 1 < len(codes) else ""
        if before in ("h", "hh") or after in ("s", "ss"):
            tokens[i] = ("code", "n" if text == "m" else "nn")
    return tokens


def _render_date(tokens: list[tuple[str, str]], moment: datetime) -> str:
    twelve_hour = any(text in ("am/pm", "a/p") for kind, text in tokens if kind == "code")
    hour = moment.hour
    if twelve_hour:
        hour = hour % 12 or 12
    parts = {
        "yyyy": f"{moment.year:04d}",
        "yy": f"{moment.year % 100:02d}",
        "mmmmm": _MONTHS[moment.month - 1][0],
        "mmmm": _MONTHS[moment.month - 1],
        "mmm": _MONTHS[moment.month - 1][:3],
        "mm": f"{moment.month:02d}",
        "m": str(moment.month),
        "dddd": _WEEKDAYS[moment.weekday()],
        "ddd": _WEEKDAYS[moment.weekday()][:3],
        "dd": f"{moment.day:02d}",
        "d": str(moment.day),
        "hh": f"{hour:02d}",
        "h": str(hour),
        "nn": f"{moment.minute:02d}",
        "n": str(moment.minute),
        "ss": f"{moment.second:02d}",
        "s": str(moment.second),
        "am/pm": "AM" if moment.hour < 12 else "PM",
        "a/p": "A" if moment.hour < 12 else "P",
    }
    out = []
    for kind, text in tokens:
        out.append(parts.get(text, text) if kind == "code" else text)
    return "".join(out)


# ---------------------------------------------------------------------------
# Custom patterns
# ---------------------------------------------------------------------------


def _mark_literals(pattern: str) -> list[tuple[str, bool]]:
    """Pair each character with whether it is literal (quoted or escaped)."""
    marked: list[tuple[str, bool]] = []
    quoted = False
    escaped = False
    for ch in pattern:
        if escaped:
            marked.append((ch, True))
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            quoted = not quoted
        else:
            marked.append((ch, quoted))
    return marked


def _render_custom(pattern: str, value: Any) -> str:
    marked = _mark_literals(pattern)
    if any(ch == "@" and not lit for ch, lit in marked):
        text = _general(value)
        return "".join(text if ch == "@" and not lit else ch for ch, lit in marked)

    slots = [i for i, (ch, lit) in enumerate(marked) if not lit and ch in "0#?"]
    if not slots:
        return pattern
    if not is_number(value) or (isinstance(value, float) and not math.isfinite(value)):
        return _general(value)
    first, last = slots[0], slots[-1]
    core = marked[first:last + 1]
    if any(lit or ch not in "0#?,." for ch, lit in core):
        return pattern
    core_text = "".join(ch for ch, _ in core)
    if core_text.count(".") > 1:
        return pattern
    prefix = marked[:first]
    suffix = marked[last + 1:]

    int_part, _, frac_part = core_text.partition(".")
    decimals = min(len(frac_part), _MAX_DECIMALS)
    required = frac_part.rfind("0") + 1
    min_int = int_part.count("0")
    thousands = "," in int_part

    number = value
    percents = sum(1 for ch, lit in prefix + suffix if ch == "%" and not lit)
    for _ in range(percents):
        number = number * 100

    whole, _, frac = _fixed(number, decimals, False).partition(".")
    frac = frac.rstrip("0").ljust(required, "0") if frac else ""
    if min_int == 0 and whole == "0":
        whole = ""
    whole = whole.zfill(min_int)
    if thousands and whole:
        whole = _group(whole)

    negative = number < 0 and (whole.strip("0") or frac.strip("0"))
    text = whole + ("." + frac if frac else "")
    return (
        ("-" if negative else "")
        + "".join(ch for ch, _ in prefix)
        + text
        + "".join(ch for ch, _ in suffix)
    )


# ---------------------------------------------------------------------------
# NumberFormat
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NumberFormat:
    """One parsed format-code section.

    Attributes:
        kind: Which renderer applies.
        decimals: Digits after the decimal point (number, currency,
            percentage and scientific kinds).
        thousands: Group the integer digits with commas.
        symbol: Currency symbol.
        pattern: The section text, colour tokens removed.
    """

    kind: FormatKind
    decimals: int = 0
    thousands: bool = False
    symbol: str = ""
    pattern: str = ""

    @classmethod
    def parse(cls, code: str) -> NumberFormat:
        """Classify a format code.  Only the first section of *code* is used."""
        section = _COLOR_RE.sub("", _split_sections(code)[0]).strip()
        if not section or section.lower() == "general":
            return cls(FormatKind.general, pattern=section)

        match = _NUMBER_RE.match(section)
        if match:
            return cls(
                FormatKind.number,
                decimals=len(match.group("dec") or ""),
                thousands=bool(match.group("thousands")),
                pattern=section,
            )
        match = _CURRENCY_RE.match(section)
        if match:
            return cls(
                FormatKind.currency,
                decimals=len(match.group("dec") or ""),
                thousands=bool(match.group("thousands")),
                symbol=match.group("symbol"),
                pattern=section,
            )
        match = _PERCENT_RE.match(section)
        if match:
            return cls(FormatKind.percentage, decimals=len(match.group("dec") or ""), pattern=section)
        match = _SCIENTIFIC_RE.match(section)
        if match:
            return cls(FormatKind.scientific, decimals=len(match.group("dec") or ""), pattern=section)

        tokens = _date_tokens(section)
        if tokens is not None:
            codes = {text for kind, text in tokens if kind == "code"}
            if codes <= _TIME_TOKENS | {"n", "nn"}:
                return cls(FormatKind.time, pattern=section)
            return cls(FormatKind.date, pattern=section)
        return cls(FormatKind.custom, pattern=section)

    def format(self, value: Any) -> str:
        """Render *value* with this section."""
        kind = self.kind
        if kind is FormatKind.general:
            return _general(value)
        if kind is FormatKind.custom:
            return _render_custom(self.pattern, value)
        if not is_number(value) or (isinstance(value, float) and not math.isfinite(value)):
            return _general(value)

        sign = "-" if value < 0 else ""
        if kind is FormatKind.number:
            text = _fixed(value, self.decimals, self.thousands)
            return (sign if text.strip("0.,") else "") + text
        if kind is FormatKind.currency:
            text = _fixed(value, self.decimals, self.thousands)
            return (sign if text.strip("0.,") else "") + self.symbol + text
        if kind is FormatKind.percentage:
            text = _fixed(value * 100, self.decimals, False)
            return (sign if text.strip("0.") else "") + text + "%"
        if kind is FormatKind.scientific:
            return f"{float(value):.{self.decimals}E}"

        moment = serial_to_datetime(float(value))
        tokens = _date_tokens(self.pattern)
        if moment is None or tokens is None:
            return _general(value)
        return _render_date(tokens, moment)


def format_value(value: Any, code: str) -> str:
    """Format *value* with a spreadsheet format code.

    Args:
        value: Any script value.
        code: Format code, e.g. ``"General"``, ``"$#,##0.00"``,
            ``"0.0%"``, ``"yyyy-mm-dd hh:mm"`` or ``"0.00;(0.00);-"``.

    Returns:
        Display text.  Never raises.
    """
    sections = _split_sections(code)
    if isinstance(value, str):
        section = sections[3] if len(sections) >= 4 else sections[0]
        if "@" not in section:
            return value
    elif is_number(value) and len(sections) > 1:
        if value < 0:
            section = sections[1]
            value = -value
        elif value == 0 and len(sections) >= 3:
            section = sections[2]
        else:
            section = sections[0]
    else:
        section = sections[0]
    try:
        return NumberFormat.parse(section).format(value)
    except (ArithmeticError, ValueError):
        return _general(value)

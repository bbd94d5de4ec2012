"""Render spreadsheet cell values the way a spreadsheet displays them.

Only the common number-format features are covered: General, fixed
decimals, thousands separators, percentages, literal prefixes and suffixes
(currency symbols) and date/time patterns. Anything that cannot be rendered
falls back to General.
"""

from __future__ import annotations

import calendar
import logging
import re
from datetime import date, datetime, time, timedelta

LOGGER = logging.getLogger(__name__)

GENERAL = "General"
EXCEL_EPOCH = datetime(1899, 12, 30)

_SECTION_TOKEN = re.compile(r'"[^"]*"|\\.|_.|\*.|.', re.DOTALL)
_DATE_TOKEN = re.compile(r'"[^"]*"|\\.|am/pm|a/p|y+|m+|d+|h+|s+|\.0+|.', re.IGNORECASE | re.DOTALL)
_CURRENCY = re.compile(r"\[\$([^\]-]*)(?:-[^\]]*)?\]")
_BRACKET = re.compile(r"\[[^\]]*\]")


def format_general(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return f"{value:.10g}"
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.strftime("%Y-%m-%d")
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    return str(value)


def _split_sections(number_format: str) -> list[str]:
    sections = [""]
    for token in _SECTION_TOKEN.findall(number_format):
        if token == ";":
            sections.append("")
        else:
            sections[-1] += token
    return sections


def _clean_brackets(section: str) -> str:
    section = _CURRENCY.sub(lambda match: f'"{match.group(1)}"', section)
    return _BRACKET.sub("", section)


def _strip_literals(section: str) -> str:
    return "".join(
        token for token in _SECTION_TOKEN.findall(section)
        if not token.startswith(('"', "\\", "_", "*"))
    )


def is_date_format(number_format: str | None) -> bool:
    if not number_format or number_format == GENERAL:
        return False
    section = _strip_literals(_clean_brackets(_split_sections(number_format)[0])).lower()
    if any(char in re.sub(r"\.0+", "", section) for char in "0#?"):
        return False
    return re.search(r"[ymdhs]", section) is not None


def _as_datetime(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, time):
        return datetime.combine(EXCEL_EPOCH.date(), value)
    if isinstance(value, timedelta):
        return EXCEL_EPOCH + value
    return EXCEL_EPOCH + timedelta(days=float(value))


def _render_date(moment: datetime, section: str) -> str:
    tokens = _DATE_TOKEN.findall(_clean_brackets(section))
    twelve_hour = any(token.lower() in ("am/pm", "a/p") for token in tokens)
    kinds = [token[0].lower() if token[0].lower() in "ymdhs" else None for token in tokens]

    def is_minute(position: int) -> bool:
        for previous in reversed(kinds[:position]):
            if previous is not None:
                if previous == "h":
                    return True
                break
        for following in kinds[position + 1:]:
            if following is not None:
                return following == "s"
        return False

    parts: list[str] = []
    for position, token in enumerate(tokens):
        lowered = token.lower()
        width = len(token)
        kind = kinds[position]
        if kind == "y":
            parts.append(f"{moment.year:04d}" if width > 2 else f"{moment.year % 100:02d}")
        elif kind == "m" and is_minute(position):
            parts.append(f"{moment.minute:02d}" if width > 1 else str(moment.minute))
        elif kind == "m":
            if width == 1:
                parts.append(str(moment.month))
            elif width == 2:
                parts.append(f"{moment.month:02d}")
            elif width == 3:
                parts.append(calendar.month_abbr[moment.month])
            elif width == 4:
                parts.append(calendar.month_name[moment.month])
            else:
                parts.append(calendar.month_name[moment.month][0])
        elif kind == "d":
            if width == 1:
                parts.append(str(moment.day))
            elif width == 2:
                parts.append(f"{moment.day:02d}")
            elif width == 3:
                parts.append(calendar.day_abbr[moment.weekday()])
            else:
                parts.append(calendar.day_name[moment.weekday()])
        elif kind == "h":
            hour = moment.hour
            if twelve_hour:
                hour = hour % 12 or 12
            parts.append(f"{hour:02d}" if width > 1 else str(hour))
        elif kind == "s":
            parts.append(f"{moment.second:02d}" if width > 1 else str(moment.second))
        elif lowered == "am/pm":
            parts.append("AM" if moment.hour < 12 else "PM")
        elif lowered == "a/p":
            parts.append("A" if moment.hour < 12 else "P")
        elif token.startswith(".0"):
            digits = f"{moment.microsecond:06d}"[: width - 1]
            parts.append("." + digits)
        elif token.startswith('"'):
            parts.append(token[1:-1])
        elif token.startswith("\\"):
            parts.append(token[1:])
        else:
            parts.append(token)
    return "".join(parts)


def _render_number(value: float, section: str, *, signed: bool) -> str:
    tokens = _SECTION_TOKEN.findall(_clean_brackets(section))
    placeholders = [i for i, token in enumerate(tokens) if token in ("0", "#", "?")]

    def literal(token: str) -> str:
        if token.startswith('"'):
            return token[1:-1]
        if token.startswith("\\"):
            return token[1:]
        if token.startswith("_"):
            return " "
        if token.startswith("*"):
            return ""
        return token

    percent = sum(1 for token in tokens if token == "%")
    value = value * (100 ** percent)

    if not placeholders:
        text = "".join(literal(token) for token in tokens)
        return text or format_general(value)

    first, last = placeholders[0], placeholders[-1]
    core = "".join(token for token in tokens[first:last + 1] if token in ("0", "#", "?", ".", ","))
    prefix = "".join(literal(token) for token in tokens[:first])
    suffix = "".join(literal(token) for token in tokens[last + 1:])

    integer_part, _, decimal_part = core.partition(".")
    decimals = sum(1 for char in decimal_part if char in "0#?")
    required = decimal_part.count("0")
    thousands = "," in integer_part
    min_integer = integer_part.count("0")

    magnitude = abs(value)
    text = f"{magnitude:,.{decimals}f}" if thousands else f"{magnitude:.{decimals}f}"
    if decimals > required:
        whole, _, fraction = text.partition(".")
        fraction = fraction.rstrip("0")
        if len(fraction) < required:
            fraction = fraction.ljust(required, "0")
        text = f"{whole}.{fraction}" if fraction else whole
    if not thousands and min_integer > 1:
        whole, dot, fraction = text.partition(".")
        text = whole.zfill(min_integer) + dot + fraction

    sign = "-" if signed and value < 0 and float(text.replace(",", "")) != 0 else ""
    return f"{sign}{prefix}{text}{suffix}"


def format_cell_value(value: object, number_format: str | None = GENERAL) -> str:
    """Return the displayed text of ``value`` under ``number_format``."""
    if value is None:
        return ""
    if isinstance(value, bool) or isinstance(value, str):
        return format_general(value)

    number_format = (number_format or GENERAL).strip()
    if number_format in (GENERAL, "@", ""):
        return format_general(value)

    try:
        if is_date_format(number_format):
            return _render_date(_as_datetime(value), _split_sections(number_format)[0])
        if isinstance(value, (datetime, date, time, timedelta)):
            return format_general(value)

        number = float(value)
        sections = _split_sections(number_format)
        if number < 0 and len(sections) > 1 and sections[1]:
            return _render_number(abs(number), sections[1], signed=False)
        if number == 0 and len(sections) > 2 and sections[2]:
            return _render_number(number, sections[2], signed=False)
        return _render_number(number, sections[0], signed=True)
    except (ValueError, TypeError, OverflowError, IndexError) as exc:
        LOGGER.debug("Falling back to General for format %r: %s", number_format, exc)
        return format_general(value)

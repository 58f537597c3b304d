"""
Export of crawled buildings to a quoted, comma-separated text file.

Every value is wrapped in double quotes and values are separated by a comma
and a space. Embedded double quotes are doubled. Backslashes, line feeds and
carriage returns are written as backslash escapes so that every building
stays on one line.
"""

import logging
import re
from typing import Iterable, List, Sequence, Tuple

from .constants import EXPORT_FIELDS, EXPORT_SEPARATOR, ERROR_MESSAGES
from .exceptions import WriteError
from .models import Building

# Configure logger
logger = logging.getLogger(__name__)

LINE_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r"}
LINE_UNESCAPES = {escaped[1]: raw for raw, escaped in LINE_ESCAPES.items()}

_LINE_BREAK_PATTERN = re.compile(r"[\\\n\r]")
_ESCAPE_PATTERN = re.compile(r"\\(.?)", re.DOTALL)


def _escape(value: str) -> str:
    return _LINE_BREAK_PATTERN.sub(lambda match: LINE_ESCAPES[match.group()], value)


def _unescape(value: str) -> str:
    def replace(match):
        if match.group(1) not in LINE_UNESCAPES:
            raise ValueError(f"Unknown escape sequence in {value!r}")
        return LINE_UNESCAPES[match.group(1)]
    return _ESCAPE_PATTERN.sub(replace, value)


def _quote(value: str) -> str:
    return '"' + _escape(value).replace('"', '""') + '"'


def format_row(values: Sequence[str]) -> str:
    """Format one line of the export."""
    return EXPORT_SEPARATOR.join(_quote(value) for value in values)


def format_buildings(buildings: Iterable[Building]) -> str:
    """
    Format buildings as export text.

    Args:
        buildings: Buildings to format

    Returns:
        Header line followed by one line per building, joined by newlines
    """
    lines = [format_row(EXPORT_FIELDS)]
    lines.extend(format_row(building.as_row()) for building in buildings)
    return "\n".join(lines)


def export_buildings(buildings: Iterable[Building], destination: str) -> None:
    """
    Write buildings to ``destination``, replacing any existing content.

    Args:
        buildings: Buildings to export
        destination: Path of the output file

    Raises:
        WriteError: If the file cannot be written
    """
    text = format_buildings(buildings)
    try:
        with open(destination, "w", encoding="utf-8") as f:
            f.write(text)
    except OSError as e:
        logger.error(f"Unable to write buildings to a file: {e}")
        raise WriteError(ERROR_MESSAGES["WRITE_ERROR"].format(path=destination)) from e

    logger.info(f"Data saved in the {destination} file")


def _parse_line(line: str) -> Tuple[str, ...]:
    values = []
    position = 0
    while position < len(line):
        if line[position] != '"':
            raise ValueError(f"Expected a quoted value at column {position}: {line!r}")
        position += 1
        value = []
        while True:
            end = line.find('"', position)
            if end == -1:
                raise ValueError(f"Unterminated quoted value: {line!r}")
            value.append(line[position:end])
            if line.startswith('""', end):
                value.append('"')
                position = end + 2
                continue
            position = end + 1
            break
        values.append(_unescape("".join(value)))
        if position < len(line):
            if not line.startswith(EXPORT_SEPARATOR, position):
                raise ValueError(f"Expected separator at column {position}: {line!r}")
            position += len(EXPORT_SEPARATOR)
    return tuple(values)


def parse_export(text: str) -> List[Tuple[str, ...]]:
    """
    Read export text back into value tuples.

    Args:
        text: Content produced by :func:`format_buildings`

    Returns:
        One tuple of field values per building, header excluded

    Raises:
        ValueError: If a line is not in the export format
    """
    lines = text.split("\n")
    return [_parse_line(line) for line in lines[1:]]

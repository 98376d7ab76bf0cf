"""Вибір вікна логу - рядки за останню дату"""

import os
from typing import Iterable, Iterator, List

from nginx_ip_defence.errors import FilesystemError, InputValidationError, MalformedLineError


def read_log_lines(path: str) -> List[str]:
    """Прочитати весь лог та розбити по \\n"""
    if not path:
        raise InputValidationError("Access log path is empty")
    if not os.path.exists(path):
        raise FilesystemError(f"Log file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            contents = f.read()
    except OSError as e:
        raise FilesystemError(f"Error reading log file {path}: {e}") from e

    if not contents:
        raise FilesystemError(f"Log file is empty: {path}")

    return contents.split("\n")


def latest_date(line: str) -> str:
    """Витягнути дату з рядка логу.

    Поле 3 має вигляд "[19/Oct/2026:10:00:00", береться все до першої
    двокрапки: "19/Oct/2026".
    """
    fields = line.split(" ")
    if len(fields) < 4:
        raise MalformedLineError(f"Poorly formatted line: {line!r}")

    stamp = fields[3].strip("[]")
    if not stamp:
        raise MalformedLineError("Date-time field is empty")

    colon = stamp.find(":")
    head = stamp[:colon + 1] if colon >= 0 else stamp
    result = head.strip(":")
    if not result:
        raise MalformedLineError(f"Unable to extract a date from {stamp!r}")

    return result


def reference_line(lines: List[str]) -> str:
    """Передостанній рядок (останній зазвичай порожній через \\n в кінці файлу)"""
    if not lines:
        raise MalformedLineError("No lines to take a date from")
    return lines[max(len(lines) - 2, 0)]


def window_lines(lines: Iterable[str], date: str) -> Iterator[str]:
    """Рядки що містять дату як підрядок (без розбору календаря)"""
    for line in lines:
        if date in line:
            yield line

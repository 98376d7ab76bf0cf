"""Текстові звіти: кількість запитів, whois, редиректи, blocklist"""

import socket
from typing import Callable, Iterable, Mapping

from nginx_ip_defence.errors import FilesystemError, InputValidationError, InvalidAddressError
from nginx_ip_defence.ipv4 import format_fixed_width, sorted_addresses
from nginx_ip_defence.redirects import RedirectRecord
from nginx_ip_defence.whois import UNKNOWN_COUNTRY

IP_REPORT_TITLE = "IP Address Counts Data"
WHOIS_REPORT_TITLE = "Whois Entry Data"
REDIRECT_REPORT_TITLE = "Redirection Entry Data"
BLOCKED_REPORT_TITLE = "Blocked IP Data"

NO_IP_ADDRESSES = "No IP addresses listed at this time."
NO_REDIRECTIONS = "No redirections listed at this time."
NO_BLOCKED_IPS = "No IPs blocked at this time."

HEADER_FORMAT = "Generated on: {generated_on}\n\nLog Data for {date}\n-------------------------\n\n"

COUNT_WIDTH = 7


def render_header(title: str, generated_on: str, date: str) -> str:
    return f"{title}\n\n" + HEADER_FORMAT.format(generated_on=generated_on, date=date)


def lookup_hostname(ip: str) -> str:
    """Reverse DNS; будь-яка помилка дає N/A"""
    try:
        hostname = socket.gethostbyaddr(ip)[0]
    except (OSError, UnicodeError):
        return "N/A"
    return hostname or "N/A"


def build_ip_rows(
    counter: Mapping[str, int],
    countries: Mapping[str, str],
    resolve_hostname: Callable[[str], str] = lookup_hostname
) -> str:
    """Рядки "count | ip | country | hostname" у порядку адрес"""
    if not counter:
        raise InputValidationError("IPv4 map appears empty")
    if not countries:
        raise InputValidationError(
            "WHOIS country map appears empty\n"
            "Consider checking if a whois protocol client is installed "
            "or if your network connection is functional"
        )

    rows = []
    for ip in sorted_addresses(counter):
        try:
            formatted_ip = format_fixed_width(ip)
        except InvalidAddressError:
            continue

        country = countries.get(ip, UNKNOWN_COUNTRY)
        if len(country) != 2:
            country = UNKNOWN_COUNTRY

        hostname = resolve_hostname(ip) or "N/A"
        rows.append(f"{str(counter[ip]).ljust(COUNT_WIDTH)} | {formatted_ip} | {country} | {hostname}\n")

    if not rows:
        return NO_IP_ADDRESSES
    return "".join(rows)


def build_redirect_rows(redirects: Iterable[RedirectRecord]) -> str:
    """Рядки "ip | status | target" у порядку появи"""
    rows = []
    for record in redirects:
        try:
            formatted_ip = format_fixed_width(record.ip)
        except InvalidAddressError:
            continue
        rows.append(f"{formatted_ip} | {record.status} | {record.target}\n")

    if not rows:
        return NO_REDIRECTIONS
    return "".join(rows)


def build_block_rows(block_set: Iterable[str]) -> str:
    rows = [f"{ip}\n" for ip in block_set]
    if not rows:
        return NO_BLOCKED_IPS
    return "".join(rows)


def write_report(path: str, contents: str):
    """Створити файл якщо його немає та повністю перезаписати"""
    if not path:
        raise FilesystemError("Report path is empty")
    try:
        with open(path, "w") as f:
            f.write(contents)
    except OSError as e:
        raise FilesystemError(f"Error writing report {path}: {e}") from e

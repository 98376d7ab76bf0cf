"""
Whois-запити та визначення країни IP
Текст whois не має єдиного формату, тому країна визначається евристикою
"""

import re
import subprocess
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import requests

from nginx_ip_defence.errors import ExternalProcessError, InputValidationError
from nginx_ip_defence.ipv4 import sorted_addresses
from nginx_ip_defence.logger import log_message

UNKNOWN_COUNTRY = "--"

WHOIS_ENTRY_HEADER = "Whois Entry for the following: "
WHOIS_ENTRY_SEPARATOR = "---------------------\n\n"
NO_WHOIS_ENTRIES = "No whois entries given at this time."

# Реєстри, чий вивід не містить стандартного "country:"
REGISTRY_OVERRIDES = {
    "whois.registro.br": "BR",
}

RDAP_FIELDS = ["handle", "name", "type", "startAddress", "endAddress", "country", "port43"]


class CountryExtractor:
    """Стратегія: текст whois -> 2-літерний код країни або "--"."""

    def extract(self, text: str) -> str:
        raise NotImplementedError


class RegexCountryExtractor(CountryExtractor):
    """Пошук рядків "country:" у тексті whois.

    Якщо знайдено два рядки, перемагає другий: перший зазвичай належить
    загальному блоку ARIN/RIPE, другий - національному реєстру.
    """

    COUNTRY_PATTERN = re.compile(r"[cC]ountry:[^\n]{2,32}\n")
    CODE_PATTERN = re.compile(r"[A-Za-z]{2}")

    def __init__(self, overrides: Optional[Mapping[str, str]] = None):
        self.overrides = dict(REGISTRY_OVERRIDES if overrides is None else overrides)

    def extract(self, text: str) -> str:
        matches = self.COUNTRY_PATTERN.findall(text)[:2]
        candidate = matches[-1].strip() if matches else ""

        if len(candidate) < 2:
            candidate = UNKNOWN_COUNTRY

        for marker, code in self.overrides.items():
            if marker in text:
                candidate = code
                break

        for token in candidate.split(" "):
            token = token.strip()
            if self.CODE_PATTERN.fullmatch(token):
                return token.upper()

        return UNKNOWN_COUNTRY


class CommandWhoisClient:
    """Запуск зовнішньої команди whois"""

    def __init__(self, timeout: int = 30, command: str = "whois"):
        self.timeout = timeout
        self.command = command

    def lookup(self, ip: str) -> str:
        try:
            completed = subprocess.run(
                [self.command, ip],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout
            )
        except FileNotFoundError:
            raise ExternalProcessError(f"{self.command} client not found, is it installed?")
        except subprocess.TimeoutExpired:
            raise ExternalProcessError(f"{self.command} {ip} timed out after {self.timeout}s")

        output = completed.stdout or ""
        if completed.returncode == 0:
            return output

        # Статус 2 з частковим виводом вважаємо успіхом
        if completed.returncode == 2 and output:
            return output

        raise ExternalProcessError(f"{self.command} {ip} exited with status {completed.returncode}", output)


class RdapWhoisClient:
    """RDAP через HTTP, відповідь перетворюється на рядки "key: value" як у whois"""

    def __init__(self, url_template: str = "https://rdap.org/ip/{ip}", timeout: int = 30):
        self.url_template = url_template
        self.timeout = timeout

    def lookup(self, ip: str) -> str:
        url = self.url_template.format(ip=ip)
        try:
            response = requests.get(url, headers={"Accept": "application/rdap+json"}, timeout=self.timeout)
        except requests.RequestException as e:
            raise ExternalProcessError(f"RDAP request for {ip} failed: {e}")

        if response.status_code != 200:
            raise ExternalProcessError(f"RDAP request for {ip} failed: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalProcessError(f"RDAP response for {ip} is not JSON: {e}")

        lines = [f"% RDAP lookup via {url}"]
        for key in RDAP_FIELDS:
            value = data.get(key)
            if value:
                lines.append(f"{key}: {value}")
        return "\n".join(lines) + "\n"


def make_whois_client(backend: str, timeout: int = 30, rdap_url: str = "https://rdap.org/ip/{ip}"):
    """Клієнт whois за назвою backend"""
    backend = (backend or "").lower()
    if backend == "command":
        return CommandWhoisClient(timeout=timeout)
    if backend == "rdap":
        return RdapWhoisClient(url_template=rdap_url, timeout=timeout)
    raise InputValidationError(f"Unknown whois backend: {backend!r}")


def format_whois_entry(ip: str, text: str) -> str:
    return f"{WHOIS_ENTRY_HEADER}{ip}\n{text}\n\n{WHOIS_ENTRY_SEPARATOR}"


@dataclass
class WhoisResult:
    report: str = ""
    countries: Dict[str, str] = field(default_factory=dict)
    entries: int = 0


def resolve_whois(counter: Mapping[str, int], client, extractor: Optional[CountryExtractor] = None) -> WhoisResult:
    """Whois для кожної адреси по черзі (у порядку sort_key)"""
    if not counter:
        raise InputValidationError("Cannot resolve whois entries: address map is empty")

    extractor = extractor or RegexCountryExtractor()
    result = WhoisResult()

    for ip in sorted_addresses(counter):
        try:
            text = client.lookup(ip)
        except ExternalProcessError as e:
            log_message(f"Whois lookup skipped for {ip}: {e}", "WARNING")
            continue

        trimmed = (text or "").strip(" ")
        if not trimmed or trimmed == "<nil>":
            result.report += format_whois_entry(ip, "N/A")
            continue

        result.countries[ip] = extractor.extract(trimmed)
        result.report += format_whois_entry(ip, trimmed)
        result.entries += 1

    if result.entries == 0:
        result.report += NO_WHOIS_ENTRIES

    log_message(f"Resolved {len(result.countries)} of {len(counter)} address(es) via whois")
    return result

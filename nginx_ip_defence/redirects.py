"""Підрахунок запитів по IP та пошук 302 редиректів"""

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from nginx_ip_defence.ipv4 import AddressSet, is_valid_ipv4

# " 302 <bytes> "<target>" - сегмент combined-логу після рядка запиту
REDIRECT_PATTERN = re.compile(r'" 302 [0-9]{1,15} "(.{2,64})" ')


@dataclass
class RedirectRecord:
    ip: str
    status: str
    target: str


@dataclass
class ActivityResult:
    counter: Counter = field(default_factory=Counter)
    redirects: List[RedirectRecord] = field(default_factory=list)
    candidates: AddressSet = field(default_factory=AddressSet)


def parse_redirect(line: str) -> Optional[RedirectRecord]:
    """Знайти 302 редирект у рядку (ip не заповнюється)"""
    match = REDIRECT_PATTERN.search(line)
    if not match:
        return None

    pieces = match.group(0).split(" ")
    if len(pieces) < 4:
        return None

    status = pieces[1]
    if status != "302":
        return None

    target = pieces[3].strip('"')
    if not target:
        return None

    return RedirectRecord(ip="", status=status, target=target)


def extract_activity(lines: Iterable[str]) -> ActivityResult:
    """Рахувати запити по IP та збирати редиректи з рядків вікна"""
    result = ActivityResult()

    for line in lines:
        ip = line.split(" ")[0]
        # Рядок без валідної адреси пропускається повністю
        if not is_valid_ipv4(ip):
            continue

        result.counter[ip] += 1

        redirect = parse_redirect(line)
        if redirect is None:
            continue

        redirect.ip = ip
        result.redirects.append(redirect)
        result.candidates.add(ip)

    return result

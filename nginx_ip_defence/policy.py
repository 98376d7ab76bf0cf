"""Рішення які IP блокувати"""

from typing import AbstractSet, Iterable, Mapping

from nginx_ip_defence.ipv4 import AddressSet, sorted_addresses
from nginx_ip_defence.logger import log_message
from nginx_ip_defence.whois import UNKNOWN_COUNTRY

# Країни, що не блокуються за обсягом запитів
ALLOWED_COUNTRIES = frozenset({"US", "CA", "UK", "FR", "DE", "NL"})

# Мінімальна кількість запитів за добу для бану за країною
REQUEST_THRESHOLD = 5


def should_block_by_country(
    count: int,
    country: str,
    allowed_countries: AbstractSet[str] = ALLOWED_COUNTRIES,
    threshold: int = REQUEST_THRESHOLD
) -> bool:
    """Країна поза білим списком і кількість запитів не менша за поріг"""
    if not country or len(country) != 2 or country == UNKNOWN_COUNTRY:
        return False
    if country in allowed_countries:
        return False
    return count >= threshold


def decide_block_set(
    counter: Mapping[str, int],
    countries: Mapping[str, str],
    redirect_candidates: Iterable[str],
    allowed_countries: AbstractSet[str] = ALLOWED_COUNTRIES,
    threshold: int = REQUEST_THRESHOLD
) -> AddressSet:
    """Об'єднання: IP з редиректами + IP з "чужих" країн з великою кількістю запитів"""
    block_set = AddressSet(redirect_candidates)
    redirect_count = len(block_set)

    for ip in sorted_addresses(counter):
        country = countries.get(ip, "")
        if should_block_by_country(counter[ip], country, allowed_countries, threshold):
            block_set.add(ip)

    log_message(
        f"Block decision: {len(block_set)} address(es) "
        f"({redirect_count} from redirects, {len(block_set) - redirect_count} by country/volume)"
    )
    return block_set

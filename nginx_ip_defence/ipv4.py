"""Перевірка та форматування IPv4 адрес"""

from typing import Iterable, Iterator, List

from nginx_ip_defence.errors import InvalidAddressError

# Адреси коротші за 8 символів (напр. 1.1.1.1) відкидаються
MIN_IPV4_LENGTH = 8
MAX_IPV4_LENGTH = 15  # 255.255.255.255

FIXED_WIDTH = 16


def is_valid_ipv4(ip: str) -> bool:
    """Перевірка чи рядок є IPv4 адресою (dotted-quad)"""
    if not ip or len(ip) < MIN_IPV4_LENGTH or len(ip) > MAX_IPV4_LENGTH:
        return False

    pieces = ip.split(".")
    if len(pieces) != 4:
        return False

    for piece in pieces:
        if not piece or not (piece.isascii() and piece.isdigit()):
            return False
        if int(piece) > 255:
            return False

    return True


def format_fixed_width(ip: str) -> str:
    """Доповнити адресу пробілами до 16 символів.

    Табуляція легко псується в терміналах та переглядачах логів,
    тому вирівнюємо тільки пробілами.
    """
    if not ip or len(ip) > MAX_IPV4_LENGTH:
        raise InvalidAddressError(f"Invalid input for fixed-width formatting: {ip!r}")
    if not is_valid_ipv4(ip):
        raise InvalidAddressError(f"Given value is not an IPv4 address: {ip!r}")

    return ip.ljust(FIXED_WIDTH)


def sort_key(ip: str) -> str:
    """Ключ для лексичного сортування адрес.

    Перша група доповнюється нулями до 3 цифр ("9.1.1.1" -> "009.1.1.1").
    Це евристика: решта октетів не вирівнюється, тому порядок
    не є строго числовим.
    """
    dot = ip.find(".")
    if dot == 1:
        return "00" + ip
    if dot == 2:
        return "0" + ip
    return ip


def sorted_addresses(addresses: Iterable[str]) -> List[str]:
    """Адреси у порядку sort_key"""
    return sorted(addresses, key=sort_key)


class AddressSet:
    """Множина адрес зі збереженням порядку першої появи"""

    def __init__(self, addresses: Iterable[str] = ()):
        self._items = dict.fromkeys(addresses)

    def add(self, ip: str) -> bool:
        """Додати адресу; False якщо вона вже є"""
        if ip in self._items:
            return False
        self._items[ip] = None
        return True

    def __contains__(self, ip: object) -> bool:
        return ip in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"AddressSet({list(self._items)!r})"

    def to_list(self) -> List[str]:
        return list(self._items)

"""
Збережений blocklist між циклами
Формат рядка: "<ip> # <YYYY-mm-dd HH:MM:SS>" або "<ip> # perma"
"""

import os
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional

from nginx_ip_defence.errors import FilesystemError
from nginx_ip_defence.ipv4 import is_valid_ipv4, sorted_addresses
from nginx_ip_defence.logger import log_message

PERMANENT = "perma"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# None означає постійний бан
BlocklistEntries = Dict[str, Optional[datetime]]


def parse_entry(line: str):
    """Рядок blocklist -> (ip, час або None); None для порожніх/битих рядків"""
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    ip, _, stamp = line.partition("#")
    ip = ip.strip()
    stamp = stamp.strip()
    if not is_valid_ipv4(ip):
        return None

    if stamp == PERMANENT:
        return ip, None

    try:
        return ip, datetime.strptime(stamp, TIMESTAMP_FORMAT)
    except ValueError:
        log_message(f"Ignoring blocklist entry with bad timestamp: {line}", "WARNING")
        return None


def load_blocklist(path: str) -> BlocklistEntries:
    """Завантажити blocklist; відсутній файл - порожній список"""
    entries: BlocklistEntries = {}
    if not os.path.exists(path):
        return entries

    try:
        with open(path, "r") as f:
            for line in f:
                parsed = parse_entry(line)
                if parsed:
                    entries[parsed[0]] = parsed[1]
    except OSError as e:
        raise FilesystemError(f"Error reading blocklist {path}: {e}") from e

    return entries


def expire_entries(entries: BlocklistEntries, now: datetime, max_age_hours: int = 48) -> BlocklistEntries:
    """Видалити тимчасові бани старші за max_age_hours"""
    expiry_date = now - timedelta(hours=max_age_hours)
    kept = {}
    for ip, created_at in entries.items():
        if created_at is not None and created_at < expiry_date:
            log_message(f"Blocklist entry for {ip} expired (created: {created_at.strftime(TIMESTAMP_FORMAT)})")
            continue
        kept[ip] = created_at
    return kept


def merge_block_set(entries: BlocklistEntries, block_set: Iterable[str], now: datetime) -> BlocklistEntries:
    """Додати нові IP з поточною датою, існуючі записи не змінюються"""
    merged = dict(entries)
    for ip in block_set:
        if ip not in merged:
            merged[ip] = now
    return merged


def format_entry(ip: str, created_at: Optional[datetime]) -> str:
    stamp = PERMANENT if created_at is None else created_at.strftime(TIMESTAMP_FORMAT)
    return f"{ip} # {stamp}\n"


def save_blocklist(path: str, entries: BlocklistEntries):
    """Перезаписати blocklist у порядку адрес"""
    try:
        with open(path, "w") as f:
            for ip in sorted_addresses(entries):
                f.write(format_entry(ip, entries[ip]))
    except OSError as e:
        raise FilesystemError(f"Error writing blocklist {path}: {e}") from e


def update_blocklist(path: str, block_set: Iterable[str], now: datetime, max_age_hours: int = 48) -> BlocklistEntries:
    """Завантажити, прибрати прострочені, додати нові та зберегти"""
    entries = expire_entries(load_blocklist(path), now, max_age_hours)
    merged = merge_block_set(entries, block_set, now)
    save_blocklist(path, merged)
    log_message(f"Persisted blocklist {path}: {len(merged)} entr{'y' if len(merged) == 1 else 'ies'}")
    return merged

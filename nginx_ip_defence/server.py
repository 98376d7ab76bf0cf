"""Інтеграція з веб-сервером: deny-правила та reload"""

import os
import subprocess
from typing import Iterable

from nginx_ip_defence.errors import FilesystemError, InputValidationError
from nginx_ip_defence.logger import log_message

SERVER_TYPES = ("nginx", "apache")

RELOAD_COMMANDS = {
    "nginx": ["service", "nginx", "reload"],
    "apache": ["service", "apache2", "reload"],
}


def validate_server_type(server_type: str) -> str:
    """Нормалізувати тип сервера (nginx або apache)"""
    normalized = (server_type or "").strip().lower()
    if normalized not in SERVER_TYPES:
        raise InputValidationError(
            f"Unknown server type {server_type!r}, expected one of: {', '.join(SERVER_TYPES)}"
        )
    return normalized


def render_block_set(addresses: Iterable[str], server_type: str, generated_on: str = "") -> str:
    """Фрагмент конфігурації з deny-правилами для кожної адреси"""
    addresses = list(addresses)
    header = f"# Generated by nginx-ip-defence on {generated_on}\n" if generated_on else ""

    if server_type == "nginx":
        return header + "".join(f"deny {ip};\n" for ip in addresses)

    if server_type == "apache":
        rules = "".join(f"    Require not ip {ip}\n" for ip in addresses)
        return "<RequireAll>\n    Require all granted\n" + rules + "</RequireAll>\n"

    return "".join(f"{ip}\n" for ip in addresses)


def run_reload_command(server_type: str) -> bool:
    """Перезавантажити веб-сервер; помилка не є фатальною"""
    cmd = RELOAD_COMMANDS.get(server_type)
    if not cmd:
        log_message(f"No reload command known for server type {server_type}", "WARNING")
        return False

    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=60
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        log_message(f"Reload command {' '.join(cmd)} failed: {e}", "ERROR")
        return False

    if result.returncode != 0:
        log_message(f"Reload command {' '.join(cmd)} exited with {result.returncode}: {result.stdout.strip()}", "ERROR")
        return False

    log_message(f"Reloaded {server_type} ({' '.join(cmd)})")
    return True


def write_site_config(path: str, addresses: Iterable[str], server_type: str, generated_on: str) -> bool:
    """Записати deny-фрагмент і перезавантажити сервер (якщо шлях задано)"""
    if not path:
        return False

    contents = render_block_set(addresses, server_type, generated_on)
    try:
        with open(path, "w") as f:
            f.write(contents)
    except OSError as e:
        raise FilesystemError(f"Error writing site config {path}: {e}") from e

    log_message(f"Wrote {server_type} deny rules to {os.path.abspath(path)}")
    return run_reload_command(server_type)

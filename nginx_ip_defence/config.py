"""Конфігурація - використовуємо змінні оточення"""

import os

LOG_DIRECTORY = os.getenv("LOG_DIRECTORY", "/var/log/")
ACCESS_LOG = os.getenv("ACCESS_LOG", "access.log")

# Каталог для звітів (має вже існувати)
WEB_LOCATION = os.getenv("WEB_LOCATION", "/var/www/html/data/")

IP_LOG = os.getenv("IP_LOG", "ip.log")
WHOIS_LOG = os.getenv("WHOIS_LOG", "whois.log")
REDIRECT_LOG = os.getenv("REDIRECT_LOG", "redirect.log")
BLOCKED_LOG = os.getenv("BLOCKED_LOG", "blocked.log")

SERVER_TYPE = os.getenv("SERVER_TYPE", "nginx")
SITE_CONFIG_PATH = os.getenv("SITE_CONFIG_PATH", "")

DAEMON_INTERVAL_HOURS = float(os.getenv("DAEMON_INTERVAL_HOURS", "12"))

WHOIS_BACKEND = os.getenv("WHOIS_BACKEND", "command")  # command або rdap
WHOIS_TIMEOUT = int(os.getenv("WHOIS_TIMEOUT", "30"))
RDAP_URL = os.getenv("RDAP_URL", "https://rdap.org/ip/{ip}")

# Збережений blocklist вимкнено, поки шлях порожній
BLOCKLIST_FILE = os.getenv("BLOCKLIST_FILE", "")
BLOCK_EXPIRY_HOURS = int(os.getenv("BLOCK_EXPIRY_HOURS", "48"))  # 2 доби

LOG_OUTPUT = os.getenv("LOG_OUTPUT", "/var/log/nginx-ip-defence.log")


def access_log_path(log_directory: str, server_type: str) -> str:
    """Шлях до access.log для заданого типу сервера"""
    return os.path.join(log_directory, server_type, ACCESS_LOG)

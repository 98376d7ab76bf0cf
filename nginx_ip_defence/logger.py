"""Діагностичний лог, спільний для всіх етапів конвеєра"""

import sys
from datetime import datetime

from nginx_ip_defence import config


def log_message(message: str, level: str = "INFO"):
    """Логування повідомлень"""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    log_entry = f"{timestamp} - [{level}] {message}\n"

    try:
        with open(config.LOG_OUTPUT, "a") as f:
            f.write(log_entry)
    except OSError as e:
        print(f"Error writing to log: {e}")

    if level == "ERROR":
        print(f"ERROR: {message}", file=sys.stderr)
    elif level == "WARNING":
        print(f"WARNING: {message}")

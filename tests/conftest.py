import pytest

from nginx_ip_defence import config
from nginx_ip_defence.errors import ExternalProcessError

DATE = "19/Oct/2026"


def access_line(ip, date=DATE, status=200, target="-", path="/", hour="10"):
    """Рядок у форматі combined-логу nginx"""
    return (
        f'{ip} - - [{date}:{hour}:00:00 +0000] "GET {path} HTTP/1.1" '
        f'{status} 512 "{target}" "Mozilla/5.0 (X11; Linux x86_64)"'
    )


class FakeWhoisClient:
    """Whois-клієнт з підготовленими відповідями"""

    def __init__(self, responses=None, failures=()):
        self.responses = responses or {}
        self.failures = set(failures)
        self.calls = []

    def lookup(self, ip):
        self.calls.append(ip)
        if ip in self.failures:
            raise ExternalProcessError(f"whois {ip} exited with status 1")
        return self.responses.get(ip, "")


@pytest.fixture(autouse=True)
def diagnostic_log(tmp_path, monkeypatch):
    path = tmp_path / "nginx-ip-defence.log"
    monkeypatch.setattr(config, "LOG_OUTPUT", str(path))
    return path

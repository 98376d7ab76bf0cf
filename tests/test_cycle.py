from datetime import datetime
from unittest import mock

import pytest

from nginx_ip_defence import server
from nginx_ip_defence.cycle import run_cycle
from nginx_ip_defence.errors import FilesystemError, MalformedLineError
from nginx_ip_defence.reports import NO_BLOCKED_IPS, NO_IP_ADDRESSES, NO_REDIRECTIONS
from nginx_ip_defence.whois import NO_WHOIS_ENTRIES

from tests.conftest import FakeWhoisClient, access_line

NOW = datetime(2026, 10, 19, 12, 0, 0)


def no_hostname(ip):
    return ""


@pytest.fixture
def web_dir(tmp_path):
    path = tmp_path / "web"
    path.mkdir()
    return path


def write_log(tmp_path, lines):
    log = tmp_path / "access.log"
    log.write_text("\n".join(lines) + "\n")
    return str(log)


@pytest.fixture
def busy_log(tmp_path):
    lines = [access_line("10.0.0.5", date="18/Oct/2026")] * 20
    lines += [access_line("10.0.0.5")] * 7
    lines += [access_line("192.168.1.2")] * 3
    lines += [access_line("10.0.0.9", status=302, target="/new", path="/old")]
    lines += ["garbage line without an address"]
    lines += [access_line("172.16.0.1")]
    return write_log(tmp_path, lines)


@pytest.fixture
def whois_client():
    return FakeWhoisClient(responses={
        "10.0.0.5": "inetnum: 10.0.0.0 - 10.0.0.255\ncountry: RU\n",
        "192.168.1.2": "NetRange: 192.168.0.0\nCountry: US\n",
        "10.0.0.9": "Country: NL\ncountry: US\n",
        "172.16.0.1": "country: CN\n",
    })


def test_full_cycle(busy_log, web_dir, whois_client):
    ctx = run_cycle(busy_log, str(web_dir), "nginx", whois_client, resolve_hostname=no_hostname, now=NOW)

    assert ctx.reference_date == "19/Oct/2026"
    assert ctx.counter == {"10.0.0.5": 7, "192.168.1.2": 3, "10.0.0.9": 1, "172.16.0.1": 1}
    assert ctx.countries == {"10.0.0.5": "RU", "192.168.1.2": "US", "10.0.0.9": "US", "172.16.0.1": "CN"}
    assert ctx.block_set.to_list() == ["10.0.0.9", "10.0.0.5"]

    blocked = (web_dir / "blocked.log").read_text()
    assert blocked.startswith("Blocked IP Data\n\nGenerated on: ")
    assert "Log Data for 19/Oct/2026\n" in blocked
    assert blocked.endswith("-------------------------\n\n10.0.0.9\n10.0.0.5\n")

    ip_report = (web_dir / "ip.log").read_text()
    assert ip_report.startswith("IP Address Counts Data\n\n")
    assert "7       | 10.0.0.5         | RU | N/A\n" in ip_report
    assert "1       | 172.16.0.1       | CN | N/A\n" in ip_report

    redirect_report = (web_dir / "redirect.log").read_text()
    assert redirect_report.endswith("10.0.0.9         | 302 | /new\n")

    whois_report = (web_dir / "whois.log").read_text()
    assert whois_report.startswith("Whois Entry Data\n\n")
    assert "Whois Entry for the following: 172.16.0.1\ncountry: CN\n" in whois_report


def test_cycle_state_is_fresh_each_time(busy_log, web_dir, whois_client):
    first = run_cycle(busy_log, str(web_dir), "nginx", whois_client, resolve_hostname=no_hostname, now=NOW)
    second = run_cycle(busy_log, str(web_dir), "nginx", whois_client, resolve_hostname=no_hostname, now=NOW)

    assert first.counter == second.counter
    assert second.counter["10.0.0.5"] == 7


def test_empty_window_writes_placeholders(tmp_path, web_dir):
    log = write_log(tmp_path, [access_line("not-an-address"), access_line("also-not-an-address")])
    client = FakeWhoisClient()

    ctx = run_cycle(log, str(web_dir), "nginx", client, resolve_hostname=no_hostname, now=NOW)

    assert client.calls == []
    assert len(ctx.counter) == 0
    assert (web_dir / "ip.log").read_text().endswith(NO_IP_ADDRESSES)
    assert (web_dir / "whois.log").read_text().endswith(NO_WHOIS_ENTRIES)
    assert (web_dir / "redirect.log").read_text().endswith(NO_REDIRECTIONS)
    assert (web_dir / "blocked.log").read_text().endswith(NO_BLOCKED_IPS)


def test_whois_unavailable_keeps_reports_consistent(busy_log, web_dir):
    client = FakeWhoisClient(failures={"10.0.0.5", "192.168.1.2", "10.0.0.9", "172.16.0.1"})

    ctx = run_cycle(busy_log, str(web_dir), "nginx", client, resolve_hostname=no_hostname, now=NOW)

    assert ctx.countries == {}
    assert ctx.block_set.to_list() == ["10.0.0.9"]
    ip_report = (web_dir / "ip.log").read_text()
    assert NO_IP_ADDRESSES in ip_report
    assert "whois protocol client" in ip_report


def test_missing_web_location(busy_log, tmp_path, whois_client):
    with pytest.raises(FilesystemError):
        run_cycle(busy_log, str(tmp_path / "nope"), "nginx", whois_client, now=NOW)


def test_missing_access_log(tmp_path, web_dir, whois_client):
    with pytest.raises(FilesystemError):
        run_cycle(str(tmp_path / "missing.log"), str(web_dir), "nginx", whois_client, now=NOW)


def test_malformed_reference_line(tmp_path, web_dir, whois_client):
    log = write_log(tmp_path, [access_line("10.0.0.5"), "short line"])
    with pytest.raises(MalformedLineError):
        run_cycle(log, str(web_dir), "nginx", whois_client, now=NOW)


def test_persisted_blocklist_and_site_config(busy_log, web_dir, whois_client, tmp_path, monkeypatch):
    reload = mock.Mock(return_value=True)
    monkeypatch.setattr(server, "run_reload_command", reload)
    blocklist = tmp_path / "blocklist.txt"
    blocklist.write_text("10.0.0.7 # perma\n10.0.0.8 # 2026-10-01 00:00:00\n")
    site_config = tmp_path / "blocked.conf"

    ctx = run_cycle(
        busy_log, str(web_dir), "nginx", whois_client,
        site_config_path=str(site_config),
        blocklist_file=str(blocklist),
        resolve_hostname=no_hostname,
        now=NOW,
    )

    assert ctx.block_set.to_list() == ["10.0.0.9", "10.0.0.5"]
    assert blocklist.read_text() == (
        "10.0.0.5 # 2026-10-19 12:00:00\n"
        "10.0.0.7 # perma\n"
        "10.0.0.9 # 2026-10-19 12:00:00\n"
    )
    fragment = site_config.read_text()
    assert fragment.splitlines()[1:] == ["deny 10.0.0.5;", "deny 10.0.0.7;", "deny 10.0.0.9;"]
    reload.assert_called_once_with("nginx")
    # blocked.log показує лише рішення поточного циклу
    assert "10.0.0.7" not in (web_dir / "blocked.log").read_text()

"""
Один цикл аналізу: лог -> лічильники -> whois -> рішення -> звіти
Весь стан циклу живе в CycleContext і не переживає виклик run_cycle
"""

import os
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from nginx_ip_defence import config
from nginx_ip_defence.blocklist_store import update_blocklist
from nginx_ip_defence.errors import FilesystemError, InputValidationError
from nginx_ip_defence.ipv4 import AddressSet, sorted_addresses
from nginx_ip_defence.log_window import latest_date, read_log_lines, reference_line, window_lines
from nginx_ip_defence.logger import log_message
from nginx_ip_defence.policy import decide_block_set
from nginx_ip_defence.redirects import RedirectRecord, extract_activity
from nginx_ip_defence.reports import (
    BLOCKED_REPORT_TITLE, IP_REPORT_TITLE, NO_IP_ADDRESSES, REDIRECT_REPORT_TITLE,
    WHOIS_REPORT_TITLE, build_block_rows, build_ip_rows, build_redirect_rows,
    lookup_hostname, render_header, write_report
)
from nginx_ip_defence.server import write_site_config
from nginx_ip_defence.whois import NO_WHOIS_ENTRIES, CountryExtractor, resolve_whois

GENERATED_ON_FORMAT = "%a %b %d %H:%M:%S %Z %Y"


@dataclass
class CycleContext:
    reference_date: str = ""
    generated_on: str = ""
    counter: Counter = field(default_factory=Counter)
    redirects: List[RedirectRecord] = field(default_factory=list)
    redirect_candidates: AddressSet = field(default_factory=AddressSet)
    countries: Dict[str, str] = field(default_factory=dict)
    whois_report: str = ""
    block_set: AddressSet = field(default_factory=AddressSet)
    artifacts: Dict[str, str] = field(default_factory=dict)


def ensure_directory(path: str):
    """Каталог для звітів має існувати"""
    if not path or not os.path.isdir(path):
        raise FilesystemError(f"The following directory does not exist: {path}")


def build_ip_report_body(ctx: CycleContext, resolve_hostname: Callable[[str], str]) -> str:
    if not ctx.counter:
        return NO_IP_ADDRESSES

    try:
        return build_ip_rows(ctx.counter, ctx.countries, resolve_hostname)
    except InputValidationError as e:
        log_message(f"IP report has no country data: {e}", "WARNING")
        return f"{NO_IP_ADDRESSES}\n{e}\n"


def run_cycle(
    access_log: str,
    web_location: str,
    server_type: str,
    whois_client,
    extractor: Optional[CountryExtractor] = None,
    site_config_path: str = "",
    blocklist_file: str = "",
    block_expiry_hours: int = 48,
    resolve_hostname: Callable[[str], str] = lookup_hostname,
    now: Optional[datetime] = None
) -> CycleContext:
    """Виконати повний цикл та записати чотири звіти"""
    ensure_directory(web_location)
    now = now or datetime.now()
    ctx = CycleContext()

    lines = read_log_lines(access_log)
    ctx.reference_date = latest_date(reference_line(lines))
    ctx.generated_on = now.astimezone().strftime(GENERATED_ON_FORMAT)
    log_message(f"Processing {access_log}: {len(lines)} line(s), window {ctx.reference_date}")

    activity = extract_activity(window_lines(lines, ctx.reference_date))
    ctx.counter = activity.counter
    ctx.redirects = activity.redirects
    ctx.redirect_candidates = activity.candidates
    log_message(f"Window has {len(ctx.counter)} address(es), {len(ctx.redirects)} redirect(s)")

    if ctx.counter:
        whois = resolve_whois(ctx.counter, whois_client, extractor)
        ctx.countries = whois.countries
        ctx.whois_report = whois.report
    else:
        ctx.whois_report = NO_WHOIS_ENTRIES

    ctx.block_set = decide_block_set(ctx.counter, ctx.countries, ctx.redirect_candidates)

    def header(title: str) -> str:
        return render_header(title, ctx.generated_on, ctx.reference_date)

    ctx.artifacts = {
        config.WHOIS_LOG: header(WHOIS_REPORT_TITLE) + ctx.whois_report,
        config.IP_LOG: header(IP_REPORT_TITLE) + build_ip_report_body(ctx, resolve_hostname),
        config.REDIRECT_LOG: header(REDIRECT_REPORT_TITLE) + build_redirect_rows(ctx.redirects),
        config.BLOCKED_LOG: header(BLOCKED_REPORT_TITLE) + build_block_rows(ctx.block_set),
    }
    for name, contents in ctx.artifacts.items():
        write_report(os.path.join(web_location, name), contents)
    log_message(f"Wrote {len(ctx.artifacts)} report(s) to {web_location}")

    config_addresses = ctx.block_set.to_list()
    if blocklist_file:
        persisted = update_blocklist(blocklist_file, ctx.block_set, now, block_expiry_hours)
        config_addresses = sorted_addresses(persisted)

    write_site_config(site_config_path, config_addresses, server_type, ctx.generated_on)
    return ctx

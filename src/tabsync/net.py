"""Detect the LAN address advertised to clients."""

from __future__ import annotations

import socket


def _usable(value: str | None) -> bool:
    if not value:
        return False
    cleaned = value.strip()
    return bool(cleaned) and not cleaned.startswith("127.") and cleaned != "0.0.0.0"


def _primary_lan_ipv4() -> str | None:
    # UDP connect sends nothing; it only makes the kernel pick a route.
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("192.0.2.1", 80))
            ip = sock.getsockname()[0]
    except OSError:
        return None
    return ip if _usable(ip) else None


def _hostname_ipv4s() -> list[str]:
    try:
        host = socket.gethostname()
        infos = socket.getaddrinfo(host, None, family=socket.AF_INET)
    except OSError:
        return []
    candidates: list[str] = []
    for info in infos:
        addr = info[4][0] if info and info[4] else None
        if isinstance(addr, str) and _usable(addr) and addr not in candidates:
            candidates.append(addr)
    return candidates


def local_ipv4() -> str:
    """First non-loopback IPv4 address of this host, or ``"localhost"``."""
    primary = _primary_lan_ipv4()
    if primary:
        return primary
    for candidate in _hostname_ipv4s():
        return candidate
    return "localhost"


def pick_advertise_ip(value: str | None) -> str:
    """Use an explicit address when configured, otherwise detect one."""
    if value and value.strip() and value.strip().lower() not in {"auto", "default"}:
        return value.strip()
    return local_ipv4()

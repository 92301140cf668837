from __future__ import annotations

import pytest

from tabsync import net


def test_explicit_address_wins() -> None:
    assert net.pick_advertise_ip(" 192.168.1.9 ") == "192.168.1.9"


@pytest.mark.parametrize("value", [None, "", "auto"])
def test_auto_detects(monkeypatch: pytest.MonkeyPatch, value: str | None) -> None:
    monkeypatch.setattr(net, "_primary_lan_ipv4", lambda: "10.1.2.3")

    assert net.pick_advertise_ip(value) == "10.1.2.3"


def test_falls_back_to_hostname_addresses(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(net, "_primary_lan_ipv4", lambda: None)
    monkeypatch.setattr(net, "_hostname_ipv4s", lambda: ["172.16.0.4"])

    assert net.local_ipv4() == "172.16.0.4"


def test_falls_back_to_localhost(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(net, "_primary_lan_ipv4", lambda: None)
    monkeypatch.setattr(net, "_hostname_ipv4s", lambda: [])

    assert net.local_ipv4() == "localhost"


def test_loopback_is_not_usable() -> None:
    assert not net._usable("127.0.1.1")  # noqa: SLF001
    assert not net._usable("0.0.0.0")  # noqa: SLF001
    assert net._usable("192.168.1.2")  # noqa: SLF001

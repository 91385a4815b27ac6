"""Unit tests for homelink.wifi_mgr."""

from __future__ import annotations

import pytest
from fakes import FakeLink

from homelink.policy import ConnectionPolicy
from homelink.wifi_mgr import LinkState, WifiManager


@pytest.fixture
def wifi(policy: ConnectionPolicy, link: FakeLink) -> WifiManager:
    return WifiManager(policy, link)


def test_first_tick_resets_radio_and_schedules(wifi: WifiManager, link: FakeLink) -> None:
    assert wifi.tick(1000) is False
    assert link.disassociations == 1
    assert wifi.next_attempt_at == 1500
    assert link.begins == []

    # not again on later ticks
    wifi.tick(1100)
    assert link.disassociations == 1


def test_connects_when_due(wifi: WifiManager, link: FakeLink) -> None:
    wifi.tick(1000)
    wifi.tick(1499)
    assert link.begins == []

    assert wifi.tick(1500) is False
    assert link.begins == [("home", "secret")]
    assert wifi.state() == LinkState.CONNECTING
    assert wifi.last_attempt_at == 1500
    assert wifi.next_attempt_at is None


def test_established_fires_hook_and_reports_change(policy, link: FakeLink) -> None:
    events: list[tuple[str, int]] = []
    wifi = WifiManager(policy, link, on_established=lambda now: events.append(("up", now)))
    wifi.tick(1000)
    wifi.tick(1500)

    link.associated = True
    assert wifi.tick(1600) is True
    assert events == [("up", 1600)]
    assert wifi.is_up()
    assert wifi.state() == LinkState.UP

    assert wifi.tick(1700) is False
    assert events == [("up", 1600)]


def test_immediate_failure_reschedules(wifi: WifiManager, link: FakeLink) -> None:
    wifi.tick(1000)
    wifi.tick(1500)
    link.failed = True

    assert wifi.tick(1600) is False
    assert wifi.state() == LinkState.IDLE
    assert link.disassociations == 2
    assert wifi.next_attempt_at == 2100

    wifi.tick(2100)
    assert len(link.begins) == 2


def test_attempt_times_out(wifi: WifiManager, link: FakeLink) -> None:
    wifi.tick(1000)
    wifi.tick(1500)

    wifi.tick(1500 + 59_999)
    assert wifi.state() == LinkState.CONNECTING

    wifi.tick(1500 + 60_000)
    assert wifi.state() == LinkState.IDLE
    assert wifi.next_attempt_at == 1500 + 60_500


def test_loss_fires_hook_and_reschedules(policy, link: FakeLink) -> None:
    lost: list[int] = []
    wifi = WifiManager(policy, link, on_lost=lost.append)
    wifi.tick(1000)
    link.associated = True
    wifi.tick(1100)

    link.associated = False
    assert wifi.tick(5000) is True
    assert lost == [5000]
    assert wifi.state() == LinkState.LOST_PENDING
    assert not wifi.is_up()
    assert wifi.next_attempt_at == 5500

    wifi.tick(5500)
    assert wifi.state() == LinkState.CONNECTING


def test_observe_only_never_drives_radio(link: FakeLink) -> None:
    policy = ConnectionPolicy(broker="b", client_name="dev")
    ups: list[int] = []
    wifi = WifiManager(policy, link, on_established=ups.append)

    assert wifi.tick(1000) is False
    link.associated = True
    assert wifi.tick(2000) is True
    link.associated = False
    assert wifi.tick(3000) is True
    wifi.tick(60_000)

    assert ups == [2000]
    assert link.begins == []
    assert link.disassociations == 0
    assert wifi.state() == LinkState.LOST_PENDING


def test_force_reset(wifi: WifiManager, link: FakeLink) -> None:
    wifi.tick(1000)
    link.associated = True
    wifi.tick(1100)

    wifi.force_reset(2000)
    assert link.disassociations == 2
    assert wifi.next_attempt_at == 2500

    assert wifi.tick(2100) is True
    assert wifi.state() == LinkState.LOST_PENDING
    # the loss reschedules from its own tick
    assert wifi.next_attempt_at == 2600


def test_multiple_instances_are_independent(policy, link: FakeLink) -> None:
    first = WifiManager(policy, link)
    second = WifiManager(policy, FakeLink())
    first.tick(1000)
    second.tick(1000)
    assert first.next_attempt_at == 1500
    assert second.next_attempt_at == 1500

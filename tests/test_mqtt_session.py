"""Unit tests for homelink.mqtt_session."""

from __future__ import annotations

import random

import pytest
from fakes import FakeLink, FakeTransport

from homelink.mqtt_session import MQTTSession, SessionState
from homelink.policy import ConnectionPolicy
from homelink.wifi_mgr import WifiManager


class Harness:
    def __init__(self, policy: ConnectionPolicy) -> None:
        self.link = FakeLink()
        self.transport = FakeTransport()
        self.restarts = 0
        self.established = 0
        self.wifi = WifiManager(policy, self.link)
        self.session = MQTTSession(
            policy,
            self.wifi,
            self.transport,
            on_established=self._on_established,
            restart=self._restart,
        )
        self.wifi.on_established = self.session.link_established

    def _on_established(self) -> None:
        self.established += 1

    def _restart(self) -> None:
        self.restarts += 1

    def tick(self, now: int) -> None:
        if self.wifi.tick(now):
            return
        self.session.tick(now)

    def bring_link_up(self, now: int = 1000) -> int:
        self.tick(now)
        self.link.connect_on_begin = True
        now += 500
        self.tick(now)        # begin association
        now += 10
        self.tick(now)        # link up, session scheduled 500ms out
        return now


@pytest.fixture
def h(policy: ConnectionPolicy) -> Harness:
    return Harness(policy)


def test_waits_settle_delay_after_link_up(h: Harness) -> None:
    now = h.bring_link_up()
    assert h.wifi.is_up()
    assert h.session.state() == SessionState.CONNECT_PENDING

    h.tick(now + 499)
    assert h.transport.connects == []

    h.tick(now + 500)
    assert h.transport.connects == [
        ("office_radar_1", "dev", "pw", None, 0, False, None, True)
    ]


def test_success_then_established_on_next_tick(h: Harness) -> None:
    now = h.bring_link_up() + 500
    h.tick(now)
    assert h.session.failed_attempts == 0
    assert h.session.next_attempt_at is None
    assert not h.session.is_up()

    assert h.session.tick(now + 10) is True
    assert h.session.state() == SessionState.UP
    assert h.session.established_count == 1
    assert h.established == 1

    assert h.session.tick(now + 20) is False
    assert h.established == 1


def test_failure_disconnects_and_reschedules(h: Harness) -> None:
    h.transport.accept_connect = False
    now = h.bring_link_up() + 500
    h.tick(now)

    assert h.session.failed_attempts == 1
    assert h.transport.disconnects == 1
    assert h.session.next_attempt_at == now + 15_000

    h.tick(now + 14_999)
    assert len(h.transport.connects) == 1
    h.tick(now + 15_000)
    assert len(h.transport.connects) == 2


def test_last_will_and_persistence_passed_to_connect(policy: ConnectionPolicy) -> None:
    policy.enable_last_will_message("stat/office_radar_1/lwt", "offline", retain=True)
    policy.enable_persistence()
    h = Harness(policy)
    h.tick(h.bring_link_up() + 500)
    assert h.transport.connects[0] == (
        "office_radar_1", "dev", "pw", "stat/office_radar_1/lwt", 0, True, "offline", False
    )


def test_eighth_failure_resets_link_and_counter(h: Harness) -> None:
    h.transport.accept_connect = False
    now = h.bring_link_up() + 500
    for _ in range(7):
        h.tick(now)
        now += 15_000
    assert h.session.failed_attempts == 7
    resets_before = h.link.disassociations

    h.tick(now)
    assert len(h.transport.connects) == 8
    assert h.link.disassociations == resets_before + 1
    assert h.session.failed_attempts == 0
    assert h.restarts == 0


def test_drastic_mode_keeps_counting_then_restarts(policy: ConnectionPolicy) -> None:
    policy.enable_drastic_reset()
    h = Harness(policy)
    h.transport.accept_connect = False
    now = h.bring_link_up() + 500
    for _ in range(8):
        h.tick(now)
        now += 15_000
    assert h.session.failed_attempts == 8
    resets_after_eight = h.link.disassociations

    # the link reset takes the link down; let it come back
    for _ in range(200):
        if h.session.failed_attempts == 12:
            break
        h.tick(now)
        now += 500
    assert h.session.failed_attempts == 12
    assert h.restarts == 1
    assert h.session.halted
    # no second forced reset, only the disassociation of the link loss
    assert h.link.disassociations == resets_after_eight + 1

    connects = len(h.transport.connects)
    for _ in range(100):
        now += 15_000
        assert h.session.tick(now) is False
    assert len(h.transport.connects) == connects
    assert h.restarts == 1


def test_lost_session_reschedules(h: Harness) -> None:
    lost: list[int] = []
    h.session.on_lost = lost.append
    now = h.bring_link_up() + 500
    h.tick(now)
    h.tick(now + 10)
    assert h.session.is_up()

    h.transport.is_connected = False
    assert h.session.tick(now + 1000) is True
    assert lost == [now + 1000]
    assert h.session.state() == SessionState.LOST_PENDING
    assert h.session.next_attempt_at == now + 1000 + 15_000


def test_link_loss_drops_session(h: Harness) -> None:
    now = h.bring_link_up() + 500
    h.tick(now)
    h.tick(now + 10)
    assert h.session.is_up()

    h.link.associated = False
    h.tick(now + 20)          # link change, session not ticked
    assert not h.session.is_up()
    assert h.session.state() == SessionState.LOST_PENDING
    assert h.session.tick(now + 30) is True
    assert not h.session.is_up()


def test_no_pump_or_connect_while_link_down(policy: ConnectionPolicy) -> None:
    h = Harness(policy)
    h.session.next_attempt_at = 0
    for now in range(1000, 5000, 100):
        h.session.tick(now)
    assert h.transport.pumps == 0
    assert h.transport.connects == []


def test_never_connects_while_link_down_under_random_toggling(policy: ConnectionPolicy) -> None:
    rng = random.Random(1234)
    h = Harness(policy)
    h.transport.accept_connect = False
    h.link.connect_on_begin = True

    original_connect = h.transport.connect

    def checked_connect(*args):
        assert h.wifi.is_up()
        assert h.link.associated
        return original_connect(*args)

    h.transport.connect = checked_connect

    now = 1000
    for _ in range(5000):
        if rng.random() < 0.05:
            h.link.associated = not h.link.associated
        h.transport.accept_connect = rng.random() < 0.3
        h.tick(now)
        assert not (h.session.is_up() and not h.wifi.is_up())
        now += rng.choice((10, 100, 500, 5_000, 15_000))

    assert h.transport.connects

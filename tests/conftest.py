"""Pytest configuration for homelink tests."""

from __future__ import annotations

import pytest
from fakes import FakeClock, FakeLink, FakeTransport

from homelink.policy import ConnectionPolicy


@pytest.fixture
def policy() -> ConnectionPolicy:
    return ConnectionPolicy(
        wifi_ssid="home",
        wifi_password="secret",
        broker="broker.local",
        username="dev",
        password="pw",
        client_name="office_radar_1",
    )


@pytest.fixture
def link() -> FakeLink:
    return FakeLink()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

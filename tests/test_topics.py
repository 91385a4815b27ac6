"""Unit tests for homelink.topics."""

from __future__ import annotations

import pytest

from homelink.topics import CMND, STAT, TELE, build_topic


def test_telemetry_topic() -> None:
    assert build_topic(TELE, "office_radar_1", "present") == "tele/office_radar_1/present"


@pytest.mark.parametrize(("kind", "prefix"), [(CMND, "cmnd"), (STAT, "stat"), (TELE, "tele")])
def test_prefix_per_kind(kind: str, prefix: str) -> None:
    assert build_topic(kind, "dev", "x") == f"{prefix}/dev/x"


def test_relative_name_passed_through() -> None:
    assert build_topic(CMND, "dev", "light/+") == "cmnd/dev/light/+"
    assert build_topic(STAT, "dev", "") == "stat/dev/"


def test_unknown_kind_raises() -> None:
    with pytest.raises(ValueError, match="Unknown topic kind"):
        build_topic("nope", "dev", "x")

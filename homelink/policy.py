# homelink/policy.py
# SPDX-FileCopyrightText: Copyright (c) 2026 Christopher Piggott
# SPDX-License-Identifier: MIT

from .log import NullLogger
from .matcher import wildcard_count

try:
    import homelink_cfg
except ImportError:
    homelink_cfg = None


DEFAULT_PORT = 1883
DEFAULT_KEEP_ALIVE_S = 15
DEFAULT_LINK_TIMEOUT_MS = 60 * 1000
DEFAULT_SESSION_RECONNECT_DELAY_MS = 15 * 1000
DEFAULT_SETTLE_MS = 500
DEFAULT_LINK_RESET_THRESHOLD = 8
DEFAULT_RESTART_THRESHOLD = 12


class ConnectionPolicy:
    """
    Everything the controllers need to know about where and how to connect.

    Set it up before the first tick. The three enable_*() mutators are the
    only supported changes and are refused (with a warning) once the
    client has frozen the policy.
    """

    def __init__(
        self,
        *,
        wifi_ssid=None,
        wifi_password=None,
        broker,
        port=DEFAULT_PORT,
        username=None,
        password=None,
        client_name="homelink",
        keep_alive=DEFAULT_KEEP_ALIVE_S,
        clean_session=True,
        link_timeout_ms=DEFAULT_LINK_TIMEOUT_MS,
        session_reconnect_delay_ms=DEFAULT_SESSION_RECONNECT_DELAY_MS,
        link_settle_ms=DEFAULT_SETTLE_MS,
        session_settle_ms=DEFAULT_SETTLE_MS,
        link_reset_threshold=DEFAULT_LINK_RESET_THRESHOLD,
        restart_threshold=DEFAULT_RESTART_THRESHOLD,
        drastic_reset=False,
    ):
        if not client_name:
            raise ValueError("client_name may not be empty")
        if not broker:
            raise ValueError("broker may not be empty")
        if keep_alive <= 0:
            raise ValueError("keep_alive must be positive")
        for name, value in (
            ("link_timeout_ms", link_timeout_ms),
            ("session_reconnect_delay_ms", session_reconnect_delay_ms),
            ("link_reset_threshold", link_reset_threshold),
            ("restart_threshold", restart_threshold),
        ):
            if value <= 0:
                raise ValueError(f"{name} must be positive")
        if link_settle_ms < 0 or session_settle_ms < 0:
            raise ValueError("settle delays may not be negative")

        # Wi-Fi; no SSID means something else owns the association
        self.wifi_ssid = wifi_ssid
        self.wifi_password = wifi_password

        # MQTT
        self.broker = broker
        self.port = port
        self.username = username
        self.password = password
        self.client_name = client_name
        self.keep_alive = keep_alive
        self.clean_session = clean_session

        # last will, QoS is always 0
        self.last_will_topic = None
        self.last_will_message = None
        self.last_will_retain = False

        # timing, in ms on the ticks clock
        self.link_timeout_ms = link_timeout_ms
        self.session_reconnect_delay_ms = session_reconnect_delay_ms
        self.link_settle_ms = link_settle_ms
        self.session_settle_ms = session_settle_ms

        # escalation
        self.link_reset_threshold = link_reset_threshold
        self.restart_threshold = restart_threshold
        self.drastic_reset = drastic_reset

        self._frozen = False
        self.logger = NullLogger()

    @property
    def handle_wifi(self) -> bool:
        return self.wifi_ssid is not None

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self):
        self._frozen = True

    def _refuse_if_frozen(self, what) -> bool:
        if self._frozen:
            self.logger.warning(f"{what} ignored: must be set before the first tick")
            return True
        return False

    # ---- pre-first-tick mutators ----

    def enable_persistence(self):
        """Ask the broker for a persistent session (clean_session off)."""
        if self._refuse_if_frozen("enable_persistence"):
            return
        self.clean_session = False

    def enable_last_will_message(self, topic, message, retain=False):
        if self._refuse_if_frozen("enable_last_will_message"):
            return
        if not topic:
            raise ValueError("Last will topic may not be empty.")
        if wildcard_count(topic):
            raise ValueError("Last will topic can not contain wildcards.")
        if message is None:
            raise ValueError("Last will message can not be None.")
        self.last_will_topic = topic
        self.last_will_message = message
        self.last_will_retain = retain

    def enable_drastic_reset(self):
        """Restart the device after too many failed broker connections."""
        if self._refuse_if_frozen("enable_drastic_reset"):
            return
        self.drastic_reset = True


def load_policy(cfg=None) -> ConnectionPolicy:
    """
    Build a policy from a settings module (homelink_cfg.py on the board).

    Expected shape:

        WIFI = {"ssid": "...", "password": "..."}
        MQTT = {"broker": "...", "port": 1883, "username": None,
                "password": None, "client_name": "office_radar_1"}
        LAST_WILL = {"topic": "...", "message": "offline", "retain": True}
        OPTIONS = {"keep_alive": 15, "persistent": False, "drastic_reset": False}

    WIFI, LAST_WILL and OPTIONS are optional.
    """
    if cfg is None:
        cfg = homelink_cfg
    if cfg is None:
        raise ValueError("No homelink_cfg module found and no config given")

    wifi = getattr(cfg, "WIFI", None) or {}
    mqtt = getattr(cfg, "MQTT", None)
    if not mqtt:
        raise ValueError("Config has no MQTT settings")
    options = getattr(cfg, "OPTIONS", None) or {}

    policy = ConnectionPolicy(
        wifi_ssid=wifi.get("ssid"),
        wifi_password=wifi.get("password", ""),
        broker=mqtt.get("broker"),
        port=mqtt.get("port", DEFAULT_PORT),
        username=mqtt.get("username"),
        password=mqtt.get("password"),
        client_name=mqtt.get("client_name", "homelink"),
        keep_alive=options.get("keep_alive", DEFAULT_KEEP_ALIVE_S),
        session_reconnect_delay_ms=options.get(
            "session_reconnect_delay_ms", DEFAULT_SESSION_RECONNECT_DELAY_MS
        ),
        link_timeout_ms=options.get("link_timeout_ms", DEFAULT_LINK_TIMEOUT_MS),
    )

    if options.get("persistent", False):
        policy.enable_persistence()
    if options.get("drastic_reset", False):
        policy.enable_drastic_reset()

    will = getattr(cfg, "LAST_WILL", None)
    if will:
        policy.enable_last_will_message(
            will["topic"], will["message"], will.get("retain", False)
        )
    return policy

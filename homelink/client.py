# homelink/client.py
# SPDX-FileCopyrightText: Copyright (c) 2026 Christopher Piggott
# SPDX-License-Identifier: MIT

from adafruit_ticks import ticks_ms

from .log import NullLogger, get_logger
from .matcher import check_pattern
from .minimqtt_transport import MiniMQTTTransport
from .mqtt_session import MQTTSession
from .radio import RadioLink
from .router import SubscriptionRouter
from .topics import CMND, build_topic
from .wifi_mgr import WifiManager

# fixed header + topic length + packet id, as counted against the buffer
_PACKET_OVERHEAD = 9


class HomeClient:
    """
    Keeps a device on an MQTT broker over Wi-Fi.

    Wires a WifiManager (link) to an MQTTSession (broker session) and
    routes inbound messages to subscription callbacks. Nothing here blocks
    beyond the bounded connect calls of the transports.

    Typical use on a board:
        policy = ConnectionPolicy(wifi_ssid="home", wifi_password="...",
                                  broker="192.168.1.10",
                                  client_name="office_radar_1")
        client = HomeClient(policy)
        client.enable_debugging_messages()
        client.set_on_connection_established(on_connected)
        while True:
            client.tick()
            ...
            if present:
                client.publish(TELE, "present", "01")

    On CPython, pass link=StaticLink() with a policy that has no
    wifi_ssid; the default MiniMQTTTransport then runs on the socket module.
    """

    def __init__(
        self,
        policy,
        *,
        link=None,
        transport=None,
        clock=None,
        restart=None,
        on_connection_established=None,
    ):
        self.policy = policy
        self._clock = clock if clock is not None else ticks_ms
        self.logger = NullLogger()

        if link is None:
            link = RadioLink(hostname=policy.client_name)
        if transport is None:
            transport = MiniMQTTTransport(policy, socket_pool=link.socket_pool())
        self.link = link
        self.transport = transport

        self.router = SubscriptionRouter()
        self.wifi = WifiManager(policy, link)
        self.mqtt = MQTTSession(
            policy,
            self.wifi,
            transport,
            on_established=on_connection_established,
            restart=restart,
        )
        self.wifi.on_established = self.mqtt.link_established

        self.transport.set_on_message(self._on_message)

    # ---- configuration ----

    def enable_logger(self, log_pkg, log_level: int = 20, logger_name: str = "homelink"):
        """Log through a logging package (logging, adafruit_logging)."""
        return self._set_logger(get_logger(log_pkg, log_level, logger_name))

    def disable_logger(self):
        self._set_logger(NullLogger())

    def enable_debugging_messages(self, enabled: bool = True):
        if not enabled:
            self.disable_logger()
            return
        try:
            import logging
        except ImportError:
            import adafruit_logging as logging  # CircuitPython

        self.enable_logger(logging, logging.DEBUG)

    def _set_logger(self, logger):
        self.logger = logger
        for part in (self.policy, self.wifi, self.mqtt, self.link, self.transport):
            if hasattr(part, "logger"):
                part.logger = logger
        return logger

    def enable_persistence(self):
        self.policy.enable_persistence()

    def enable_last_will_message(self, topic, message, retain=False):
        self.policy.enable_last_will_message(topic, message, retain)

    def enable_drastic_reset(self):
        self.policy.enable_drastic_reset()

    def set_on_connection_established(self, callback):
        self.mqtt.on_established = callback

    # ---- main loop hook ----

    def tick(self, now: int | None = None):
        """
        Call frequently from the main loop.

        A Wi-Fi change ends the tick early; MQTT is handled on the next one.
        """
        if self.mqtt.halted:
            return
        if now is None:
            now = self._clock()
        if not self.policy.frozen:
            self.policy.freeze()

        if self.wifi.tick(now):
            return
        self.mqtt.tick(now)

    # ---- status ----

    def link_up(self) -> bool:
        return self.wifi.is_up()

    def session_up(self) -> bool:
        return self.mqtt.is_up()

    def fully_up(self) -> bool:
        return self.link_up() and self.session_up()

    @property
    def connection_established_count(self) -> int:
        return self.mqtt.established_count

    # ---- MQTT ----

    def topic(self, kind, name) -> str:
        return build_topic(kind, self.policy.client_name, name)

    def set_keep_alive(self, seconds: int):
        self.transport.set_keep_alive(seconds)

    def set_max_packet_size(self, size: int) -> bool:
        ok = self.transport.set_buffer_size(size)
        if not ok:
            self.logger.warning("MQTT! failed to set the max packet size.")
        return ok

    def publish(self, kind, name, payload, retain: bool = False) -> bool:
        if not self.fully_up():
            self.logger.warning("MQTT! Trying to publish when disconnected, skipping.")
            return False

        full = self.topic(kind, name)
        ok = self.transport.publish(full, payload, retain)
        if ok:
            self.logger.debug(f"MQTT << [{full}] {payload}")
        else:
            self.logger.warning(
                "MQTT! publish failed, is the message too long ? (see set_max_packet_size())"
            )
        return ok

    def subscribe(self, name, callback, qos: int = 0) -> bool:
        """Subscribe to cmnd/<client>/<name>; callback(payload)."""
        return self._subscribe(name, qos, callback, None)

    def subscribe_with_topic(self, name, callback, qos: int = 0) -> bool:
        """Subscribe to cmnd/<client>/<name>; callback(topic, payload)."""
        return self._subscribe(name, qos, None, callback)

    def _subscribe(self, name, qos, callback, topic_callback) -> bool:
        if not self.fully_up():
            self.logger.warning("MQTT! Trying to subscribe when disconnected, skipping.")
            return False

        full = self.topic(CMND, name)
        try:
            check_pattern(full)
        except ValueError as e:
            self.logger.warning(f"MQTT! subscribe refused: {e}")
            return False

        if not self.transport.subscribe(full, qos):
            self.logger.warning("MQTT! subscribe failed")
            return False

        self.router.add(full, callback, topic_callback)
        self.logger.info(f"MQTT: Subscribed to [{full}]")
        return True

    def unsubscribe(self, name) -> bool:
        if not self.fully_up():
            self.logger.warning("MQTT! Trying to unsubscribe when disconnected, skipping.")
            return False

        full = self.topic(CMND, name)
        if full not in self.router:
            return True

        if not self.transport.unsubscribe(full):
            self.logger.warning("MQTT! unsubscribe failed")
            return False

        self.router.remove(full)
        self.logger.info(f"MQTT: Unsubscribed from {full}")
        return True

    # ---- inbound ----

    def _on_message(self, topic, payload, length):
        end = min(length, len(payload))
        capacity = self.transport.buffer_size()
        if capacity is not None and len(topic) + length + _PACKET_OVERHEAD > capacity:
            self.logger.warning(
                "MQTT! Your message may be truncated, please set set_max_packet_size() "
                "to a higher value."
            )
            end = max(0, min(end, capacity - len(topic) - _PACKET_OVERHEAD))

        message = bytes(payload[:end]).decode("utf-8", "replace")
        self.logger.debug(f"MQTT >> [{topic}] {message}")
        self.router.dispatch(topic, message)

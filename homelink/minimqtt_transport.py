# homelink/minimqtt_transport.py
# SPDX-FileCopyrightText: Copyright (c) 2026 Christopher Piggott
# SPDX-License-Identifier: MIT

import adafruit_minimqtt.adafruit_minimqtt as MQTT

from .log import NullLogger

_ERRORS = (MQTT.MMQTTException, OSError, ValueError)


class MiniMQTTTransport:
    """
    Session transport over adafruit_minimqtt.

    Every call either succeeds or reports failure as False; library
    exceptions are logged and stop here. On a board pass the radio's
    socket pool (RadioLink.socket_pool()); on CPython pass the socket
    module, plus an ssl context when is_ssl is set.

    Inbound messages are delivered as handler(topic, payload_bytes, length).
    """

    def __init__(
        self,
        policy,
        *,
        socket_pool=None,
        ssl_context=None,
        is_ssl=False,
        socket_timeout=0.05,
        loop_timeout=0.05,
        client=None,
    ):
        self._keep_alive = policy.keep_alive
        self._loop_timeout = loop_timeout
        self._handler = None
        self._broken = False
        self.logger = NullLogger()

        if client is None:
            client = MQTT.MQTT(
                broker=policy.broker,
                port=policy.port,
                username=policy.username,
                password=policy.password,
                client_id=policy.client_name,
                is_ssl=is_ssl,
                keep_alive=policy.keep_alive,
                socket_pool=socket_pool,
                ssl_context=ssl_context,
                socket_timeout=socket_timeout,
                connect_retries=1,
                use_binary_mode=True,
            )
        self._client = client
        self._client.on_message = self._on_message

    # ---- MQTT callbacks ----

    def _on_message(self, client, topic, message):
        if self._handler is None:
            return
        if isinstance(message, str):
            message = message.encode("utf-8")
        self._handler(topic, bytes(message), len(message))

    # ---- session transport API ----

    def set_on_message(self, handler):
        self._handler = handler

    def connect(
        self,
        client_id,
        username,
        password,
        will_topic,
        will_qos,
        will_retain,
        will_message,
        clean_session,
    ) -> bool:
        client = self._client
        try:
            client.client_id = client_id
            if username is not None:
                client.username_pw_set(username, password)
            if will_topic:
                client.will_set(will_topic, will_message, retain=will_retain, qos=will_qos)
            client.connect(clean_session=clean_session, keep_alive=self._keep_alive)
        except _ERRORS as e:
            self.logger.warning(f"MQTT! unable to connect, reason: {e}")
            return False

        self._broken = False
        return True

    def disconnect(self):
        try:
            self._client.disconnect()
        except _ERRORS as e:
            self.logger.debug(f"MQTT: disconnect: {e}")

    def connected(self) -> bool:
        if self._broken:
            return False
        try:
            return bool(self._client.is_connected())
        except MQTT.MMQTTException:
            return False

    def pump(self):
        """Process any waiting packets and keep-alive pings."""
        if not self.connected():
            return
        try:
            self._client.loop(timeout=self._loop_timeout)
        except _ERRORS as e:
            self.logger.warning(f"MQTT! loop error: {e}")
            # the socket is in an unknown state; report the session lost
            self._broken = True
            self.disconnect()

    def set_keep_alive(self, seconds: int):
        self._keep_alive = seconds
        self._client.keep_alive = seconds

    def set_buffer_size(self, size: int) -> bool:
        if size <= 0 or size >= MQTT.MQTT_MSG_MAX_SZ:
            return False
        self._client.mqtt_msg = size
        return True

    def buffer_size(self):
        """Inbound capacity in bytes, or None when inbound is unbounded.

        MiniMQTT reads every PUBLISH in full; mqtt_msg only limits publish().
        """
        return None

    def subscribe(self, topic: str, qos: int = 0) -> bool:
        try:
            self._client.subscribe(topic, qos)
        except _ERRORS as e:
            self.logger.warning(f"MQTT! subscribe error: {e}")
            return False
        return True

    def unsubscribe(self, topic: str) -> bool:
        try:
            self._client.unsubscribe(topic)
        except _ERRORS as e:
            self.logger.warning(f"MQTT! unsubscribe error: {e}")
            return False
        return True

    def publish(self, topic: str, payload, retain: bool = False) -> bool:
        try:
            self._client.publish(topic, payload, retain=retain, qos=0)
        except _ERRORS as e:
            self.logger.warning(f"MQTT! publish error: {e}")
            return False
        return True

# homelink/mqtt_session.py

from adafruit_ticks import ticks_add, ticks_diff

from .log import NullLogger


class SessionState:
    IDLE = "idle"
    CONNECT_PENDING = "connect_pending"
    UP = "up"
    LOST_PENDING = "lost_pending"


def _default_restart():
    import microcontroller  # CircuitPython only

    microcontroller.reset()


class MQTTSession:
    """
    Tick-driven MQTT session state machine, layered on a WifiManager.

    Behavior:
      - While Wi-Fi is down, the session stays idle (no connect, no pump).
      - Once Wi-Fi comes up it waits a short settle delay, then connects.
      - A failed connect is retried after the reconnect delay. Repeated
        failures reset the Wi-Fi link, and in drastic mode eventually
        restart the device.

    Call tick(now) after WifiManager.tick(now); it returns True when the
    session went up or down during that tick.
    """

    def __init__(
        self,
        policy,
        wifimgr,
        transport,
        *,
        on_established=None,
        on_lost=None,
        restart=None,
    ):
        self._policy = policy
        self._wifimgr = wifimgr
        self._transport = transport
        self.on_established = on_established   # callable(), user callback
        self.on_lost = on_lost                 # callable(now)
        self._restart = restart if restart is not None else _default_restart
        self.logger = NullLogger()

        self._state = SessionState.IDLE
        self._connected = False
        self._halted = False

        self.next_attempt_at = None
        self.failed_attempts = 0
        self.established_count = 0

    # ---- status API ----

    def state(self) -> str:
        if self._state == SessionState.UP and not self._wifimgr.is_up():
            return SessionState.LOST_PENDING
        return self._state

    def is_up(self) -> bool:
        # never up without the link, even before the next tick notices
        return self._connected and self._wifimgr.is_up()

    @property
    def halted(self) -> bool:
        """True once the device restart has been requested."""
        return self._halted

    # ---- link hook ----

    def link_established(self, now: int):
        # Connecting right after Wi-Fi comes up is known to be flaky
        self.next_attempt_at = ticks_add(now, self._policy.session_settle_ms)
        if not self._connected:
            self._state = SessionState.CONNECT_PENDING

    # ---- main loop hook ----

    def tick(self, now: int) -> bool:
        if self._halted:
            return False

        wifi_up = self._wifimgr.is_up()
        if wifi_up:
            self._transport.pump()

        connected = wifi_up and bool(self._transport.connected())

        if connected and not self._connected:
            self._state = SessionState.UP
            self._established()

        elif not connected and self._connected:
            self._lost(now)

        elif wifi_up and self._attempt_due(now):
            self._attempt(now)

        changed = connected != self._connected
        self._connected = connected
        return changed

    # ---- internals ----

    def _attempt_due(self, now: int) -> bool:
        return self.next_attempt_at is not None and ticks_diff(now, self.next_attempt_at) >= 0

    def _attempt(self, now: int):
        policy = self._policy
        self.logger.info(
            f'MQTT: Connecting to broker "{policy.broker}" with client name '
            f'"{policy.client_name}" ... ({now / 1000.0}s)'
        )

        ok = self._transport.connect(
            policy.client_name,
            policy.username,
            policy.password,
            policy.last_will_topic,
            0,
            policy.last_will_retain,
            policy.last_will_message,
            policy.clean_session,
        )

        if ok:
            self.logger.info(f"MQTT: connect ok. ({now / 1000.0}s)")
            self.failed_attempts = 0
            self.next_attempt_at = None
            return

        self.next_attempt_at = ticks_add(now, policy.session_reconnect_delay_ms)
        self._transport.disconnect()
        self.failed_attempts += 1
        self._state = SessionState.CONNECT_PENDING
        self.logger.warning(
            f"MQTT! Failed MQTT connection count: {self.failed_attempts}, "
            f"retrying in {policy.session_reconnect_delay_ms // 1000} seconds."
        )
        self._escalate(now)

    def _escalate(self, now: int):
        policy = self._policy

        # Repeated broker failures are sometimes a Wi-Fi problem in disguise
        if self.failed_attempts == policy.link_reset_threshold:
            self.logger.error(
                "MQTT! Can't connect to broker after too many attempts, resetting WiFi ..."
            )
            self._wifimgr.force_reset(now)
            if not policy.drastic_reset:
                self.failed_attempts = 0

        elif policy.drastic_reset and self.failed_attempts == policy.restart_threshold:
            self.logger.critical(
                "MQTT! Can't connect to broker after too many attempts, resetting board ..."
            )
            self._halted = True
            self._restart()

    def _established(self):
        self.established_count += 1
        if self.on_established is not None:
            self.on_established()

    def _lost(self, now: int):
        policy = self._policy
        self.logger.warning(f"MQTT! Lost connection ({now / 1000.0}s).")
        self.logger.info(
            f"MQTT: Retrying to connect in {policy.session_reconnect_delay_ms // 1000} seconds."
        )
        self.next_attempt_at = ticks_add(now, policy.session_reconnect_delay_ms)
        self._state = SessionState.LOST_PENDING
        if self.on_lost is not None:
            self.on_lost(now)

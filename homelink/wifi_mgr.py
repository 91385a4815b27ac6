# homelink/wifi_mgr.py

from adafruit_ticks import ticks_add, ticks_diff

from .log import NullLogger


class LinkState:
    IDLE = "idle"
    CONNECTING = "connecting"
    UP = "up"
    LOST_PENDING = "lost_pending"


class WifiManager:
    """
    Tick-driven Wi-Fi link state machine.

    Knows nothing about MQTT. Call tick(now) once per loop with the current
    ticks_ms() value; it returns True when the link went up or down during
    that tick.

    With no SSID in the policy the link is only observed: nothing is ever
    connected or disconnected here, but established/lost hooks still fire.

    `link` is a link transport (see homelink.radio):
      begin_association(ssid, password), currently_associated(),
      association_failed(), force_disassociate(), ip_address_str()
    """

    def __init__(self, policy, link, *, on_established=None, on_lost=None):
        self._policy = policy
        self._link = link
        self.on_established = on_established   # callable(now)
        self.on_lost = on_lost                 # callable(now)
        self.logger = NullLogger()

        self._state = LinkState.IDLE
        self._connected = False
        self._started = False

        self.next_attempt_at = None
        self.last_attempt_at = None

    # ---- status API ----

    def state(self) -> str:
        return self._state

    def is_up(self) -> bool:
        return self._connected

    @property
    def handle_wifi(self) -> bool:
        return self._policy.handle_wifi

    # ---- control API ----

    def force_reset(self, now: int):
        """Drop the association and schedule a fresh attempt."""
        self.logger.warning("WiFi! Resetting the connection")
        self._link.force_disassociate()
        if not self._connected:
            self._state = LinkState.IDLE
        if self.handle_wifi:
            self.next_attempt_at = ticks_add(now, self._policy.link_settle_ms)

    # ---- main loop hook ----

    def tick(self, now: int) -> bool:
        # First call: reset the radio and wait a little before connecting
        if self.handle_wifi and not self._started:
            self._started = True
            self._link.force_disassociate()
            self.next_attempt_at = ticks_add(now, self._policy.link_settle_ms)
            return False
        self._started = True

        associated = bool(self._link.currently_associated())

        if associated and not self._connected:
            self._established(now)
            self._state = LinkState.UP

        elif self._state == LinkState.CONNECTING:
            if self._link.association_failed() or self._attempt_expired(now):
                self.logger.warning(
                    f"WiFi! Connection attempt failed, delay expired. ({now / 1000.0}s)"
                )
                self._link.force_disassociate()
                self.next_attempt_at = ticks_add(now, self._policy.link_settle_ms)
                self._state = LinkState.IDLE

        elif not associated and self._connected:
            self._lost(now)
            self._state = LinkState.LOST_PENDING

        elif not associated and self._attempt_due(now):
            self._connect(now)

        changed = associated != self._connected
        self._connected = associated
        return changed

    # ---- internals ----

    def _attempt_due(self, now: int) -> bool:
        return (
            self.handle_wifi
            and self.next_attempt_at is not None
            and ticks_diff(now, self.next_attempt_at) >= 0
        )

    def _attempt_expired(self, now: int) -> bool:
        return ticks_diff(now, self.last_attempt_at) >= self._policy.link_timeout_ms

    def _connect(self, now: int):
        policy = self._policy
        self.logger.info(f"WiFi: Connecting to {policy.wifi_ssid} ... ({now / 1000.0}s)")
        self._link.begin_association(policy.wifi_ssid, policy.wifi_password)
        self.next_attempt_at = None
        self.last_attempt_at = now
        self._state = LinkState.CONNECTING

    def _established(self, now: int):
        self.logger.info(
            f"WiFi: Connected ({now / 1000.0}s), ip : {self._link.ip_address_str()}"
        )
        if self.on_established is not None:
            self.on_established(now)

    def _lost(self, now: int):
        self.logger.warning(f"WiFi! Lost connection ({now / 1000.0}s).")
        if self.on_lost is not None:
            self.on_lost(now)

        # Clear the old association before trying again
        if self.handle_wifi:
            self._link.force_disassociate()
            self.next_attempt_at = ticks_add(now, self._policy.link_settle_ms)

# homelink/radio.py
#
# Link transports for WifiManager.

import adafruit_connection_manager

from .log import NullLogger


def _decode_ssid(ssid):
    if isinstance(ssid, (bytes, bytearray)):
        return ssid.decode("utf-8", "replace")
    return ssid


class RadioLink:
    """
    Link transport over a CircuitPython wifi.radio.

    CircuitPython's radio.connect() blocks until it succeeds, fails or
    times out, so begin_association() is bounded by connect_timeout_s and
    a failure is remembered for association_failed().
    """

    _CONNECT_TIMEOUT_S = 5

    def __init__(self, *, radio=None, hostname=None, connect_timeout_s=_CONNECT_TIMEOUT_S):
        if radio is None:
            import wifi  # CircuitPython only

            radio = wifi.radio
        self._radio = radio
        self._hostname = hostname
        self._connect_timeout_s = connect_timeout_s
        self._failed = False
        self.last_error = None
        self.logger = NullLogger()

    # ---- link transport API ----

    def begin_association(self, ssid: str, password: str | None):
        self._failed = False
        self.last_error = None

        if self._hostname:
            try:
                self._radio.hostname = self._hostname
            except (AttributeError, ValueError) as e:
                self.logger.debug(f"WiFi: could not set hostname: {e}")

        try:
            try:
                self._radio.connect(ssid, password or "", timeout=self._connect_timeout_s)
            except TypeError:
                self._radio.connect(ssid, password or "")
        except (ConnectionError, OSError) as e:
            self._failed = True
            self.last_error = e
            self.logger.warning(f"WiFi! connect error: {e}")

    def currently_associated(self) -> bool:
        ap = self._radio.ap_info
        if ap is None:
            return False
        return isinstance(_decode_ssid(getattr(ap, "ssid", None)), str)

    def association_failed(self) -> bool:
        return self._failed

    def force_disassociate(self):
        self._failed = False
        try:
            self._radio.disconnect()
        except (AttributeError, OSError) as e:
            self.logger.debug(f"WiFi: disconnect error: {e}")

    # ---- misc helpers ----

    def socket_pool(self):
        """SocketPool for the radio, shared with anything else using it."""
        return adafruit_connection_manager.get_radio_socketpool(self._radio)

    def mac_address_str(self) -> str:
        mac = self._radio.mac_address
        return ":".join(f"{b:02X}" for b in mac)

    def ip_address_str(self) -> str | None:
        try:
            ip = self._radio.ipv4_address
        except AttributeError:
            return None
        return str(ip) if ip is not None else None


class StaticLink:
    """
    Link transport for hosts where the operating system owns the network.

    Always associated. Use it with a policy that has no wifi_ssid, so
    WifiManager only observes it.
    """

    def begin_association(self, ssid, password):
        pass

    def currently_associated(self) -> bool:
        return True

    def association_failed(self) -> bool:
        return False

    def force_disassociate(self):
        pass

    def socket_pool(self):
        import socket

        return socket

    def ip_address_str(self):
        return None

"""User-Agent classification used by the login decision tree."""

from conftest import CHROME_UA, EDGE_UA, FIREFOX_UA, IPHONE_UA

from qaforum.security.client_info import parse_client


class TestParseClient:
    def test_desktop_chrome(self):
        client = parse_client(CHROME_UA, "10.0.0.1")
        assert client.is_chrome
        assert not client.is_handheld
        assert client.device_type == "desktop"
        assert client.ip_address == "10.0.0.1"

    def test_edge_is_not_chrome(self):
        """Edge carries a Chrome token but must not take the OTP branch."""
        client = parse_client(EDGE_UA, "10.0.0.1")
        assert client.is_edge
        assert not client.is_chrome

    def test_firefox(self):
        client = parse_client(FIREFOX_UA, "10.0.0.1")
        assert not client.is_chrome
        assert client.browser_name == "Firefox"

    def test_iphone_is_handheld(self):
        client = parse_client(IPHONE_UA, "10.0.0.1")
        assert client.is_handheld
        assert client.device_type == "mobile"

    def test_missing_headers(self):
        client = parse_client(None, None)
        assert client.ip_address == "unknown"
        assert client.device_type == "desktop"
        assert not client.is_chrome

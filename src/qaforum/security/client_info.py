"""Describe the calling client from its request headers."""

from __future__ import annotations

from dataclasses import dataclass

from starlette.requests import Request
from user_agents import parse


@dataclass(frozen=True)
class ClientInfo:
    ip_address: str
    user_agent: str
    browser_name: str
    browser_version: str
    os_name: str
    os_version: str
    device_type: str  # desktop | mobile | tablet

    @property
    def is_handheld(self) -> bool:
        return self.device_type in ("mobile", "tablet")

    @property
    def is_edge(self) -> bool:
        return "edge" in self.browser_name.lower()

    @property
    def is_chrome(self) -> bool:
        """Chrome proper; Edge also ships a Chrome token and is excluded."""
        name = self.browser_name.lower()
        return "chrome" in name and not self.is_edge


def parse_client(user_agent: str | None, ip_address: str | None) -> ClientInfo:
    ua_string = user_agent or ""
    ua = parse(ua_string)
    if ua.is_tablet:
        device_type = "tablet"
    elif ua.is_mobile:
        device_type = "mobile"
    else:
        device_type = "desktop"
    return ClientInfo(
        ip_address=ip_address or "unknown",
        user_agent=ua_string[:512],
        browser_name=ua.browser.family or "Other",
        browser_version=ua.browser.version_string or "",
        os_name=ua.os.family or "Other",
        os_version=ua.os.version_string or "",
        device_type=device_type,
    )


def client_ip(request: Request) -> str | None:
    """First hop of X-Forwarded-For when present, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def client_from_request(request: Request) -> ClientInfo:
    return parse_client(request.headers.get("User-Agent"), client_ip(request))

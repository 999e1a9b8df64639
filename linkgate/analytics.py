"""Coarse browser / device / OS classification for click records."""

from dataclasses import dataclass
from typing import Optional

UNKNOWN = "Inconnu"


@dataclass(frozen=True)
class DeviceInfo:
    browser: str
    device: str
    os: str


def detect_device_info(user_agent: Optional[str]) -> DeviceInfo:
    """Classify a user agent. Checks are ordered; the first hit wins."""
    ua = (user_agent or "").lower()

    # Edge and Opera also announce Chrome, so they go first
    browser = UNKNOWN
    if "edg" in ua:
        browser = "Edge"
    elif "opr/" in ua or "opera" in ua:
        browser = "Opera"
    elif "firefox" in ua or "fxios" in ua:
        browser = "Firefox"
    elif "chrome" in ua or "crios" in ua:
        browser = "Chrome"
    elif "safari" in ua:
        browser = "Safari"

    device = "Desktop"
    if "ipad" in ua or "tablet" in ua:
        device = "Tablet"
    elif "mobile" in ua or "iphone" in ua:
        device = "Mobile"

    os_name = UNKNOWN
    if "android" in ua:
        os_name = "Android"
    elif "iphone" in ua or "ipad" in ua or "ios" in ua:
        os_name = "iOS"
    elif "windows" in ua:
        os_name = "Windows"
    elif "mac" in ua:
        os_name = "macOS"
    elif "linux" in ua:
        os_name = "Linux"

    return DeviceInfo(browser=browser, device=device, os=os_name)

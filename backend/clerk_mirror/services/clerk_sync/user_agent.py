"""
Best-effort device and browser inference from a User-Agent string.

Used only when Clerk's structured session fields are absent; structured
fields always win. Matching is a plain substring scan, so the result is
an enrichment hint, never an authoritative classification.
"""

from dataclasses import dataclass
from typing import Optional

DEVICE_MOBILE = "mobile"
DEVICE_DESKTOP = "desktop"

# Order matters: Chromium derivatives also carry "Chrome/" and "Safari/".
BROWSER_TOKENS = (
    ("Edg/", "Edge"),
    ("Edge/", "Edge"),
    ("OPR/", "Opera"),
    ("Opera", "Opera"),
    ("SamsungBrowser", "Samsung Internet"),
    ("FxiOS", "Firefox"),
    ("Firefox/", "Firefox"),
    ("CriOS", "Chrome"),
    ("Chrome/", "Chrome"),
    ("Chromium", "Chrome"),
    ("Safari/", "Safari"),
    ("MSIE", "Internet Explorer"),
    ("Trident/", "Internet Explorer"),
)


@dataclass(frozen=True)
class DeviceInfo:
    device_type: Optional[str] = None
    browser_name: Optional[str] = None


def parse_user_agent(user_agent: Optional[str]) -> DeviceInfo:
    """
    Classify a User-Agent string.

    "Mobile" anywhere in the string means a mobile device, anything else is
    treated as desktop. An empty or missing string yields an empty DeviceInfo.
    """
    if not user_agent or not user_agent.strip():
        return DeviceInfo()

    device_type = DEVICE_MOBILE if "Mobile" in user_agent else DEVICE_DESKTOP

    browser_name = None
    for token, name in BROWSER_TOKENS:
        if token in user_agent:
            browser_name = name
            break

    return DeviceInfo(device_type=device_type, browser_name=browser_name)

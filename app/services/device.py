"""
UserDesk - Client address and device description for the activity log.

Devices are "<Browser>, <OS>" strings derived from the User-Agent header,
e.g. "Chrome, Windows", using the ua-parser family names.
"""
from typing import Optional

from fastapi import Request
from user_agents import parse

# ua-parser reports unrecognised agents as "Other"
_UNKNOWN_FAMILY = "Other"


def get_client_device(user_agent: Optional[str] = "") -> str:
    """Describe the browser and OS of a request's User-Agent."""
    user_agent = user_agent or ""
    parsed = parse(user_agent)

    browser = parsed.browser.family
    if not browser or browser == _UNKNOWN_FAMILY:
        browser = "Unknown Browser"
    os_name = parsed.os.family
    if not os_name or os_name == _UNKNOWN_FAMILY:
        os_name = "Unknown OS"

    # Brave sends a plain Chrome UA unless it chooses to identify itself
    if "Brave" in user_agent:
        browser = "Brave"

    return f"{browser}, {os_name}"


def get_client_ip(request: Request) -> str:
    """
    Get the client's IP address from the request.

    Handles X-Forwarded-For header for requests behind a proxy.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs; first is the client
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"

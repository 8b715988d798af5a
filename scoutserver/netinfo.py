import logging
import socket
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

PUBLIC_IP_URL = "https://api.ipify.org?format=json"


def get_local_ip() -> str:
    """LAN address of the interface that routes to the internet, or `localhost`."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))  # UDP connect sends nothing, it only picks a route
            return s.getsockname()[0]
    except OSError:
        return "localhost"


async def get_public_ip(timeout: float = 3.0) -> Optional[str]:
    """Public address as seen by ipify. None when offline or the service misbehaves."""
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.get(PUBLIC_IP_URL)
            resp.raise_for_status()
            data = resp.json()
            return data.get("ip") if isinstance(data, dict) else None
    except (httpx.HTTPError, ValueError) as e:
        logger.info("Public IP lookup failed: %s", e)
        return None


def startup_banner(port: int, local_ip: str, public_ip: Optional[str]) -> str:
    lines = [
        "FRC Scouting Server running!",
        f"Local access: http://localhost:{port}",
        f"Network access: http://{local_ip}:{port}",
    ]
    if public_ip:
        lines += [
            "",
            "For external access (after port forwarding):",
            f"Public IP: http://{public_ip}:{port}",
        ]
    return "\n".join(lines)

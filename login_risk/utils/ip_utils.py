# login_risk/utils/ip_utils.py

from typing import List

from fastapi import Request

PRIVATE_PREFIXES = ("10.", "192.168.")


def get_client_ip(request: Request) -> str:
    """
    Extract real client IP (handles proxies/load balancers)
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    # Fallback to direct client
    return request.client.host if request.client else "unknown"


def is_private_ip(ip_address: str) -> bool:
    return ip_address.startswith(PRIVATE_PREFIXES)


def ip_octets(ip_address: str) -> List[int]:
    """Numeric dot-separated segments of an address; anything non-numeric counts as 0."""
    return [int(part) if part.isdigit() else 0 for part in ip_address.strip().split(".")]

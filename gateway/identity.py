# gateway/identity.py
# Resolve the rate-limit key for a request, trusting a fixed number of proxy hops.

import ipaddress

# Only "no proxy" and "one proxy" are meaningful: the key is always the
# left-most forwarded address, so deeper chains cannot be modelled.
SUPPORTED_TRUST_HOPS = (0, 1)


def validate_trusted_hops(trusted_hops: int) -> int:
    if trusted_hops not in SUPPORTED_TRUST_HOPS:
        raise ValueError(
            f"TRUST_PROXY_HOPS must be 0 or 1 (number of reverse proxies), got {trusted_hops!r}"
        )
    return trusted_hops


def _well_formed(addr: str) -> bool:
    try:
        ipaddress.ip_address(addr)
    except ValueError:
        return False
    return True


def resolve_client_key(request, trusted_hops: int = 1) -> str:
    """
    Return the client identifier used to key rate-limit counters.

    Behind one trusted reverse proxy the left-most X-Forwarded-For entry is
    the client. Trusting a proxy that does not exist lets callers spoof the
    key, so the value must match the deployment. Falls back to the peer address.
    """
    if trusted_hops > 0:
        xff = request.headers.get("X-Forwarded-For")
        if xff:
            first = xff.split(",")[0].strip()
            if first and _well_formed(first):
                return first
    return request.remote_addr or "127.0.0.1"

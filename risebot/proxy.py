import re
import ssl
from typing import Optional

import certifi
from aiohttp import BasicAuth, ClientResponseError, ClientSession, ClientTimeout, TCPConnector
from aiohttp_socks import ProxyConnector
from fake_useragent import FakeUserAgent

from risebot.errors import ConnectivityError
from risebot.utils import mask_proxy

IP_CHECK_URL = "https://api.ipify.org?format=json"


def create_ssl_context() -> ssl.SSLContext:
    try:
        return ssl.create_default_context(cafile=certifi.where())
    except Exception:
        return ssl.create_default_context()


def build_proxy_config(proxy: Optional[str] = None, ssl_context: Optional[ssl.SSLContext] = None):
    """Return (connector, proxy_url, proxy_auth) for an aiohttp session."""
    ssl_context = ssl_context or create_ssl_context()
    if not proxy:
        return TCPConnector(ssl=ssl_context), None, None
    if proxy.startswith("socks"):
        connector = ProxyConnector.from_url(proxy, ssl=ssl_context)
        return connector, None, None
    elif proxy.startswith("http"):
        match = re.match(r"(https?)://(.*?):(.*?)@(.*)", proxy)
        connector = TCPConnector(ssl=ssl_context)
        if match:
            scheme, username, password, host_port = match.groups()
            return connector, f"{scheme}://{host_port}", BasicAuth(username, password)
        return connector, proxy, None
    raise ValueError(f"Unsupported proxy type: {mask_proxy(proxy)}")


def random_headers(origin: Optional[str] = None) -> dict:
    headers = {
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "en-US,en;q=0.9",
        "User-Agent": FakeUserAgent().random,
    }
    if origin:
        headers["Origin"] = origin
        headers["Referer"] = f"{origin}/"
    return headers


async def check_proxy_ip(proxy: Optional[str], timeout: int = 30) -> str:
    """Public IP seen through ``proxy``. Raises ConnectivityError on failure."""
    connector, proxy_url, proxy_auth = build_proxy_config(proxy)
    try:
        async with ClientSession(connector=connector, timeout=ClientTimeout(total=timeout)) as session:
            async with session.get(url=IP_CHECK_URL, proxy=proxy_url, proxy_auth=proxy_auth) as response:
                response.raise_for_status()
                data = await response.json()
                return data["ip"]
    except (Exception, ClientResponseError) as e:
        raise ConnectivityError(f"Cannot check proxy IP for {mask_proxy(proxy)}: {e}") from e


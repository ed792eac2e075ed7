#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
ipstack IP 定位客户端

请求: GET {base_url}/{ip}?access_key={key}
返回: {"latitude": 12.0, "longitude": 34.0, ...}

错误分类:
- NoAddressError          地址为空，不发请求
- QuotaExceededError      403/429，或响应体中的配额错误 (code 104)
- HTTPStatusError         其他非 2xx 状态
- ProviderError           2xx 但 success=false
- TransportError          连接失败或超时
- MalformedResponseError  响应体不是合法 JSON 对象，或坐标不是数字
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.parse
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import aiohttp

DEFAULT_BASE_URL = "http://api.ipstack.com"
USER_AGENT = "where-map/0.1"

QUOTA_STATUSES = (403, 429)
QUOTA_ERROR_CODE = 104

logger = logging.getLogger(__name__)


class GeolocationError(Exception):
    """定位失败"""


class NoAddressError(GeolocationError):
    def __init__(self):
        super().__init__("no IP provided")


class HTTPStatusError(GeolocationError):
    def __init__(self, status: int, body: str = ""):
        self.status = status
        msg = f"HTTP {status}"
        if body:
            msg += f": {body[:200]}"
        super().__init__(msg)


class QuotaExceededError(HTTPStatusError):
    """服务商配额用尽"""


class ProviderError(GeolocationError):
    pass


class TransportError(GeolocationError):
    pass


class MalformedResponseError(GeolocationError):
    pass


@dataclass
class IPStackConfig:
    """ipstack 配置"""
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 10.0


def parse_ipstack_result(data: Any) -> Tuple[float, float]:
    """
    解析 ipstack 响应体

    Args:
        data: json.loads 后的响应体

    Returns:
        (lat, lng)；服务商没有坐标时返回 (0, 0)
    """
    if not isinstance(data, dict):
        raise MalformedResponseError(f"expected a JSON object, got {type(data).__name__}")

    if data.get("success") is False:
        err = data.get("error") or {}
        if not isinstance(err, dict):
            raise MalformedResponseError(f"ipstack error: {err!r}")
        code = err.get("code")
        info = err.get("info") or err.get("type") or "unknown error"
        if code == QUOTA_ERROR_CODE:
            raise QuotaExceededError(200, info)
        raise ProviderError(f"ipstack error {code}: {info}")

    lat = data.get("latitude")
    lng = data.get("longitude")
    # 私有地址等无法定位的 IP 会返回 null
    if lat is None or lng is None:
        return 0.0, 0.0

    if isinstance(lat, bool) or isinstance(lng, bool):
        raise MalformedResponseError("latitude/longitude must be numbers")
    try:
        return float(lat), float(lng)
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(f"latitude/longitude must be numbers: {e}") from e


class IPStackClient:
    """ipstack API 客户端"""

    def __init__(self, config: IPStackConfig, log: Optional[logging.Logger] = None):
        self.config = config
        self.log = log or logger

    def url_for(self, address: str) -> str:
        base = self.config.base_url.rstrip("/")
        return f"{base}/{urllib.parse.quote(address, safe='')}"

    async def locate(self, session: aiohttp.ClientSession, address: str) -> Tuple[float, float]:
        """
        查询单个地址

        Args:
            session: 共享的 aiohttp 会话
            address: IP 或主机名

        Returns:
            (lat, lng)
        """
        if not address:
            raise NoAddressError()

        params: Dict[str, str] = {"access_key": self.config.api_key}
        headers = {"User-Agent": USER_AGENT}

        try:
            async with session.get(self.url_for(address), params=params, headers=headers) as resp:
                raw = await resp.read()
                status = resp.status
        except asyncio.TimeoutError as e:
            raise TransportError(f"timed out after {self.config.timeout}s") from e
        except aiohttp.ClientError as e:
            raise TransportError(str(e) or type(e).__name__) from e

        try:
            body = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            if 200 <= status < 300:
                raise MalformedResponseError(f"response is not valid UTF-8: {e}") from e
            body = raw.decode("utf-8", errors="replace")

        if not 200 <= status < 300:
            self.log.warning("ipstack returned HTTP %d for %s", status, address)
            if status in QUOTA_STATUSES:
                raise QuotaExceededError(status, body)
            raise HTTPStatusError(status, body)

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Invalid JSON: {e}") from e

        try:
            return parse_ipstack_result(data)
        except QuotaExceededError:
            self.log.warning("ipstack quota exceeded while locating %s", address)
            raise

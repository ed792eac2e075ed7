#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
并发定位 - 每条已授权的会话记录发起一个定位请求，全部并发执行

特点:
- 所有请求先全部派发，再统一等待
- 每个请求独立超时，一个请求卡住不会拖住整批
- 单条失败只记录日志，不中断整批
- 结果按派发顺序返回，与到达顺序无关
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol, Sequence, Tuple

import aiohttp

from geocoding.ipstack import GeolocationError, NoAddressError, TransportError
from geocoding.models import LocationRecord, Resolution
from sessions.address import extract_address
from sessions.parser import SessionRecord

DEFAULT_TIMEOUT = 10.0

logger = logging.getLogger(__name__)


class LocationClient(Protocol):
    """定位客户端接口，IPStackClient 即为一个实现"""

    async def locate(self, session: aiohttp.ClientSession, address: str) -> Tuple[float, float]:
        ...


async def resolve_one(
    session: aiohttp.ClientSession,
    client: LocationClient,
    index: int,
    record: SessionRecord,
    timeout: float,
    log: logging.Logger,
) -> Resolution:
    """定位单条记录，失败时返回带 error 的 Resolution 而不是抛出"""
    name = record.username
    address = extract_address(record.raw_address)

    try:
        if not address:
            raise NoAddressError()
        lat, lng = await asyncio.wait_for(client.locate(session, address), timeout)
    except asyncio.TimeoutError:
        error = TransportError(f"timed out after {timeout}s")
    except GeolocationError as e:
        error = e
    except Exception as e:
        # 单条记录的意外错误同样不能中断整批
        log.warning("unexpected error locating %s", name, exc_info=True)
        error = e
    else:
        mark = LocationRecord(name=name, lat=lat, lng=lng)
        log.debug("located %s", mark)
        return Resolution(index=index, name=name, record=mark)

    log.info("error getting ip location for %s: %s", name, error)
    return Resolution(index=index, name=name, error=error)


async def resolve_all(
    records: Sequence[SessionRecord],
    client: LocationClient,
    timeout: float = DEFAULT_TIMEOUT,
    log: Optional[logging.Logger] = None,
) -> List[Resolution]:
    """
    并发定位所有记录

    Args:
        records: 已通过授权过滤的会话记录
        client: 提供 `async locate(session, address) -> (lat, lng)` 的客户端
        timeout: 单个请求的超时时间（秒）
        log: 日志记录器

    Returns:
        与 records 一一对应的 Resolution 列表
    """
    log = log or logger
    if not records:
        return []

    client_timeout = aiohttp.ClientTimeout(total=timeout)
    async with aiohttp.ClientSession(timeout=client_timeout) as session:
        tasks = [
            asyncio.ensure_future(resolve_one(session, client, i, r, timeout, log))
            for i, r in enumerate(records)
        ]
        results = await asyncio.gather(*tasks)

    failed = sum(1 for r in results if not r.ok)
    log.info("resolved %d/%d locations (%d failed)", len(results) - failed, len(results), failed)
    return list(results)


def resolve_records(
    records: Sequence[SessionRecord],
    client: LocationClient,
    timeout: float = DEFAULT_TIMEOUT,
    log: Optional[logging.Logger] = None,
) -> List[Resolution]:
    """resolve_all 的同步入口"""
    return asyncio.run(resolve_all(records, client, timeout=timeout, log=log))


def fresh_locations(resolutions: Sequence[Resolution]) -> List[LocationRecord]:
    """取出成功的定位结果，保持派发顺序"""
    return [r.record for r in sorted(resolutions, key=lambda r: r.index) if r.ok]

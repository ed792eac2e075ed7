#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
定位流水线 - 串联解析、授权过滤、并发定位、缓存合并和保存

  会话列表 → [parser] → [optin] → [locator] → [merger] → [store]

旧结果在发起任何网络请求之前读取，读取失败直接中止；
新结果在内存中合并完成后才写入，中途失败不会影响已有的结果文件。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from geocoding.locator import DEFAULT_TIMEOUT, LocationClient, fresh_locations, resolve_records
from geocoding.models import LocationRecord
from processing.merger import reconcile
from processing.store import load_locations, save_locations
from sessions.optin import filter_opted_in
from sessions.parser import parse_sessions

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """一次运行的结果统计"""
    records: List[LocationRecord] = field(default_factory=list)
    sessions: int = 0
    admitted: int = 0
    resolved: int = 0
    failed: int = 0


def run_pipeline(
    listing: Union[str, bytes],
    client: LocationClient,
    store_path: str,
    is_opted_in: Callable[[str], bool],
    timeout: float = DEFAULT_TIMEOUT,
    log: Optional[logging.Logger] = None,
) -> PipelineResult:
    """
    执行一次完整的定位流程

    Args:
        listing: `who --ips` 原始输出
        client: 定位客户端（见 geocoding.locator.resolve_all）
        store_path: 结果文件路径
        is_opted_in: 用户名 -> 是否加入
        timeout: 单个请求超时（秒）
        log: 日志记录器

    Returns:
        PipelineResult
    """
    log = log or logger

    sessions = parse_sessions(listing)
    admitted = filter_opted_in(sessions, is_opted_in, log)

    persisted = load_locations(store_path)
    log.debug("loaded %d cached records from %s", len(persisted), store_path)

    resolutions = resolve_records(admitted, client, timeout=timeout, log=log)
    fresh = fresh_locations(resolutions)

    merged = reconcile(fresh, persisted, is_opted_in, log)
    save_locations(merged, store_path)
    log.info("saved %d records to %s", len(merged), store_path)

    return PipelineResult(
        records=merged,
        sessions=len(sessions),
        admitted=len(admitted),
        resolved=len(fresh),
        failed=len(resolutions) - len(fresh),
    )

#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
缓存合并 - 将本次定位结果与上次保存的结果按用户名合并

输入:
  fresh      本次定位成功的记录 [{name, lat, lng}]
  persisted  上次保存的记录     [{name, lat, lng}]

规则:
- 两边都有且用户仍已加入：优先用本次结果；本次为 (0, 0) 时保留旧值
- 只在本次出现：直接采用本次结果
- 只在旧结果中出现：用户仍已加入才保留，否则删除（撤销授权即删除历史数据）
- 每个用户名只输出一条

输出顺序: 先按本次结果首次出现的顺序，再按旧结果的顺序追加，
相同输入总是得到相同输出。
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional

from geocoding.models import LocationRecord

logger = logging.getLogger(__name__)


def index_by_name(records: Iterable[LocationRecord]) -> Dict[str, LocationRecord]:
    """按 name 建立索引，同名时后出现的覆盖先出现的，但位置保持首次出现的位置"""
    index: Dict[str, LocationRecord] = OrderedDict()
    for rec in records:
        index[rec.name] = rec
    return index


def reconcile(
    fresh: Iterable[LocationRecord],
    persisted: Iterable[LocationRecord],
    is_opted_in: Callable[[str], bool],
    log: Optional[logging.Logger] = None,
) -> List[LocationRecord]:
    """
    合并本次结果与旧结果

    Args:
        fresh: 本次定位结果
        persisted: 上次保存的结果（首次运行时为空）
        is_opted_in: 用户名 -> 是否仍然加入
        log: 日志记录器

    Returns:
        合并后的记录列表，每个 name 一条
    """
    log = log or logger
    fresh_index = index_by_name(fresh)
    cache_index = index_by_name(persisted)

    merged: List[LocationRecord] = []

    for name, rec in fresh_index.items():
        cached = cache_index.get(name)
        if cached is not None and is_opted_in(name):
            # 本次定位失败不应覆盖已知的好位置
            if rec.is_sentinel:
                log.debug("keeping cached location for %s", name)
                merged.append(cached)
            else:
                merged.append(rec)
        else:
            merged.append(rec)

    dropped = 0
    for name, cached in cache_index.items():
        if name in fresh_index:
            continue
        if is_opted_in(name):
            merged.append(cached)
        else:
            dropped += 1
            log.info("dropping cached location for %s (no longer opted in)", name)

    log.info(
        "merged %d fresh and %d cached records into %d (%d dropped)",
        len(fresh_index), len(cache_index), len(merged), dropped,
    )
    return merged

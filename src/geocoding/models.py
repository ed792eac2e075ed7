#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
位置数据模型

(0, 0) 是保留的哨兵值，表示"没有解析到位置"，永远不会作为真实标记绘制。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

SENTINEL = (0.0, 0.0)


@dataclass(frozen=True)
class LocationRecord:
    """命名位置，name 在整个系统中唯一"""
    name: str
    lat: float = 0.0
    lng: float = 0.0

    @property
    def is_sentinel(self) -> bool:
        return (self.lat, self.lng) == SENTINEL

    def to_dict(self) -> Dict:
        return {"name": self.name, "lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class Resolution:
    """单个定位请求的结果：record 与 error 二选一"""
    index: int
    name: str
    record: Optional[LocationRecord] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.record is not None


def pinnable(records: Iterable[LocationRecord]) -> List[LocationRecord]:
    """去掉 (0, 0) 哨兵，供只接受真实位置的渲染器使用"""
    return [r for r in records if not r.is_sentinel]

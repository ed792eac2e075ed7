#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
结果存储 - 读写 ips.json

格式: JSON 数组 [{"name": "alice", "lat": 12.0, "lng": 34.0}, ...]
旧版本写出的 {"Name", "Lat", "Lng"} 也能读取。

写入时先在同目录下生成临时文件，成功后再替换原文件，
写入失败不会破坏上一次的结果。
"""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Dict, List, Sequence

from geocoding.models import LocationRecord

DEFAULT_STORE = "ips.json"


class StoreError(Exception):
    """结果文件读写失败"""


def _field(item: Dict[str, Any], key: str) -> Any:
    if key in item:
        return item[key]
    return item.get(key.capitalize())


def record_from_dict(item: Any) -> LocationRecord:
    """将一项 JSON 转为 LocationRecord"""
    if not isinstance(item, dict):
        raise StoreError(f"expected an object, got {type(item).__name__}")

    name = _field(item, "name")
    if not isinstance(name, str) or not name:
        raise StoreError(f"record has no name: {item!r}")

    lat = _field(item, "lat")
    lng = _field(item, "lng")
    lat = 0.0 if lat is None else lat
    lng = 0.0 if lng is None else lng
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (lat, lng)):
        raise StoreError(f"record {name!r} has non-numeric coordinates")

    return LocationRecord(name=name, lat=float(lat), lng=float(lng))


def load_locations(path: str = DEFAULT_STORE) -> List[LocationRecord]:
    """
    读取上次保存的结果

    Args:
        path: 结果文件路径

    Returns:
        记录列表；文件不存在时为空列表
    """
    if not os.path.exists(path):
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise StoreError(f"error reading ips cache: {e}") from e
    except json.JSONDecodeError as e:
        raise StoreError(f"error unmarshalling ips cache: {e}") from e

    if not isinstance(data, list):
        raise StoreError("error unmarshalling ips cache: expected a JSON array")

    return [record_from_dict(item) for item in data]


def save_locations(records: Sequence[LocationRecord], path: str = DEFAULT_STORE) -> None:
    """
    原子地写入结果

    Args:
        records: 合并后的记录
        path: 结果文件路径
    """
    payload = json.dumps([r.to_dict() for r in records], ensure_ascii=False, indent=2)

    directory = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".ips-", suffix=".json", dir=directory)
    except OSError as e:
        raise StoreError(f"error saving as json: {e}") from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp 创建的文件是 0600，渲染器需要能读取
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise StoreError(f"error saving as json: {e}") from e

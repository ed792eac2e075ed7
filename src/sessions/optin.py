#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
用户授权检查 - 只有在家目录下放置了标记文件的用户才会被定位

标记文件: ~/.here 或 ~/.somewhere（两者含义相同，数据都是匿名的）
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Iterable, List, Optional, Sequence

from sessions.parser import SessionRecord

OPT_IN_MARKERS: Sequence[str] = (".here", ".somewhere")

logger = logging.getLogger(__name__)


class OptInChecker:
    """检查用户是否已选择加入"""

    def __init__(
        self,
        home_root: str = "/home",
        markers: Sequence[str] = OPT_IN_MARKERS,
    ):
        self.home_root = home_root
        self.markers = tuple(markers)

    def home_dir(self, username: str) -> str:
        return os.path.join(self.home_root, username)

    def __call__(self, username: str) -> bool:
        # 用户名来自外部输入，不允许跳出 home_root
        if not username or username in (".", "..") or os.sep in username:
            return False

        home = self.home_dir(username)
        return any(os.path.exists(os.path.join(home, m)) for m in self.markers)


def filter_opted_in(
    records: Iterable[SessionRecord],
    is_opted_in: Callable[[str], bool],
    log: Optional[logging.Logger] = None,
) -> List[SessionRecord]:
    """
    过滤出已选择加入的会话记录

    Args:
        records: 解析后的会话记录
        is_opted_in: 用户名 -> 是否加入
        log: 日志记录器

    Returns:
        保持原顺序的已加入记录
    """
    log = log or logger
    records = list(records)
    admitted = [r for r in records if is_opted_in(r.username)]
    log.info("%d of %d users have opted in", len(admitted), len(records))
    return admitted

#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
会话解析器 - 将 `who --ips` 的原始输出拆分为按用户的会话记录

输入格式（每行一个会话，字段之间以若干空格分隔）:
  alice    pts/0        2021-03-01 10:12 1.2.3.4
  bob      pts/1        2021-03-01 11:40 (mosh [1234])

规则:
- 第 0 个字段为用户名，第 4 个字段为原始地址
- 连续空格视为一个分隔符
- 同一用户名出现多次时只保留第一行
- 空行（包括末尾换行产生的空行）被丢弃
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple, Union

USERNAME_FIELD = 0
ADDRESS_FIELD = 4


@dataclass(frozen=True)
class SessionRecord:
    """一行会话数据"""
    fields: Tuple[str, ...]

    @property
    def username(self) -> str:
        return self.fields[USERNAME_FIELD]

    @property
    def raw_address(self) -> str:
        # 字段不足的行视为没有地址
        if len(self.fields) <= ADDRESS_FIELD:
            return ""
        return self.fields[ADDRESS_FIELD]


def split_fields(line: str) -> Tuple[str, ...]:
    """按空格切分一行，折叠连续空格"""
    return tuple(word for word in line.split(" ") if word)


def parse_sessions(raw: Union[str, bytes]) -> List[SessionRecord]:
    """
    解析会话列表文本

    Args:
        raw: `who --ips` 的原始输出（str 或 bytes）

    Returns:
        按出现顺序排列的会话记录，每个用户名至多一条
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    records: List[SessionRecord] = []
    seen = set()

    for line in raw.split("\n"):
        fields = split_fields(line.rstrip("\r"))
        if not fields:
            continue

        username = fields[USERNAME_FIELD]
        if username in seen:
            continue

        seen.add(username)
        records.append(SessionRecord(fields))

    return records

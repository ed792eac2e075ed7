#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
地址提取 - 将会话的原始地址字段规范化为可查询的 IP/主机名

`who --ips` 的地址字段有几种形式:
  1.2.3.4              直接可用
  (1.2.3.4:S.0)        终端会话描述，取括号内冒号前的部分
  (host)               取括号内的部分
  (mosh [1234])        多路复用会话，没有真实的外部地址

无法解析时返回空字符串，调用方仍保留该记录以便记录失败原因。
"""

from __future__ import annotations

from typing import Tuple

UNRESOLVABLE = ""

MULTIPLEXER_MARKERS: Tuple[str, ...] = ("mosh", "tmux")


def is_multiplexed(token: str) -> bool:
    return any(marker in token for marker in MULTIPLEXER_MARKERS)


def extract_address(token: str) -> str:
    """
    从原始地址字段中提取可解析的地址

    Args:
        token: 会话记录的第 4 个字段

    Returns:
        IP 或主机名；多路复用会话返回 UNRESOLVABLE
    """
    if not token.startswith("("):
        return token

    if is_multiplexed(token):
        return UNRESOLVABLE

    end = token.find(":")
    if end == -1:
        end = token.find(")")
        if end == -1:
            end = len(token)

    return token[1:end]

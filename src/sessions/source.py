#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
会话来源 - 运行 `who --ips`，或读取事先保存的输出文件（用于测试和演示）
"""

from __future__ import annotations

import subprocess
from typing import Optional, Sequence

WHO_COMMAND: Sequence[str] = ("who", "--ips")


class SessionSourceError(Exception):
    """无法获取会话列表"""


def read_session_listing(
    pretend_file: Optional[str] = None,
    command: Sequence[str] = WHO_COMMAND,
) -> bytes:
    """
    获取会话列表原始输出

    Args:
        pretend_file: 若提供，则从该文件读取而不是执行命令
        command: 会话列表命令

    Returns:
        原始字节
    """
    if pretend_file:
        try:
            with open(pretend_file, "rb") as f:
                return f.read()
        except OSError as e:
            raise SessionSourceError(
                f"error reading sample who --ips file: {e}"
            ) from e

    try:
        proc = subprocess.run(list(command), capture_output=True, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        raise SessionSourceError(
            f"error running `{' '.join(command)}`: {e}"
        ) from e

    return proc.stdout

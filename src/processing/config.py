#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
运行配置

来源（后者覆盖前者）:
  1. 环境变量 IPSTACK_API_KEY / IPSTACK_BASE_URL
  2. 命令行参数
  3. 凭据文件 (-c creds.json)

凭据文件示例:
  {"K": "ipstack-key", "Mboxa": "...", "Mboxs": "...", "Mboxu": "...", "Mboxp": 5}
键名不区分大小写；除 k 以外的键属于渲染器，这里忽略。
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from geocoding.ipstack import DEFAULT_BASE_URL

API_KEY_ENV = "IPSTACK_API_KEY"
BASE_URL_ENV = "IPSTACK_BASE_URL"


class ConfigError(Exception):
    """配置错误"""


@dataclass
class Credentials:
    """凭据文件内容"""
    api_key: Optional[str] = None


@dataclass
class WhereConfig:
    """一次运行所需的全部设置"""
    api_key: str
    base_url: str
    store_path: str = "ips.json"
    home_root: str = "/home"
    timeout: float = 10.0
    who_file: Optional[str] = None


def load_credentials(path: str) -> Credentials:
    """
    读取凭据文件

    Args:
        path: JSON 文件路径

    Returns:
        Credentials
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"error reading cred file: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"error unmarshalling creds: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("error unmarshalling creds: expected a JSON object")

    creds = Credentials()
    for key, value in data.items():
        if key.lower() == "k":
            if value is not None and not isinstance(value, str):
                raise ConfigError("error unmarshalling creds: k must be a string")
            creds.api_key = value
    return creds


def build_config(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    cred_file: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    **settings: Any,
) -> WhereConfig:
    """
    合并环境变量、命令行参数和凭据文件

    Args:
        api_key: 命令行给出的 API key
        base_url: 命令行给出的服务地址
        cred_file: 凭据文件路径，其中的 key 覆盖命令行参数
        env: 环境变量（默认 os.environ）
        **settings: WhereConfig 的其余字段

    Returns:
        WhereConfig
    """
    env = os.environ if env is None else env

    key = api_key or env.get(API_KEY_ENV) or ""
    if cred_file:
        creds = load_credentials(cred_file)
        if creds.api_key:
            key = creds.api_key

    if not key:
        raise ConfigError(
            f"an ipstack API key is required (-k, -c or environment variable {API_KEY_ENV})"
        )

    url = base_url or env.get(BASE_URL_ENV) or DEFAULT_BASE_URL
    return WhereConfig(api_key=key, base_url=url, **settings)

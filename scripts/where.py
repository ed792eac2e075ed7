#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
where - 找出已选择加入（家目录下有 .here 或 .somewhere 文件）的在线用户，
根据 IP 估算其大致位置，并与上次的结果合并保存到 ips.json

Usage:
    python scripts/where.py -k IPSTACK_KEY
    python scripts/where.py -c creds.json -v
    python scripts/where.py -p --who-file whoips -k IPSTACK_KEY
"""

import argparse
import logging
import os
import sys

# 添加 src 到 Python 路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from geocoding.ipstack import IPStackClient, IPStackConfig
from geocoding.models import pinnable
from processing.config import API_KEY_ENV, ConfigError, build_config
from processing.pipeline import run_pipeline
from processing.store import StoreError
from sessions.optin import OptInChecker
from sessions.source import SessionSourceError, read_session_listing


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="定位已选择加入的在线用户，并更新位置缓存"
    )
    parser.add_argument(
        "-k", "--api-key",
        help=f"ipstack API key（默认读取环境变量 {API_KEY_ENV}）"
    )
    parser.add_argument(
        "-c", "--cred-file",
        help="从 JSON 凭据文件读取 key（覆盖命令行参数）"
    )
    parser.add_argument(
        "-p", "--pretend",
        action="store_true",
        help="读取保存的 who --ips 输出，而不是执行命令"
    )
    parser.add_argument(
        "--who-file",
        default="whoips",
        help="--pretend 时读取的文件（默认: whoips）"
    )
    parser.add_argument(
        "--cache",
        default="ips.json",
        help="结果文件路径（默认: ips.json）"
    )
    parser.add_argument(
        "--home-root",
        default="/home",
        help="用户家目录的上级目录（默认: /home）"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="单个定位请求的超时秒数（默认: 10）"
    )
    parser.add_argument(
        "--base-url",
        help="ipstack 服务地址"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="详细输出"
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(asctime)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    log = logging.getLogger("where")

    try:
        config = build_config(
            api_key=args.api_key,
            base_url=args.base_url,
            cred_file=args.cred_file,
            store_path=args.cache,
            home_root=args.home_root,
            timeout=args.timeout,
            who_file=args.who_file if args.pretend else None,
        )

        listing = read_session_listing(config.who_file)

        client = IPStackClient(
            IPStackConfig(api_key=config.api_key, base_url=config.base_url, timeout=config.timeout),
            log,
        )
        result = run_pipeline(
            listing,
            client,
            store_path=config.store_path,
            is_opted_in=OptInChecker(config.home_root),
            timeout=config.timeout,
            log=log,
        )

    except (ConfigError, SessionSourceError, StoreError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("interrupted, nothing saved", file=sys.stderr)
        sys.exit(130)

    print(f"✓ saved {len(result.records)} locations to {config.store_path}")
    print(f"   sessions: {result.sessions}, opted in: {result.admitted}")
    print(f"   resolved: {result.resolved}, failed: {result.failed}")
    print(f"   mappable: {len(pinnable(result.records))}")


if __name__ == "__main__":
    main()

"""登录会话处理：读取、解析、过滤 `who --ips` 输出"""

from sessions.address import extract_address
from sessions.optin import OptInChecker, filter_opted_in
from sessions.parser import SessionRecord, parse_sessions
from sessions.source import SessionSourceError, read_session_listing

__all__ = [
    "SessionRecord",
    "SessionSourceError",
    "OptInChecker",
    "extract_address",
    "filter_opted_in",
    "parse_sessions",
    "read_session_listing",
]

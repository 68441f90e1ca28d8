# -*- coding: utf-8 -*-
"""
时区工具模块
统一使用 UTC 存储时间
"""

from datetime import datetime, timezone
from typing import Optional


def get_utc_now() -> datetime:
    """
    获取当前 UTC 时间

    Returns:
        datetime: 带有 UTC 时区信息的当前时间
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    将任意时间规范为 UTC

    部分数据库（如 SQLite）读出的时间不带时区信息，视为 UTC

    Args:
        dt: 待转换的时间对象

    Returns:
        datetime: 带 UTC 时区信息的时间
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

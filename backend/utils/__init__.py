"""
工具函数目录
按功能分类组织
"""

from .text import truncate, normalize_body
from .timezone import get_utc_now, ensure_utc

__all__ = [
    # 文本处理
    "truncate",
    "normalize_body",
    # 时间处理
    "get_utc_now",
    "ensure_utc"
]

"""
路由目录
"""

from . import health, message, notification

__all__ = ["health", "message", "notification"]

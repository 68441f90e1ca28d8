"""
工具函数测试
"""

from datetime import datetime, timezone, timedelta

from utils.text import truncate, normalize_body
from utils.timezone import get_utc_now, ensure_utc


class TestText:
    """文本处理"""

    def test_truncate(self):
        assert truncate("短文本", 10) == "短文本"
        assert truncate("abcdef", 3) == "abc..."
        assert truncate("abcdef", 3, suffix="") == "abc"
        assert truncate(None, 3) == ""

    def test_normalize_body(self):
        assert normalize_body("  第一行\r\n第二行  ") == "第一行\n第二行"
        assert normalize_body("") == ""
        assert normalize_body(None) == ""


class TestTimezone:
    """时间处理"""

    def test_utc_now_is_aware(self):
        now = get_utc_now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_ensure_utc(self):
        naive = datetime(2026, 3, 1, 8, 0)
        assert ensure_utc(naive) == datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)

        beijing = datetime(2026, 3, 1, 16, 0, tzinfo=timezone(timedelta(hours=8)))
        assert ensure_utc(beijing).hour == 8
        assert ensure_utc(None) is None

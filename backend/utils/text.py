"""
文本处理工具
"""


def truncate(text: str, length: int, suffix: str = "...") -> str:
    """
    截取文本

    Args:
        text: 原始文本
        length: 最大长度
        suffix: 省略后缀

    Returns:
        截取后的文本
    """
    if not text or len(text) <= length:
        return text or ""
    return text[:length] + suffix


def normalize_body(text: str) -> str:
    """去除首尾空白，统一换行符"""
    if not text:
        return ""
    return text.replace("\r\n", "\n").strip()

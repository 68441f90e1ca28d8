"""
会话标识
会话不落库，由两个参与者的账户ID确定性地推导出会话键
"""

from typing import Tuple

from core.errors import NotFoundException, ErrorCode

KEY_PREFIX = "dm"
KEY_SEPARATOR = ":"


def key_for(account_a: int, account_b: int) -> str:
    """
    计算两个账户之间的会话键

    与参数顺序无关：key_for(a, b) == key_for(b, a)
    """
    low, high = sorted((int(account_a), int(account_b)))
    return f"{KEY_PREFIX}{KEY_SEPARATOR}{low}{KEY_SEPARATOR}{high}"


def parse_key(conversation_key: str) -> Tuple[int, int]:
    """解析会话键，返回 (小ID, 大ID)；格式不合法的键视为会话不存在"""
    parts = (conversation_key or "").split(KEY_SEPARATOR)
    if len(parts) != 3 or parts[0] != KEY_PREFIX:
        raise NotFoundException("会话", conversation_key, code=ErrorCode.CONVERSATION_NOT_FOUND)

    try:
        low, high = int(parts[1]), int(parts[2])
    except ValueError:
        raise NotFoundException("会话", conversation_key, code=ErrorCode.CONVERSATION_NOT_FOUND)

    # 只接受规范形式，避免同一会话出现多个键
    if low >= high or key_for(low, high) != conversation_key:
        raise NotFoundException("会话", conversation_key, code=ErrorCode.CONVERSATION_NOT_FOUND)

    return low, high


def is_participant(conversation_key: str, account_id: int) -> bool:
    """账户是否为会话参与者"""
    return account_id in parse_key(conversation_key)


def other_participant(conversation_key: str, account_id: int) -> int:
    """获取会话中的另一方"""
    low, high = parse_key(conversation_key)
    return high if account_id == low else low

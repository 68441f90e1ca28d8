"""
标准错误码体系
提供统一的错误码定义和异常处理
"""

import logging
from typing import Optional, Any, Dict
from enum import IntEnum
from fastapi import status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode(IntEnum):
    """
    标准错误码

    错误码规范：
    - 0: 成功
    - 1xxx: 系统级错误
    - 2xxx: 认证/授权错误
    - 3xxx: 业务通用错误
    - 4xxx: 模块级错误
    """

    # ==================== 成功 ====================
    SUCCESS = 0

    # ==================== 系统级错误 (1xxx) ====================
    INTERNAL_ERROR = 1000           # 服务器内部错误
    DATABASE_ERROR = 1001           # 数据库错误
    SERVICE_UNAVAILABLE = 1004      # 服务不可用
    REQUEST_TIMEOUT = 1006          # 请求超时

    # ==================== 认证/授权错误 (2xxx) ====================
    UNAUTHORIZED = 2001             # 未认证（未登录）
    TOKEN_EXPIRED = 2002            # 令牌过期
    TOKEN_INVALID = 2003            # 令牌无效
    PERMISSION_DENIED = 2004        # 权限不足
    ACCOUNT_DISABLED = 2005         # 账户已禁用
    ACCOUNT_NOT_FOUND = 2009        # 账户不存在

    # ==================== 业务通用错误 (3xxx) ====================
    VALIDATION_ERROR = 3001         # 参数验证失败
    RESOURCE_NOT_FOUND = 3002       # 资源不存在
    OPERATION_FAILED = 3005         # 操作失败
    INVALID_OPERATION = 3006        # 无效操作

    # ==================== 模块级错误 (4xxx) ====================
    # 4200-4299: 消息模块
    MESSAGE_EMPTY_BODY = 4201
    MESSAGE_SELF_ADDRESSED = 4202
    MESSAGE_REPLY_OUTSIDE_CONVERSATION = 4203
    MESSAGE_RECIPIENT_AMBIGUOUS = 4204
    CONVERSATION_NOT_FOUND = 4205
    BROADCAST_ROLE_FORBIDDEN = 4206

    # 4300-4399: 通知模块
    NOTIFICATION_NOT_FOUND = 4301
    NOTIFICATION_TYPE_RESERVED = 4302


# 错误码对应的默认消息
ERROR_MESSAGES: Dict[int, str] = {
    ErrorCode.SUCCESS: "操作成功",

    # 系统级
    ErrorCode.INTERNAL_ERROR: "服务器内部错误，请稍后重试",
    ErrorCode.DATABASE_ERROR: "数据库操作失败",
    ErrorCode.SERVICE_UNAVAILABLE: "服务暂时不可用",
    ErrorCode.REQUEST_TIMEOUT: "请求超时",

    # 认证/授权
    ErrorCode.UNAUTHORIZED: "请先登录",
    ErrorCode.TOKEN_EXPIRED: "登录已过期，请重新登录",
    ErrorCode.TOKEN_INVALID: "无效的认证凭据",
    ErrorCode.PERMISSION_DENIED: "没有权限执行此操作",
    ErrorCode.ACCOUNT_DISABLED: "账户已被禁用",
    ErrorCode.ACCOUNT_NOT_FOUND: "账户不存在",

    # 业务通用
    ErrorCode.VALIDATION_ERROR: "参数验证失败",
    ErrorCode.RESOURCE_NOT_FOUND: "请求的资源不存在",
    ErrorCode.OPERATION_FAILED: "操作失败",
    ErrorCode.INVALID_OPERATION: "无效的操作",

    # 模块级
    ErrorCode.MESSAGE_EMPTY_BODY: "消息内容不能为空",
    ErrorCode.MESSAGE_SELF_ADDRESSED: "不能给自己发送消息",
    ErrorCode.MESSAGE_REPLY_OUTSIDE_CONVERSATION: "回复的消息不属于当前会话",
    ErrorCode.MESSAGE_RECIPIENT_AMBIGUOUS: "必须且只能指定接收用户或接收角色之一",
    ErrorCode.CONVERSATION_NOT_FOUND: "会话不存在",
    ErrorCode.BROADCAST_ROLE_FORBIDDEN: "只有经理或主管可以按角色群发消息",
    ErrorCode.NOTIFICATION_NOT_FOUND: "通知不存在",
    ErrorCode.NOTIFICATION_TYPE_RESERVED: "MESSAGE 类型通知只能由消息系统生成",
}

# 错误码对应的 HTTP 状态码
ERROR_HTTP_STATUS: Dict[int, int] = {
    ErrorCode.SUCCESS: status.HTTP_200_OK,

    # 系统级 -> 500
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.DATABASE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.REQUEST_TIMEOUT: status.HTTP_408_REQUEST_TIMEOUT,

    # 认证/授权 -> 401/403
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.TOKEN_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.TOKEN_INVALID: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.ACCOUNT_DISABLED: status.HTTP_403_FORBIDDEN,
    ErrorCode.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,

    # 业务通用 -> 400/404
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RESOURCE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.OPERATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_OPERATION: status.HTTP_400_BAD_REQUEST,

    # 模块级
    ErrorCode.MESSAGE_EMPTY_BODY: status.HTTP_400_BAD_REQUEST,
    ErrorCode.MESSAGE_SELF_ADDRESSED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.MESSAGE_REPLY_OUTSIDE_CONVERSATION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.MESSAGE_RECIPIENT_AMBIGUOUS: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CONVERSATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BROADCAST_ROLE_FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOTIFICATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.NOTIFICATION_TYPE_RESERVED: status.HTTP_400_BAD_REQUEST,
}


class AppException(Exception):
    """
    应用异常基类

    用于抛出业务异常，包含错误码和详细信息

    Usage:
        raise AppException(ErrorCode.RESOURCE_NOT_FOUND, "会话不存在")
        raise AppException(ErrorCode.VALIDATION_ERROR, data={"field": "body", "error": "不能为空"})
    """

    def __init__(
        self,
        code: int = ErrorCode.INTERNAL_ERROR,
        message: Optional[str] = None,
        data: Any = None
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "未知错误")
        self.data = data
        self.http_status = ERROR_HTTP_STATUS.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        super().__init__(self.message)

    def to_response(self) -> JSONResponse:
        """转换为 JSONResponse"""
        return JSONResponse(
            status_code=self.http_status,
            content=self.to_dict()
        )

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "code": int(self.code),
            "message": self.message,
            "data": self.data
        }


class ValidationException(AppException):
    """参数验证异常（消息内容为空、给自己发消息、跨会话回复等）"""

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[list] = None,
        code: int = ErrorCode.VALIDATION_ERROR
    ):
        super().__init__(
            code=code,
            message=message,
            data={"errors": errors} if errors else None
        )


class AuthException(AppException):
    """认证异常"""

    def __init__(
        self,
        code: int = ErrorCode.UNAUTHORIZED,
        message: Optional[str] = None
    ):
        super().__init__(code=code, message=message)


class NotFoundException(AppException):
    """资源不存在异常"""

    def __init__(
        self,
        resource: str = "资源",
        resource_id: Any = None,
        code: int = ErrorCode.RESOURCE_NOT_FOUND
    ):
        message = f"{resource}不存在"
        if resource_id is not None:
            message = f"{resource} (ID: {resource_id}) 不存在"
        super().__init__(code=code, message=message)


class PermissionException(AppException):
    """权限异常（非会话参与者读取会话、非接收者标记通知、无权群发等）"""

    def __init__(
        self,
        message: str = "没有权限执行此操作",
        code: int = ErrorCode.PERMISSION_DENIED
    ):
        super().__init__(code=code, message=message)


# ==================== 异常处理器 ====================

def register_exception_handlers(app):
    """
    注册异常处理器

    在 main.py 中调用：
        from core.errors import register_exception_handlers
        register_exception_handlers(app)
    """
    from fastapi.exceptions import RequestValidationError
    from starlette.exceptions import HTTPException as StarletteHTTPException

    @app.exception_handler(AppException)
    async def handle_app_exception(request, exc: AppException):
        if exc.http_status >= 500:
            logger.error(f"[{exc.code}] {request.method} {request.url.path}: {exc.message}")
        return exc.to_response()

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"]
            })

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "code": int(ErrorCode.VALIDATION_ERROR),
                "message": "参数验证失败",
                "data": {"errors": errors}
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request, exc: StarletteHTTPException):
        # 映射 HTTP 状态码到业务错误码
        code_mapping = {
            401: ErrorCode.UNAUTHORIZED,
            403: ErrorCode.PERMISSION_DENIED,
            404: ErrorCode.RESOURCE_NOT_FOUND,
            500: ErrorCode.INTERNAL_ERROR,
        }

        code = code_mapping.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        message = str(exc.detail) if exc.detail else ERROR_MESSAGES.get(code, "请求失败")

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "code": int(code),
                "message": message,
                "data": None
            },
            headers=getattr(exc, "headers", None)
        )


# ==================== 响应构建器 ====================

def error_response(
    code: int = ErrorCode.INTERNAL_ERROR,
    message: Optional[str] = None,
    data: Any = None
) -> dict:
    """构建错误响应"""
    return {
        "code": int(code),
        "message": message or ERROR_MESSAGES.get(code, "操作失败"),
        "data": data
    }

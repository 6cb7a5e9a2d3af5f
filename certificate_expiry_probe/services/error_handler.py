"""
错误处理服务
"""
import socket
import time
import logging
import traceback
from typing import Callable, Optional

from ..models import Status, Verdict


class ProbeError(Exception):
    """检查过程中所有预期错误的基类"""


class ConfigurationError(ProbeError):
    """配置无效（在任何网络活动之前抛出）"""


class ProbeConnectionError(ProbeError):
    """TCP连接失败（DNS解析、拒绝连接、连接重置等）"""


class ProxyError(ProbeError):
    """代理服务器未接受CONNECT请求"""


class ProtocolError(ProbeError):
    """TLS握手未能取得对端证书"""


class DeadlineExceeded(ProbeError):
    """整体超时"""

    def __init__(self, timeout: int):
        super().__init__(f"Timeout of {timeout} seconds reached.")
        self.timeout = timeout


class Deadline:
    """贯穿整个检查过程的截止时间"""

    def __init__(self, timeout: int, clock: Callable[[], float] = time.monotonic):
        """
        初始化截止时间

        Args:
            timeout: 超时时间（秒）
            clock: 单调时钟，测试时可替换
        """
        self.timeout = timeout
        self._clock = clock
        self._expires_at = clock() + timeout

    @property
    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def remaining(self) -> float:
        """
        获取剩余时间

        Returns:
            float: 剩余秒数

        Raises:
            DeadlineExceeded: 已超时
        """
        left = self._expires_at - self._clock()
        if left <= 0:
            raise DeadlineExceeded(self.timeout)
        return left

    def check(self):
        """已超时则抛出 DeadlineExceeded"""
        self.remaining()

    def apply(self, sock: socket.socket):
        """把套接字超时设置为剩余时间，阻塞读写因此可被中断"""
        sock.settimeout(self.remaining())


class ErrorHandler:
    """把检查过程中的异常转换为 UNKNOWN 结论"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def to_verdict(self, error: Exception, deadline: Optional[Deadline] = None) -> Verdict:
        """
        将异常转换为结论

        超时优先于其他任何错误分类：只要截止时间已过，
        无论异常发生在哪个阶段都报告超时。

        Args:
            error: 异常对象
            deadline: 本次运行的截止时间

        Returns:
            Verdict: UNKNOWN 结论
        """
        if isinstance(error, DeadlineExceeded):
            message = str(error)
        elif deadline is not None and deadline.expired:
            message = str(DeadlineExceeded(deadline.timeout))
        elif isinstance(error, ProbeError):
            message = str(error)
        else:
            message = f"{type(error).__name__}: {error}"

        self.logger.error(f"检查失败: {type(error).__name__}: {error}")
        self.logger.debug(
            "错误堆栈跟踪:\n" + "".join(traceback.format_exception(type(error), error, error.__traceback__))
        )

        return Verdict(status=Status.UNKNOWN, message=message)

"""
服务接口定义
"""
import socket
from abc import ABC, abstractmethod

from .models import Certificate, Target, Verdict
from .services.error_handler import Deadline


class ConnectorInterface(ABC):
    """TCP连接器接口"""

    @abstractmethod
    def connect(self, target: Target, deadline: Deadline) -> socket.socket:
        """建立到目标（或经代理隧道）的TCP连接"""
        pass


class TlsHandshakerInterface(ABC):
    """TLS握手接口"""

    @abstractmethod
    def fetch_certificate(self, sock: socket.socket, server_name: str, deadline: Deadline) -> bytes:
        """完成握手并返回DER格式的叶子证书，握手失败但已收到证书时同样返回"""
        pass


class CertificateInspectorInterface(ABC):
    """证书解析接口"""

    @abstractmethod
    def inspect(self, der_cert: bytes) -> Certificate:
        """解析叶子证书"""
        pass


class ReporterInterface(ABC):
    """结论输出接口"""

    @abstractmethod
    def report(self, verdict: Verdict, verbose: int = 0) -> int:
        """输出结论并返回退出码"""
        pass

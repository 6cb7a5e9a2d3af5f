"""
TCP连接服务（可选HTTP CONNECT代理隧道）
"""
import socket
import logging

from ..interfaces import ConnectorInterface
from ..models import Target
from .error_handler import Deadline, DeadlineExceeded, ProbeConnectionError, ProxyError

MAX_HEADER_LINE = 8192


class TcpConnector(ConnectorInterface):
    """TCP连接器实现"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def connect(self, target: Target, deadline: Deadline) -> socket.socket:
        """
        建立TCP连接，使用代理时完成CONNECT握手

        Args:
            target: 检查目标
            deadline: 截止时间

        Returns:
            socket.socket: 可直接进行TLS握手的连接

        Raises:
            ProbeConnectionError: 套接字层面失败
            ProxyError: 代理返回非2xx状态
            DeadlineExceeded: 超时
        """
        self.logger.debug(f"Connect to host: {target.connect_host}:{target.connect_port}")

        sock = self._create_connection(target.connect_host, target.connect_port, deadline)

        try:
            if target.is_tunneled:
                self._open_tunnel(sock, target, deadline)
        except BaseException:
            sock.close()
            raise

        return sock

    def _create_connection(self, host: str, port: int, deadline: Deadline) -> socket.socket:
        """
        依次尝试解析出的每个地址，每次尝试都以剩余时间为超时

        Args:
            host: 主机
            port: 端口
            deadline: 截止时间

        Returns:
            socket.socket: 已连接的套接字

        Raises:
            ProbeConnectionError: 所有地址都连接失败
            DeadlineExceeded: 超时
        """
        try:
            addresses = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except OSError as e:
            raise ProbeConnectionError(f"Error connecting to {host}: {e}") from e

        last_error = None
        for family, socktype, proto, _, address in addresses:
            # DNS解析无法被套接字超时打断，每次尝试前都检查
            deadline.check()
            sock = socket.socket(family, socktype, proto)
            try:
                deadline.apply(sock)
                sock.connect(address)
                return sock
            except OSError as e:
                sock.close()
                if deadline.expired:
                    raise DeadlineExceeded(deadline.timeout) from e
                self.logger.debug(f"Connect to {address} failed: {e}")
                last_error = e

        raise ProbeConnectionError(f"Error connecting to {host}: {last_error}")

    def _open_tunnel(self, sock: socket.socket, target: Target, deadline: Deadline):
        """
        通过代理打开到目的地址的隧道

        Args:
            sock: 已连接到代理的套接字
            target: 检查目标
            deadline: 截止时间
        """
        destination = f"{target.destination_host}:{target.destination_port}"
        self.logger.debug(f"Connect via proxy to destination: {destination}")

        request = f"CONNECT {destination} HTTP/1.0\r\n\r\n".encode('ascii')
        try:
            deadline.apply(sock)
            sock.sendall(request)
        except OSError as e:
            if deadline.expired:
                raise DeadlineExceeded(deadline.timeout) from e
            raise ProbeConnectionError(f"Error connecting to {target.connect_host}: {e}") from e

        status_line = self._read_line(sock, deadline)
        self.logger.debug(f"Proxy response: {status_line.strip()}")

        parts = status_line.split()
        status = parts[1] if len(parts) > 1 else status_line.strip()
        if not (status.isdigit() and int(status) // 100 == 2):
            raise ProxyError(f'Received a bad status code "{status}" from proxy server.')

        # 跳过剩余的响应头，直到空行
        while True:
            line = self._read_line(sock, deadline)
            if not line:
                raise ProxyError("Proxy server closed the connection before the end of the response header.")
            if not line.strip('\r\n'):
                break

    def _read_line(self, sock: socket.socket, deadline: Deadline) -> str:
        """
        逐字节读取一行，不会读入隧道中后续的TLS数据

        Args:
            sock: 套接字
            deadline: 截止时间

        Returns:
            str: 包含行尾的行，连接关闭时可能为空字符串
        """
        buffer = bytearray()
        while len(buffer) < MAX_HEADER_LINE:
            try:
                deadline.apply(sock)
                chunk = sock.recv(1)
            except OSError as e:
                if deadline.expired:
                    raise DeadlineExceeded(deadline.timeout) from e
                raise ProxyError(f"Error reading from proxy server: {e}") from e
            if not chunk:
                break
            buffer += chunk
            if chunk == b'\n':
                break
        return buffer.decode('latin-1')

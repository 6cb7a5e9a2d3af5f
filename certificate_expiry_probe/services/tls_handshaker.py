"""
TLS握手服务
"""
import select
import socket
import logging
import ipaddress
from typing import Optional

from cryptography.hazmat.primitives import serialization
from OpenSSL import SSL, crypto

from ..interfaces import TlsHandshakerInterface
from .error_handler import Deadline, DeadlineExceeded, ProtocolError


class TlsHandshaker(TlsHandshakerInterface):
    """TLS握手实现，不验证证书链和主机名"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def create_context(self) -> SSL.Context:
        """
        创建不做任何证书验证的SSL上下文

        需要检查的是服务器实际出示的证书，包括已过期、尚未生效或不受信任的证书；
        主机名和有效期由后续的结论引擎显式判断。

        Returns:
            SSL.Context: SSL上下文
        """
        context = SSL.Context(SSL.TLS_CLIENT_METHOD)
        context.set_verify(SSL.VERIFY_NONE)
        return context

    def fetch_certificate(self, sock: socket.socket, server_name: str, deadline: Deadline) -> bytes:
        """
        完成TLS握手并获取叶子证书

        握手失败时（例如服务器要求客户端证书）只要已经收到服务器证书，
        仍然返回该证书。

        Args:
            sock: 已建立的TCP连接
            server_name: 目标主机名，用于SNI
            deadline: 截止时间

        Returns:
            bytes: DER格式的叶子证书

        Raises:
            ProtocolError: 无法取得对端证书
            DeadlineExceeded: 超时
        """
        conn = SSL.Connection(self.create_context(), sock)
        if not self._is_ip_address(server_name):
            conn.set_tlsext_host_name(server_name.encode())
        conn.set_connect_state()

        handshake_error = None
        try:
            self._do_handshake(conn, sock, deadline)
            self.logger.debug(
                f"TLS session established: {conn.get_protocol_version_name()} {conn.get_cipher_name()}"
            )
            conn.shutdown()
        except SSL.Error as e:
            handshake_error = e
            self.logger.debug(f"TLS handshake failed: {e!r}")

        leaf = self._peer_certificate(conn)
        if leaf is None:
            if handshake_error is not None:
                raise ProtocolError(f"Cannot get peer certificate: {handshake_error}") from handshake_error
            raise ProtocolError("Cannot get peer certificate")

        return leaf.to_cryptography().public_bytes(serialization.Encoding.DER)

    def _do_handshake(self, conn: SSL.Connection, sock: socket.socket, deadline: Deadline):
        """
        在截止时间内完成握手

        设置了超时的套接字在系统层面是非阻塞的，OpenSSL 会要求重试，
        每次等待都以剩余时间为上限。

        Raises:
            SSL.Error: 握手失败
            DeadlineExceeded: 超时
        """
        deadline.apply(sock)
        while True:
            try:
                conn.do_handshake()
                return
            except SSL.WantReadError:
                readable, writable = [sock], []
            except SSL.WantWriteError:
                readable, writable = [], [sock]

            ready = select.select(readable, writable, [], deadline.remaining())
            if not any(ready):
                raise DeadlineExceeded(deadline.timeout)

    def _peer_certificate(self, conn: SSL.Connection) -> Optional[crypto.X509]:
        cert = conn.get_peer_certificate()
        if cert is not None:
            return cert
        # 握手中断时会话中可能只有证书链
        chain = conn.get_peer_cert_chain()
        return chain[0] if chain else None

    def _is_ip_address(self, host: str) -> bool:
        try:
            ipaddress.ip_address(host)
        except ValueError:
            return False
        return True

"""
测试公共工具：证书生成、本地TLS服务器和本地CONNECT代理
"""
import socket
import ssl
import select
import logging
import threading
from datetime import datetime, timezone, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID


def make_certificate(subject_cn="example.com", issuer_cn="Test CA", not_before=None, not_after=None,
                     subject_org=None, issuer_org="Test Org"):
    """
    生成测试证书

    Returns:
        tuple: (证书对象, 私钥)
    """
    now = datetime.now(timezone.utc)
    not_before = not_before or now - timedelta(days=1)
    not_after = not_after or now + timedelta(days=100)

    subject_attrs = [x509.NameAttribute(NameOID.COUNTRY_NAME, "US")]
    if subject_org:
        subject_attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, subject_org))
    subject_attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, subject_cn))

    issuer_attrs = [x509.NameAttribute(NameOID.COUNTRY_NAME, "US")]
    if issuer_org:
        issuer_attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, issuer_org))
    issuer_attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, issuer_cn))

    key = ec.generate_private_key(ec.SECP256R1())
    cert = (
        x509.CertificateBuilder()
        .subject_name(x509.Name(subject_attrs))
        .issuer_name(x509.Name(issuer_attrs))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )
    return cert, key


def make_der(**kwargs) -> bytes:
    cert, _ = make_certificate(**kwargs)
    return cert.public_bytes(serialization.Encoding.DER)


def write_pem(tmp_path, cert, key):
    """把证书和私钥写入临时文件"""
    certfile = tmp_path / "cert.pem"
    keyfile = tmp_path / "key.pem"
    certfile.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    keyfile.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    ))
    return str(certfile), str(keyfile)


class LocalTlsServer:
    """在后台线程中接受连接并完成TLS握手的本地服务器"""

    def __init__(self, certfile=None, keyfile=None, handshake=True, require_client_cert=False,
                 maximum_version=None):
        self.handshake = handshake
        self.context = None
        if handshake:
            self.context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
            self.context.load_cert_chain(certfile, keyfile)
            if require_client_cert:
                # 客户端不会出示证书，握手在服务器证书发送之后失败
                self.context.verify_mode = ssl.CERT_REQUIRED
                self.context.load_verify_locations(cafile=certfile)
            if maximum_version is not None:
                self.context.maximum_version = maximum_version

        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(('127.0.0.1', 0))
        self.sock.listen(5)
        self.port = self.sock.getsockname()[1]
        self.connections = []
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def __enter__(self):
        self.thread.start()
        return self

    def __exit__(self, *exc):
        self.sock.close()
        for conn in self.connections:
            conn.close()

    def _serve(self):
        while True:
            try:
                conn, _ = self.sock.accept()
            except OSError:
                return
            self.connections.append(conn)
            if not self.handshake:
                # 只接受连接，从不响应
                continue
            try:
                with self.context.wrap_socket(conn, server_side=True) as tls:
                    tls.recv(1)
            except (ssl.SSLError, OSError):
                pass


class LocalConnectProxy:
    """处理单个CONNECT请求的本地代理"""

    def __init__(self, status_line="HTTP/1.0 200 Connection established", extra_headers=("Proxy-Agent: test",)):
        self.status_line = status_line
        self.extra_headers = extra_headers
        self.requests = []

        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(('127.0.0.1', 0))
        self.sock.listen(5)
        self.port = self.sock.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def __enter__(self):
        self.thread.start()
        return self

    def __exit__(self, *exc):
        self.sock.close()

    def _serve(self):
        while True:
            try:
                client, _ = self.sock.accept()
            except OSError:
                return
            try:
                self._handle(client)
            except OSError:
                pass
            finally:
                client.close()

    def _handle(self, client):
        request = b''
        while b'\r\n\r\n' not in request:
            chunk = client.recv(1024)
            if not chunk:
                return
            request += chunk
        self.requests.append(request.decode('latin-1'))

        response = "\r\n".join((self.status_line,) + tuple(self.extra_headers)) + "\r\n\r\n"
        client.sendall(response.encode('latin-1'))
        if " 200 " not in f"{self.status_line} ":
            return

        target = request.split(b' ')[1].decode('ascii')
        host, _, port = target.rpartition(':')
        with socket.create_connection((host, int(port)), timeout=5) as upstream:
            self._relay(client, upstream)

    def _relay(self, client, upstream):
        sockets = [client, upstream]
        while True:
            readable, _, _ = select.select(sockets, [], [], 5)
            if not readable:
                return
            for sock in readable:
                data = sock.recv(4096)
                if not data:
                    return
                (upstream if sock is client else client).sendall(data)


@pytest.fixture(autouse=True)
def reset_probe_logger():
    """每个测试后移除日志处理器，避免引用已关闭的输出流"""
    yield
    logger = logging.getLogger("certificate_expiry_probe")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)


@pytest.fixture
def tls_server_factory(tmp_path):
    """按证书参数启动本地TLS服务器"""
    servers = []

    def factory(require_client_cert=False, maximum_version=None, **kwargs):
        cert, key = make_certificate(**kwargs)
        certfile, keyfile = write_pem(tmp_path, cert, key)
        server = LocalTlsServer(certfile, keyfile, require_client_cert=require_client_cert,
                                maximum_version=maximum_version).__enter__()
        servers.append(server)
        return server

    yield factory

    for server in servers:
        server.__exit__(None, None, None)

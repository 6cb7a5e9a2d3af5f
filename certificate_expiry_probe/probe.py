"""
证书有效期检查入口
"""
import logging
from typing import Optional

from .interfaces import (
    CertificateInspectorInterface,
    ConnectorInterface,
    ReporterInterface,
    TlsHandshakerInterface,
)
from .models import ProbeConfig, Verdict
from .services.certificate_inspector import CertificateInspector
from .services.connector import TcpConnector
from .services.error_handler import Deadline, DeadlineExceeded, ErrorHandler
from .services.reporter import Reporter
from .services.tls_handshaker import TlsHandshaker
from .services.verdict_engine import VerdictEngine


class CertificateExpiryProbe:
    """证书有效期检查器主类"""

    def __init__(self, config: ProbeConfig,
                 connector: Optional[ConnectorInterface] = None,
                 handshaker: Optional[TlsHandshakerInterface] = None,
                 inspector: Optional[CertificateInspectorInterface] = None,
                 reporter: Optional[ReporterInterface] = None):
        """
        初始化检查器

        Args:
            config: 已验证的检查配置
            connector: TCP连接器
            handshaker: TLS握手器
            inspector: 证书解析器
            reporter: 结论输出器
        """
        self.config = config
        self.connector = connector or TcpConnector()
        self.handshaker = handshaker or TlsHandshaker()
        self.inspector = inspector or CertificateInspector()
        self.reporter = reporter or Reporter()
        self.engine = VerdictEngine(config.thresholds, config.issuers)
        self.error_handler = ErrorHandler()
        self.logger = logging.getLogger(__name__)

    def run(self, deadline: Deadline) -> Verdict:
        """
        执行连接、握手、解析和评估

        Args:
            deadline: 截止时间

        Returns:
            Verdict: 检查结论
        """
        target = self.config.target

        try:
            with self.connector.connect(target, deadline) as sock:
                der_cert = self.handshaker.fetch_certificate(sock, target.identity_host, deadline)
            deadline.check()

            certificate = self.inspector.inspect(der_cert)
            deadline.check()

            return self.engine.evaluate(target.identity_host, certificate)

        except Exception as e:
            return self.error_handler.to_verdict(e, deadline)

    def execute(self) -> int:
        """
        执行检查并输出结论

        Returns:
            int: 进程退出码
        """
        deadline = Deadline(self.config.timeout)
        verdict = self.run(deadline)

        # 结论输出前截止时间已过，以超时为准
        if deadline.expired:
            verdict = self.error_handler.to_verdict(DeadlineExceeded(self.config.timeout), deadline)

        self.logger.debug(f"Verdict: {verdict.status.name}: {verdict.message}")
        return self.reporter.report(verdict, self.config.verbose)

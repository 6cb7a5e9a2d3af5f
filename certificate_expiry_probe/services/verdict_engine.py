"""
检查结论引擎
"""
import logging
from typing import Optional, Sequence

from ..models import Certificate, Status, Thresholds, Verdict
from .certificate_inspector import extract_cn


class VerdictEngine:
    """按固定顺序应用规则，第一个命中的规则决定结论"""

    def __init__(self, thresholds: Thresholds, issuers: Optional[Sequence[str]] = None):
        """
        初始化结论引擎

        Args:
            thresholds: 告警阈值
            issuers: 可接受的颁发者CN，None表示不过滤
        """
        self.thresholds = thresholds
        self.issuers = tuple(issuers) if issuers else None
        self.logger = logging.getLogger(__name__)

    def evaluate(self, identity_host: str, certificate: Certificate) -> Verdict:
        """
        评估证书

        规则顺序：主题CN、颁发者CN、尚未生效、已过期、critical阈值、warning阈值。

        Args:
            identity_host: 用于比对的主机名（代理模式下为目的主机）
            certificate: 证书信息

        Returns:
            Verdict: 唯一的检查结论
        """
        subject_cn = extract_cn(certificate.subject)
        self.logger.debug(f"Verify {identity_host} with subject [ {certificate.subject} ]")
        self.logger.debug(f"Subject (CN): {subject_cn}")

        # 非锚定的子串匹配：'test' 也会匹配 'attested.example.com'
        if identity_host not in subject_cn:
            return self._verdict(Status.CRITICAL, f"Subject CN '{subject_cn}' does not match: {identity_host}",
                                 certificate)
        if subject_cn != identity_host:
            self.logger.debug(f"Subject CN '{subject_cn}' matched {identity_host} as a substring only")

        suffix = ''
        if self.issuers:
            issuer_cn = extract_cn(certificate.issuer)
            self.logger.debug(f"Issuer (CN): {issuer_cn}")
            if issuer_cn not in self.issuers:
                return self._verdict(
                    Status.CRITICAL,
                    f"Issuer CN '{issuer_cn}' does not match: {':'.join(self.issuers)}",
                    certificate
                )
            suffix = f" (Issuer: {certificate.issuer})"

        if certificate.not_before_days > 0:
            return self._verdict(Status.CRITICAL,
                                 f"Certificate will be valid in {certificate.not_before_days} days{suffix}",
                                 certificate)

        days = certificate.not_after_days
        if days < 0:
            return self._verdict(Status.CRITICAL, f"Certificate expired {abs(days)} days ago{suffix}", certificate)

        message = f"Certificate expires in {days} days{suffix}"
        if days < self.thresholds.critical_days:
            return self._verdict(Status.CRITICAL, message, certificate)
        if days < self.thresholds.warning_days:
            return self._verdict(Status.WARNING, message, certificate)
        return self._verdict(Status.OK, message, certificate)

    def _verdict(self, status: Status, message: str, certificate: Certificate) -> Verdict:
        return Verdict(status=status, message=message, certificate=certificate)

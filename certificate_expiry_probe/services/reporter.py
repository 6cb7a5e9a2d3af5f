"""
结论输出服务
"""
import sys
from typing import Optional, TextIO

from ..interfaces import ReporterInterface
from ..models import Status, Verdict
from .certificate_inspector import extract_cn, format_asn1_time


class Reporter(ReporterInterface):
    """按监控插件约定输出结论"""

    def __init__(self, stream: Optional[TextIO] = None):
        """
        初始化输出器

        Args:
            stream: 输出流，默认为标准输出
        """
        self.stream = stream

    def report(self, verdict: Verdict, verbose: int = 0) -> int:
        """
        输出结论行及详细信息

        Args:
            verdict: 检查结论
            verbose: 详细级别，1输出CN，2输出完整DN

        Returns:
            int: 进程退出码
        """
        self._write(f"{verdict.status.name}: {verdict.message}")

        if verbose and verdict.status is not Status.UNKNOWN and verdict.certificate:
            for line in self.format_details(verdict, verbose):
                self._write(line)

        return verdict.status.exit_code

    def format_details(self, verdict: Verdict, verbose: int) -> list:
        """
        生成详细信息行

        Args:
            verdict: 检查结论
            verbose: 详细级别

        Returns:
            list: 输出行
        """
        cert = verdict.certificate
        if verbose >= 2:
            lines = [f"Subject: {cert.subject}", f"Issuer: {cert.issuer}"]
        else:
            lines = [f"Subject CN: {extract_cn(cert.subject)}", f"Issuer CN: {extract_cn(cert.issuer)}"]

        lines.append(f"NotAfter: {format_asn1_time(cert.not_after)}")
        lines.append(f"NotBefore: {format_asn1_time(cert.not_before)}")
        return lines

    def _write(self, line: str):
        stream = self.stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()

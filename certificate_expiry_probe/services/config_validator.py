"""
配置验证服务
"""
import re
import logging
from typing import Optional, Tuple

from ..models import ProbeConfig, Target, Thresholds
from .error_handler import ConfigurationError

DEFAULT_PORT = 443
DEFAULT_CRITICAL_DAYS = 28
DEFAULT_TIMEOUT = 15


class ConfigValidator:
    """配置验证器，把原始参数转换为不可变的 ProbeConfig"""

    def __init__(self):
        """初始化配置验证器"""
        self.logger = logging.getLogger(__name__)

    def build(self, hostname: Optional[str], proxy: Optional[str] = None, issuer: Optional[str] = None,
              warning: Optional[int] = None, critical: Optional[int] = None, timeout: Optional[int] = None,
              debug: bool = False, verbose: int = 0) -> ProbeConfig:
        """
        验证原始参数并构建配置

        Args:
            hostname: 目标地址 ADDR[:PORT]，使用代理时为目的地址
            proxy: 代理地址 ADDR[:PORT]
            issuer: 可接受的颁发者CN列表，以冒号分隔
            warning: 告警阈值（天），默认等于critical
            critical: 严重阈值（天）
            timeout: 整体超时时间（秒）
            debug: 是否输出调试信息
            verbose: 详细输出级别

        Returns:
            ProbeConfig: 检查配置

        Raises:
            ConfigurationError: 参数无效
        """
        if not hostname or not hostname.strip():
            raise ConfigurationError("No target host specified")

        if proxy:
            connect_host, connect_port = self.parse_address(proxy)
            destination_host, destination_port = self.parse_address(hostname)
            target = Target(connect_host, connect_port, destination_host, destination_port)
        else:
            connect_host, connect_port = self.parse_address(hostname)
            target = Target(connect_host, connect_port)

        thresholds = self.validate_thresholds(warning, critical)

        timeout = DEFAULT_TIMEOUT if timeout is None else timeout
        if timeout <= 0:
            raise ConfigurationError(f"Invalid timeout: {timeout}")

        if verbose < 0:
            raise ConfigurationError(f"Invalid verbosity: {verbose}")

        config = ProbeConfig(
            target=target,
            thresholds=thresholds,
            issuers=self.parse_issuers(issuer),
            timeout=timeout,
            debug=debug,
            verbose=min(verbose, 2)
        )
        self.logger.debug(f"配置验证通过: {config}")
        return config

    def validate_thresholds(self, warning: Optional[int], critical: Optional[int]) -> Thresholds:
        """
        验证阈值

        Args:
            warning: 告警阈值，None表示与critical相同
            critical: 严重阈值，None表示默认值

        Returns:
            Thresholds: 阈值

        Raises:
            ConfigurationError: 阈值为负或warning小于critical
        """
        critical = DEFAULT_CRITICAL_DAYS if critical is None else critical
        warning = critical if warning is None else warning

        if critical < 0 or warning < 0:
            raise ConfigurationError("Thresholds must not be negative")

        # warning必须不晚于critical触发
        if warning < critical:
            raise ConfigurationError("WARNING threshold exceeds CRITICAL threshold")

        return Thresholds(warning_days=warning, critical_days=critical)

    def parse_address(self, address: str) -> Tuple[str, int]:
        """
        解析 ADDR[:PORT]，IPv6地址需使用方括号

        Args:
            address: 地址字符串

        Returns:
            Tuple[str, int]: 主机和端口

        Raises:
            ConfigurationError: 地址格式无效
        """
        address = address.strip()

        match = re.match(r'^\[([^\]]+)\](?::(\w*))?$', address)
        if match:
            host, port = match.group(1), match.group(2)
        else:
            host, _, port = address.partition(':')

        if not host:
            raise ConfigurationError(f"Invalid address: {address}")

        if not port:
            return host, DEFAULT_PORT

        if not port.isdigit() or not 0 < int(port) < 65536:
            raise ConfigurationError(f"Invalid port in address: {address}")

        return host, int(port)

    def parse_issuers(self, issuer: Optional[str]) -> Optional[Tuple[str, ...]]:
        """
        解析颁发者列表

        Args:
            issuer: 以冒号分隔的颁发者CN

        Returns:
            Optional[Tuple[str, ...]]: 颁发者元组，未配置时为None
        """
        if not issuer:
            return None

        issuers = tuple(name for name in issuer.split(':') if name)
        return issuers or None

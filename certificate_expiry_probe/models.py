"""
数据模型定义
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class Status(Enum):
    """监控状态，值即进程退出码"""
    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3

    @property
    def exit_code(self) -> int:
        return self.value


@dataclass(frozen=True)
class Target:
    """检查目标"""
    connect_host: str
    connect_port: int = 443
    destination_host: Optional[str] = None
    destination_port: Optional[int] = None

    @property
    def is_tunneled(self) -> bool:
        """是否通过代理隧道连接"""
        return self.destination_host is not None

    @property
    def identity_host(self) -> str:
        """用于证书主题比对的主机名"""
        return self.destination_host if self.is_tunneled else self.connect_host


@dataclass(frozen=True)
class Thresholds:
    """告警阈值（天）"""
    warning_days: int
    critical_days: int


@dataclass(frozen=True)
class ProbeConfig:
    """一次检查运行的完整配置"""
    target: Target
    thresholds: Thresholds
    issuers: Optional[Tuple[str, ...]] = None
    timeout: int = 15
    debug: bool = False
    verbose: int = 0


@dataclass(frozen=True)
class Certificate:
    """叶子证书信息"""
    subject: str
    issuer: str
    not_before: datetime
    not_after: datetime
    not_before_days: int
    not_after_days: int


@dataclass(frozen=True)
class Verdict:
    """检查结论"""
    status: Status
    message: str
    certificate: Optional[Certificate] = None

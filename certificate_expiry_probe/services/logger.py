"""
日志服务
"""
import os
import sys
import logging
from typing import Optional, TextIO

from ..models import ProbeConfig


class LoggerService:
    """日志服务实现"""

    def __init__(self, logger_name: str = "certificate_expiry_probe", log_level: Optional[str] = None,
                 debug: bool = False, stream: Optional[TextIO] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
            debug: 调试模式，DEBUG级别输出到标准输出
            stream: 输出流，默认调试模式为stdout，否则为stderr
        """
        self.logger_name = logger_name
        self.debug = debug
        if debug:
            self.log_level = 'DEBUG'
        else:
            self.log_level = log_level or os.getenv('LOG_LEVEL', 'WARNING')
        self.stream = stream

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.WARNING)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            stream = self.stream
            if stream is None:
                # 标准输出只留给检查结论，调试模式除外
                stream = sys.stdout if self.debug else sys.stderr

            handler = logging.StreamHandler(stream)
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def log_configuration_info(self, config: ProbeConfig):
        """
        记录配置信息

        Args:
            config: 检查配置
        """
        target = config.target
        self.logger.debug("检查配置:")
        self.logger.debug(f"  连接地址: {target.connect_host}:{target.connect_port}")
        if target.is_tunneled:
            self.logger.debug(f"  代理目标: {target.destination_host}:{target.destination_port}")
        self.logger.debug(
            f"  阈值: warning={config.thresholds.warning_days} 天, "
            f"critical={config.thresholds.critical_days} 天"
        )
        self.logger.debug(f"  颁发者过滤: {':'.join(config.issuers) if config.issuers else '无'}")
        self.logger.debug(f"  超时时间: {config.timeout} 秒")

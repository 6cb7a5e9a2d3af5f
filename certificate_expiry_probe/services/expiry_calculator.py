"""
证书有效期计算服务
"""
from datetime import datetime, timezone
from typing import Callable, Optional

SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DateEvaluator:
    """把证书时间转换为相对当前时间的天数"""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        """
        初始化日期计算器

        Args:
            clock: 返回当前UTC时间的函数，测试时可替换
        """
        self.clock = clock

    def now(self) -> datetime:
        return self.clock()

    def day_delta(self, timestamp: datetime, now: Optional[datetime] = None) -> int:
        """
        计算时间点与当前时间相差的整天数

        向零取整而不是向下取整：过期不足一天的证书结果为0，
        不会落入"已过期"分支。

        Args:
            timestamp: 证书时间（必须带时区）
            now: 当前时间，默认取时钟

        Returns:
            int: 有符号天数，向零取整（正数在未来，负数在过去）
        """
        if timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")

        now = now or self.now()
        seconds = (timestamp - now).total_seconds()
        return int(seconds / SECONDS_PER_DAY)

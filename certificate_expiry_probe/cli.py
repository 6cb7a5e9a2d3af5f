"""
命令行入口
"""
import sys
import argparse
from typing import List, Optional

from .models import Status, Verdict
from .probe import CertificateExpiryProbe
from .services.config_validator import DEFAULT_CRITICAL_DAYS, DEFAULT_TIMEOUT, ConfigValidator
from .services.error_handler import ConfigurationError
from .services.logger import LoggerService
from .services.reporter import Reporter

PROGNAME = 'check_certexp'


class PluginArgumentParser(argparse.ArgumentParser):
    """参数错误时不直接退出（argparse默认退出码2会被当作CRITICAL）"""

    def error(self, message):
        raise ConfigurationError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = PluginArgumentParser(
        prog=PROGNAME,
        description='Check certificate expiry date.',
        usage='%(prog)s -H host [-p proxy] [-i issuer] [-w warn] [-c crit] [-t timeout] [-d] [-v]'
    )
    parser.add_argument('-H', '--hostname', metavar='ADDRESS[:PORT]',
                        help='Host name or IP address, port defaults to 443')
    parser.add_argument('-p', '--proxy', metavar='ADDRESS[:PORT]',
                        help='Proxy name or IP address, port defaults to 443')
    parser.add_argument('-i', '--issuer', metavar='NAME:NAME',
                        help='Certificate issuer name(s)')
    parser.add_argument('-w', '--warning', type=int, metavar='INTEGER',
                        help='WARNING if less than specified number of days until expiry '
                             '(default: same as critical)')
    parser.add_argument('-c', '--critical', type=int, metavar='INTEGER',
                        help=f'CRITICAL if less than specified number of days until expiry '
                             f'(default: {DEFAULT_CRITICAL_DAYS})')
    parser.add_argument('-t', '--timeout', type=int, metavar='INTEGER',
                        help=f'Seconds before connection times out (default: {DEFAULT_TIMEOUT})')
    parser.add_argument('-d', '--debug', action='store_true',
                        help='Enable debug output')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Enable verbose output, use multiple for different views')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    命令行主函数

    Args:
        argv: 命令行参数，默认取 sys.argv

    Returns:
        int: 进程退出码
    """
    parser = build_parser()
    reporter = Reporter()

    try:
        args = parser.parse_args(argv)
        config = ConfigValidator().build(
            hostname=args.hostname,
            proxy=args.proxy,
            issuer=args.issuer,
            warning=args.warning,
            critical=args.critical,
            timeout=args.timeout,
            debug=args.debug,
            verbose=args.verbose
        )
    except ConfigurationError as e:
        code = reporter.report(Verdict(status=Status.UNKNOWN, message=str(e)))
        parser.print_usage(sys.stdout)
        return code

    logger_service = LoggerService(debug=config.debug)
    logger_service.log_configuration_info(config)

    return CertificateExpiryProbe(config, reporter=reporter).execute()

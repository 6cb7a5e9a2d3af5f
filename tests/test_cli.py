"""
命令行入口测试
"""
import pytest
from unittest.mock import patch

from certificate_expiry_probe.cli import build_parser, main


class TestCli:
    """命令行入口测试类"""

    def test_parse_flags(self):
        """测试参数解析"""
        args = build_parser().parse_args(
            ['-H', 'example.com:8443', '-p', 'proxy:3128', '-i', 'R3:E1', '-w', '30', '-c', '10',
             '-t', '5', '-d', '-vv']
        )

        assert args.hostname == 'example.com:8443'
        assert args.proxy == 'proxy:3128'
        assert args.issuer == 'R3:E1'
        assert (args.warning, args.critical, args.timeout) == (30, 10, 5)
        assert args.debug is True
        assert args.verbose == 2

    def test_long_flags(self):
        """测试长参数"""
        args = build_parser().parse_args(['--hostname=example.com', '--critical=7', '--timeout=3'])

        assert args.hostname == 'example.com'
        assert args.critical == 7
        assert args.timeout == 3
        assert args.verbose == 0

    @patch('certificate_expiry_probe.services.connector.socket.getaddrinfo')
    def test_threshold_order_rejected_before_network(self, mock_getaddrinfo, capsys):
        """测试warning小于critical时在任何网络活动前返回UNKNOWN"""
        code = main(['-H', 'example.com', '-w', '10', '-c', '30'])

        assert code == 3
        out = capsys.readouterr().out
        assert out.startswith("UNKNOWN: WARNING threshold exceeds CRITICAL threshold\n")
        assert "usage: check_certexp" in out
        mock_getaddrinfo.assert_not_called()

    @patch('certificate_expiry_probe.services.connector.socket.getaddrinfo')
    def test_missing_host(self, mock_getaddrinfo, capsys):
        """测试缺少目标主机"""
        code = main([])

        assert code == 3
        assert capsys.readouterr().out.startswith("UNKNOWN: No target host specified\n")
        mock_getaddrinfo.assert_not_called()

    def test_invalid_option_is_unknown(self, capsys):
        """测试无效参数返回UNKNOWN而不是argparse默认的2"""
        code = main(['-H', 'example.com', '-c', 'abc'])

        assert code == 3
        assert capsys.readouterr().out.startswith("UNKNOWN: ")

    def test_help(self, capsys):
        """测试帮助信息"""
        with pytest.raises(SystemExit) as exc_info:
            main(['-h'])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "Check certificate expiry date." in out
        assert "--hostname" in out

    @patch('certificate_expiry_probe.services.connector.socket.getaddrinfo')
    def test_connection_failure(self, mock_getaddrinfo, capsys):
        """测试连接失败返回UNKNOWN"""
        mock_getaddrinfo.side_effect = ConnectionRefusedError(111, "Connection refused")

        code = main(['-H', 'example.com'])

        assert code == 3
        assert capsys.readouterr().out == "UNKNOWN: Error connecting to example.com: [Errno 111] Connection refused\n"

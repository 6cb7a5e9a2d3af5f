"""
证书解析服务
"""
import re
import logging
from datetime import datetime
from typing import Optional

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..interfaces import CertificateInspectorInterface
from ..models import Certificate
from .error_handler import ProtocolError
from .expiry_calculator import DateEvaluator

# OpenSSL单行格式中与RFC 4514名称不同的属性
ONELINE_NAMES = {
    NameOID.EMAIL_ADDRESS: 'emailAddress',
    NameOID.SERIAL_NUMBER: 'serialNumber',
    NameOID.GIVEN_NAME: 'GN',
    NameOID.SURNAME: 'SN',
    NameOID.TITLE: 'title',
    NameOID.BUSINESS_CATEGORY: 'businessCategory',
    NameOID.POSTAL_CODE: 'postalCode',
    NameOID.JURISDICTION_COUNTRY_NAME: 'jurisdictionC',
    NameOID.JURISDICTION_STATE_OR_PROVINCE_NAME: 'jurisdictionST',
    NameOID.JURISDICTION_LOCALITY_NAME: 'jurisdictionL',
}

CN_PATTERN = re.compile(r'.*CN=([^/]+)')


def format_dn_oneline(name: x509.Name) -> str:
    """
    把可分辨名称格式化为OpenSSL单行形式

    Args:
        name: 证书名称

    Returns:
        str: 例如 /C=US/O=Example/CN=example.com
    """
    parts = []
    for rdn in name.rdns:
        attributes = []
        for attribute in rdn:
            key = ONELINE_NAMES.get(attribute.oid, attribute.rfc4514_attribute_name)
            value = attribute.value
            if isinstance(value, bytes):
                value = value.hex()
            attributes.append(f"{key}={value}")
        parts.append('+'.join(attributes))
    return ''.join(f"/{part}" for part in parts)


def extract_cn(dn: str) -> str:
    """
    提取单行DN中最后一个CN的值

    Args:
        dn: 单行DN

    Returns:
        str: CN值，DN中没有CN时原样返回
    """
    match = CN_PATTERN.match(dn)
    return match.group(1) if match else dn


def format_asn1_time(timestamp: datetime) -> str:
    """按OpenSSL的 ASN1_TIME 打印格式输出，例如 'Dec 31 23:59:59 2024 GMT'"""
    return f"{timestamp:%b} {timestamp.day:2d} {timestamp:%H:%M:%S %Y} GMT"


class CertificateInspector(CertificateInspectorInterface):
    """证书解析器实现"""

    def __init__(self, date_evaluator: Optional[DateEvaluator] = None):
        self.logger = logging.getLogger(__name__)
        self.date_evaluator = date_evaluator or DateEvaluator()

    def inspect(self, der_cert: bytes) -> Certificate:
        """
        解析叶子证书

        Args:
            der_cert: DER格式证书

        Returns:
            Certificate: 证书信息，日期均为UTC

        Raises:
            ProtocolError: 证书无法解析
        """
        try:
            cert = x509.load_der_x509_certificate(der_cert)
        except ValueError as e:
            raise ProtocolError(f"Cannot parse peer certificate: {e}") from e

        subject = format_dn_oneline(cert.subject)
        issuer = format_dn_oneline(cert.issuer)
        not_before = cert.not_valid_before_utc
        not_after = cert.not_valid_after_utc

        now = self.date_evaluator.now()
        not_before_days = self.date_evaluator.day_delta(not_before, now)
        not_after_days = self.date_evaluator.day_delta(not_after, now)

        self.logger.debug(f"NotAfter: {format_asn1_time(not_after)}")
        self.logger.debug(f"NotAfter (days): {not_after_days}")
        self.logger.debug(f"NotBefore: {format_asn1_time(not_before)}")
        self.logger.debug(f"NotBefore (days): {not_before_days}")
        self.logger.debug(f"Subject: {subject}")
        self.logger.debug(f"Issuer: {issuer}")

        return Certificate(
            subject=subject,
            issuer=issuer,
            not_before=not_before,
            not_after=not_after,
            not_before_days=not_before_days,
            not_after_days=not_after_days
        )

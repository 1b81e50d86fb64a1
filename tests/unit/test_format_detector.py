"""
格式检测器单元测试
"""

import pytest
from lxml import etree

from edinet_extractor.parsers.format_detector import DocumentFormat, FormatDetector


class TestFormatDetector:
    """FormatDetector测试类"""

    @pytest.fixture
    def detector(self):
        return FormatDetector()

    def test_detect_ixbrl_xhtml(self, detector, ixbrl_root):
        assert detector.detect(ixbrl_root) == DocumentFormat.IXBRL

    def test_detect_ixbrl_html_parsed(self, detector):
        """HTML解析时 ix 前缀保留在标签名中"""
        root = etree.HTML('''<html><body>
            <ix:nonfraction name="jppfs_cor:Assets" contextref="CurrentYearInstant">100</ix:nonfraction>
        </body></html>''')
        assert detector.detect(root) == DocumentFormat.IXBRL

    def test_detect_xbrl(self, detector, xbrl_root):
        assert detector.detect(xbrl_root) == DocumentFormat.XBRL

    def test_detect_edinet_names(self, detector):
        root = etree.HTML('<html><body><span name="jpcrp_cor:NumberOfEmployees">120</span></body></html>')
        assert detector.detect(root) == DocumentFormat.EDINET

    def test_detect_tdnet_names(self, detector):
        root = etree.HTML('<html><body><span name="tse_ed_t:NetSales">120</span></body></html>')
        assert detector.detect(root) == DocumentFormat.TDNET

    def test_detect_plain_html(self, detector):
        root = etree.HTML("<html><body><table><tr><td>売上高</td></tr></table></body></html>")
        assert detector.detect(root) == DocumentFormat.HTML

    def test_detect_unknown(self, detector):
        root = etree.HTML("<html><body><p>お知らせ</p></body></html>")
        assert detector.detect(root) == DocumentFormat.UNKNOWN

    def test_detect_element_tree(self, detector, xbrl_root):
        assert detector.detect(etree.ElementTree(xbrl_root)) == DocumentFormat.XBRL

    @pytest.mark.parametrize("content, expected", [
        ('<?xml version="1.0"?><root/>', True),
        ('<xbrli:xbrl xmlns:xbrli="http://www.xbrl.org/2003/instance">', True),
        ('<html xmlns="http://www.w3.org/1999/xhtml" xmlns:ix="http://www.xbrl.org/2013/inlineXBRL">', True),
        ("<html><body><table></table></body></html>", False),
        ("", False),
    ])
    def test_looks_like_xml(self, detector, content, expected):
        assert detector.looks_like_xml(content) == expected

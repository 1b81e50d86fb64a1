"""
Pytest configuration and fixtures for the EDINET statement extractor.
"""

import os

import pytest
from lxml import etree

from edinet_extractor.core.config import get_settings
from edinet_extractor.core.logging import configure_logging
from edinet_extractor.parsers.document_scope import DocumentScope


def pytest_configure(config):
    """
    Allows plugins and conftest files to perform initial configuration.
    This hook is called for every plugin and initial conftest file
    after command line options have been parsed.
    """
    os.environ["EXTRACTOR_APP_DEBUG"] = "true"
    os.environ["EXTRACTOR_LOG_LEVEL"] = "DEBUG"
    os.environ["EXTRACTOR_FISCAL_REFERENCE_YEAR"] = "2024"
    # Clear the cache to ensure the new settings are used
    get_settings.cache_clear()


@pytest.fixture(scope="session", autouse=True)
def configure_test_logging() -> None:
    """Configure logging for tests."""
    configure_logging(log_level="DEBUG")


@pytest.fixture
def test_settings():
    """Return the settings configured for the test session."""
    return get_settings()


@pytest.fixture
def make_scope():
    """Factory building a fully prepared DocumentScope for a parsed tree."""

    def _make(root, **kwargs) -> DocumentScope:
        scope = DocumentScope.create(root, **kwargs)
        scope.resolve_namespaces()
        scope.build_registries()
        scope.scan_facts()
        return scope

    return _make


@pytest.fixture
def sample_ixbrl_xhtml() -> str:
    """Inline XBRL balance sheet in XHTML form (parsed as XML)."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml"
      xmlns:ix="http://www.xbrl.org/2013/inlineXBRL"
      xmlns:xbrli="http://www.xbrl.org/2003/instance"
      xmlns:iso4217="http://www.xbrl.org/2003/iso4217"
      xmlns:jppfs_cor="http://disclosure.edinet-fsa.go.jp/taxonomy/jppfs/2023-12-01/jppfs_cor">
<head><title>有価証券報告書</title></head>
<body>
<div style="display:none">
  <ix:header>
    <ix:resources>
      <xbrli:context id="Prior1YearInstant">
        <xbrli:entity><xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier></xbrli:entity>
        <xbrli:period><xbrli:instant>2023-03-31</xbrli:instant></xbrli:period>
      </xbrli:context>
      <xbrli:context id="CurrentYearInstant">
        <xbrli:entity><xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier></xbrli:entity>
        <xbrli:period><xbrli:instant>2024-03-31</xbrli:instant></xbrli:period>
      </xbrli:context>
      <xbrli:unit id="JPY"><xbrli:measure>iso4217:JPY</xbrli:measure></xbrli:unit>
    </ix:resources>
  </ix:header>
</div>
<h3>連結貸借対照表</h3>
<p>（単位：百万円）</p>
<table>
  <tr><th>科目</th><th>前連結会計年度</th><th>当連結会計年度</th></tr>
  <tr><td>資産の部</td><td></td><td></td></tr>
  <tr><td>流動資産</td><td></td><td></td></tr>
  <tr>
    <td>現金及び預金</td>
    <td><ix:nonFraction name="jppfs_cor:CashAndDeposits" contextRef="Prior1YearInstant" unitRef="JPY" decimals="-6" scale="6">1,000</ix:nonFraction></td>
    <td><ix:nonFraction name="jppfs_cor:CashAndDeposits" contextRef="CurrentYearInstant" unitRef="JPY" decimals="-6" scale="6">1,200</ix:nonFraction></td>
  </tr>
  <tr>
    <td>売掛金</td>
    <td><ix:nonFraction name="jppfs_cor:AccountsReceivableTrade" contextRef="Prior1YearInstant" unitRef="JPY" decimals="-6" scale="6">500</ix:nonFraction></td>
    <td><ix:nonFraction name="jppfs_cor:AccountsReceivableTrade" contextRef="CurrentYearInstant" unitRef="JPY" decimals="-6" scale="6">450</ix:nonFraction></td>
  </tr>
  <tr>
    <td>流動資産合計</td>
    <td><ix:nonFraction name="jppfs_cor:CurrentAssets" contextRef="Prior1YearInstant" unitRef="JPY" decimals="-6" scale="6">1,500</ix:nonFraction></td>
    <td><ix:nonFraction name="jppfs_cor:CurrentAssets" contextRef="CurrentYearInstant" unitRef="JPY" decimals="-6" scale="6">1,650</ix:nonFraction></td>
  </tr>
  <tr>
    <td>資産合計</td>
    <td><ix:nonFraction name="jppfs_cor:Assets" contextRef="Prior1YearInstant" unitRef="JPY" decimals="-6" scale="6">3,000</ix:nonFraction></td>
    <td><ix:nonFraction name="jppfs_cor:Assets" contextRef="CurrentYearInstant" unitRef="JPY" decimals="-6" scale="6">3,300</ix:nonFraction></td>
  </tr>
</table>
</body>
</html>"""


@pytest.fixture
def sample_xbrl_instance() -> str:
    """Plain XBRL instance without any tables."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<xbrli:xbrl xmlns:xbrli="http://www.xbrl.org/2003/instance"
            xmlns:link="http://www.xbrl.org/2003/linkbase"
            xmlns:xlink="http://www.w3.org/1999/xlink"
            xmlns:iso4217="http://www.xbrl.org/2003/iso4217"
            xmlns:jppfs_cor="http://disclosure.edinet-fsa.go.jp/taxonomy/jppfs/2023-12-01/jppfs_cor">
  <link:schemaRef xlink:type="simple" xlink:href="jpcrp030000-asr-001_E00001-000.xsd"/>
  <xbrli:context id="CurrentYearInstant">
    <xbrli:entity><xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier></xbrli:entity>
    <xbrli:period><xbrli:instant>2024-03-31</xbrli:instant></xbrli:period>
  </xbrli:context>
  <xbrli:context id="Prior1YearInstant">
    <xbrli:entity><xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier></xbrli:entity>
    <xbrli:period><xbrli:instant>2023-03-31</xbrli:instant></xbrli:period>
  </xbrli:context>
  <xbrli:unit id="JPY"><xbrli:measure>iso4217:JPY</xbrli:measure></xbrli:unit>
  <jppfs_cor:CashAndDeposits contextRef="Prior1YearInstant" unitRef="JPY" decimals="-6">1000000000</jppfs_cor:CashAndDeposits>
  <jppfs_cor:CashAndDeposits contextRef="CurrentYearInstant" unitRef="JPY" decimals="-6">1200000000</jppfs_cor:CashAndDeposits>
  <jppfs_cor:Assets contextRef="CurrentYearInstant" unitRef="JPY" decimals="-6">3300000000</jppfs_cor:Assets>
  <jppfs_cor:Liabilities contextRef="CurrentYearInstant" unitRef="JPY" decimals="-6">1100000000</jppfs_cor:Liabilities>
</xbrli:xbrl>"""


@pytest.fixture
def ixbrl_root(sample_ixbrl_xhtml):
    return etree.fromstring(sample_ixbrl_xhtml.encode("utf-8"))


@pytest.fixture
def xbrl_root(sample_xbrl_instance):
    return etree.fromstring(sample_xbrl_instance.encode("utf-8"))

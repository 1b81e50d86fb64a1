"""文档加载器单元测试"""

import pytest

from edinet_extractor.core.error_handling import DocumentParseError
from edinet_extractor.parsers.document_loader import decode_content, load_document


SJIS_HTML = '''<html><head><meta charset="Shift_JIS"></head>
<body>
    <h3>貸借対照表</h3>
    <table><tr><td>現金及び預金</td><td>1,200</td></tr></table>
</body></html>'''


class TestDocumentLoader:
    """load_document测试类"""

    def test_shift_jis_bytes(self):
        root = load_document(SJIS_HTML.encode("cp932"))

        assert root.tag == "html"
        assert root.findtext(".//h3") == "貸借対照表"
        assert root.findtext(".//td") == "現金及び預金"

    def test_utf8_bytes(self):
        root = load_document(SJIS_HTML.replace("Shift_JIS", "UTF-8").encode("utf-8"))
        assert root.findtext(".//h3") == "貸借対照表"

    def test_xbrl_instance_parsed_as_xml(self, sample_xbrl_instance):
        root = load_document(sample_xbrl_instance.encode("utf-8"))
        assert root.tag == "{http://www.xbrl.org/2003/instance}xbrl"

    def test_xhtml_parsed_as_xml(self, sample_ixbrl_xhtml):
        """带编码声明的 str 输入也能解析"""
        root = load_document(sample_ixbrl_xhtml)
        assert root.tag == "{http://www.w3.org/1999/xhtml}html"

    def test_forced_html(self, sample_ixbrl_xhtml):
        root = load_document(sample_ixbrl_xhtml, as_xml=False)
        assert root.tag == "html"

    def test_broken_markup_recovered(self):
        root = load_document("<table><tr><td>売上高<td>100</table>")
        assert [td.text for td in root.iter("td")] == ["売上高", "100"]

    @pytest.mark.parametrize("content", ["", "   \n", b"", None])
    def test_empty_content(self, content):
        with pytest.raises(DocumentParseError):
            load_document(content)

    def test_decode_content(self):
        assert decode_content("損益計算書".encode("cp932")) == "損益計算書"
        assert decode_content("損益計算書".encode("utf-8")) == "損益計算書"

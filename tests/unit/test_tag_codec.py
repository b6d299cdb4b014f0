"""Tests for the tag codec."""

import pytest

from apitag_core.tagging.codec import TagCodec


@pytest.fixture
def codec():
    return TagCodec()


class TestExtract:
    def test_extracts_rest_of_line(self, codec):
        doc = "/**\n * ACC-Q-001 Get account\n * @param id account id\n */"
        assert codec.extract(doc) == "ACC-Q-001 Get account"

    def test_first_tag_wins(self, codec):
        doc = "/**\n * PAY-A-001 Pay\n * PAY-A-002 Refund\n */"
        assert codec.extract(doc) == "PAY-A-001 Pay"

    def test_single_line_comment_terminator_is_trimmed(self, codec):
        assert codec.extract("/** RET-B-TAKINGFILE */") == "RET-B-TAKINGFILE"

    def test_no_tag(self, codec):
        assert codec.extract("/**\n * Loads an account.\n */") is None
        assert codec.extract(None) is None
        assert codec.extract("") is None

    def test_custom_pattern(self):
        codec = TagCodec(r"MSG:(\w+)")
        assert codec.extract("/** MSG:ABC123 */") == "ABC123"
        assert codec.has_tag("MSG:X")
        assert not codec.has_tag("ACC-Q-001")


class TestSameTag:
    def test_identical_tags(self):
        assert TagCodec.same_tag("PAY-A-001 desc1", "PAY-A-001 desc1")

    def test_same_main_part_different_tag(self):
        assert TagCodec.main_part("PAY-A-001 desc1") == TagCodec.main_part("PAY-A-002 desc2") == "PAY"
        assert not TagCodec.same_tag("PAY-A-001 desc1", "PAY-A-002 desc2")

    def test_none_is_never_same(self):
        assert not TagCodec.same_tag(None, "PAY-A-001")
        assert not TagCodec.same_tag("PAY-A-001", None)
        assert not TagCodec.same_tag(None, None)


class TestMainPart:
    @pytest.mark.parametrize(
        "tag, expected",
        [
            ("RET-B-TAKINGFILE", "RET"),
            ("NOHYPHEN", "NOHYPHEN"),
            ("-LEADING", "-LEADING"),
            (None, ""),
        ],
    )
    def test_main_part(self, tag, expected):
        assert TagCodec.main_part(tag) == expected


class TestFormat:
    def test_format_single_tag(self):
        assert TagCodec.format("ACC-Q-001 Get account") == "/**\n * ACC-Q-001 Get account\n */"

    def test_format_with_description(self):
        text = TagCodec.format("ACC-Q-001", "Line one\n\nLine two")
        assert text == "/**\n * ACC-Q-001\n * Line one\n *\n * Line two\n */"

    def test_formatted_block_extracts_back(self, codec):
        assert codec.extract(TagCodec.format("ACC-Q-001 Get account")) == "ACC-Q-001 Get account"

"""Tests for Chinese text utility functions."""

import pytest


class TestCountChineseChars:
    def test_empty_string(self):
        from tools.text_utils import count_chinese_chars
        assert count_chinese_chars("") == 0

    def test_mixed_chinese_and_english(self):
        from tools.text_utils import count_chinese_chars
        assert count_chinese_chars("Hello你好world") == 2

    def test_chinese_punctuation_excluded(self):
        from tools.text_utils import count_chinese_chars
        assert count_chinese_chars("你好。！？") == 2


class TestGetChapterEnding:
    def test_short_content_returned_whole(self):
        from tools.text_utils import get_chapter_ending
        assert get_chapter_ending("短文", 3000) == "短文"

    def test_long_content_tail(self):
        from tools.text_utils import get_chapter_ending
        assert get_chapter_ending("一二三四五", 2) == "四五"

    def test_empty(self):
        from tools.text_utils import get_chapter_ending
        assert get_chapter_ending("") == ""


class TestSafeNames:
    @pytest.mark.parametrize("title,expected", [
        ("逆天剑帝", "逆天剑帝"),
        ("Sword King 2", "Sword_King_2"),
        ("a/b\\c", "a_b_c"),
        ("", "Untitled_Novel"),
    ])
    def test_safe_dirname(self, title, expected):
        from tools.text_utils import safe_dirname
        assert safe_dirname(title) == expected

    def test_safe_filename_replaces_reserved(self):
        from tools.text_utils import safe_filename
        assert safe_filename('第一章:风起?"云涌"') == "第一章_风起__云涌_"

    def test_safe_filename_truncates(self):
        from tools.text_utils import safe_filename
        assert len(safe_filename("长" * 100)) == 50

    def test_safe_filename_fallback(self):
        from tools.text_utils import safe_filename
        assert safe_filename("") == "Untitled"

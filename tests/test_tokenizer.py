import pytest

from rules.errors import RulesSyntaxError
from rules.tokenizer import Token, split_lines, tokenize, unescape_value


def test_split_lines_treats_all_line_breaks_alike():
    """CRLF, LF and CR all end a line and CRLF is not split twice."""
    assert split_lines("a\r\nb\nc\rd") == ["a", "b", "c", "d"]
    assert split_lines("a\r\n\r\nb") == ["a", "", "b"]


def test_unescape_value():
    assert unescape_value(r"say \"hi\"") == 'say "hi"'
    assert unescape_value(r"C:\\mail") == "C:\\mail"


def test_unescape_keeps_other_sequences():
    assert unescape_value(r"line\nbreak") == r"line\nbreak"
    assert unescape_value("trailing\\") == "trailing\\"


def test_tokenize_skips_blank_lines_and_keeps_line_numbers():
    contents = 'version="9"\r\n\r\n   \nlogging="yes"\rname="First"'
    assert tokenize(contents) == [
        Token(1, "version", "9"),
        Token(4, "logging", "yes"),
        Token(5, "name", "First"),
    ]


def test_tokenize_trims_key_and_unescapes_value():
    tokens = tokenize('  name  =  "Say \\"hello\\""  ')
    assert tokens == [Token(1, "name", 'Say "hello"')]


def test_tokenize_value_may_contain_equal_sign():
    tokens = tokenize('condition="AND (subject,contains,a=b)"')
    assert tokens[0].key == "condition"
    assert tokens[0].value == "AND (subject,contains,a=b)"


def test_tokenize_rejects_malformed_line():
    with pytest.raises(RulesSyntaxError) as excinfo:
        tokenize('version="9"\nname=First')
    assert excinfo.value.line == 2
    assert "line 2" in str(excinfo.value)


def test_tokenize_empty_contents():
    assert tokenize("") == []
    assert tokenize("\r\n  \n") == []

"""Tests for the local rule filter."""

from whistlespace.moderation.rules import MAX_TEXT_LENGTH, LocalRuleFilter, check


def test_clean_text_passes():
    result = check("The new shift rota works well, thanks for listening.")
    assert result.flagged is False
    assert result.reason == ""


def test_bad_word_is_case_insensitive():
    result = check("This is SHIT management")
    assert result.flagged is True
    assert result.reason == "Inappropriate language"
    assert result.details["rule"] == "bad_word"


def test_bad_word_custom_list():
    f = LocalRuleFilter(bad_words=["Pineapple"])
    assert f.check("no pineapple on pizza").flagged is True
    # Default words are not used once a custom list is given
    assert f.check("this is shit").flagged is False


def test_length_limit():
    result = check("a b " * (MAX_TEXT_LENGTH // 4 + 1))
    assert result.flagged is True
    assert result.details["rule"] == "length"


def test_length_limit_configurable():
    f = LocalRuleFilter(max_length=10)
    assert f.check("short").flagged is False
    assert f.check("this is longer than ten").flagged is True


def test_character_flood():
    result = check("nooooooooooo way")
    assert result.flagged is True
    assert result.details["rule"] == "char_flood"


def test_repeated_characters():
    result = check("why!!!!!! is this")
    assert result.flagged is True
    assert result.details["rule"] == "char_repeat"


def test_five_identical_characters_is_chunk_repeat():
    result = check("hmmmmm ok")
    assert result.flagged is True
    assert result.details["rule"] == "chunk_repeat"


def test_shouting():
    result = check("please STOPDOINGTHISRIGHTNOW thanks")
    assert result.flagged is True
    assert result.details["rule"] == "shouting"


def test_short_caps_are_fine():
    assert check("The HR team and IT desk").flagged is False


def test_long_digit_sequence():
    result = check("call me on 07911123456")
    assert result.flagged is True
    assert result.details["rule"] == "digits"


def test_repeated_chunk():
    result = check("hahahahaha so funny")
    assert result.flagged is True
    assert result.details["rule"] == "chunk_repeat"


def test_whitespace_runs_are_ignored():
    assert check("spaced          out text").flagged is False


def test_first_matching_rule_wins():
    # Contains a bad word and a flood; bad words are checked first
    result = check("shit!!!!!!!!!!!")
    assert result.details["rule"] == "bad_word"

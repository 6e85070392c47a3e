from mantleai.truncate import MIN_MAX_LENGTH, TRUNCATION_MARKER, truncate_code


def test_short_code_is_returned_unchanged():
    code = "pragma solidity ^0.8.19;\ncontract A {}"
    assert truncate_code(code, 6000) == code
    assert truncate_code(code, len(code)) == code


def test_long_code_keeps_head_and_tail():
    code = "H" * 4000 + "M" * 4000 + "T" * 4000
    truncated = truncate_code(code, 6000)

    assert truncated.startswith("H" * 3000)
    assert truncated.endswith("T" * 3000)
    assert "M" not in truncated
    assert truncated.count(TRUNCATION_MARKER) == 1


def test_truncated_length_is_bounded():
    for max_length in (200, 201, 999, 6000):
        code = "x" * (max_length * 3)
        truncated = truncate_code(code, max_length)
        assert len(truncated) <= max_length + len(TRUNCATION_MARKER)


def test_tiny_max_length_is_clamped():
    code = "y" * 1000
    truncated = truncate_code(code, 1)

    assert truncated.count(TRUNCATION_MARKER) == 1
    assert len(truncated) <= MIN_MAX_LENGTH + len(TRUNCATION_MARKER)

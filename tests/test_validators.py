from __future__ import annotations

from roofline.utils.validators import is_valid_email, is_valid_phone, sanitize_filename, sanitize_text


def test_sanitize_text_strips_null_and_trims():
    assert sanitize_text("  hello\x00world  ") == "helloworld"
    assert sanitize_text(None) == ""
    assert sanitize_text("abcdef", max_len=3) == "abc"


def test_sanitize_filename_keeps_basename():
    assert sanitize_filename("C:\\photos\\roof 1.jpg") == "roof_1.jpg"
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("dir/") == "file"


def test_contact_validators():
    assert is_valid_phone("(512) 555-0100") is True
    assert is_valid_phone("1-512-555-0100") is True
    assert is_valid_phone("555-0100") is False
    assert is_valid_email("pat@example.com") is True
    assert is_valid_email("pat@") is False
    assert is_valid_email(None) is False

import pytest

from notesync.services.note_tree import count_words, derive_plain_content


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", 0),
        ("   \n\t ", 0),
        ("hello", 1),
        ("hello world", 2),
        ("  leading and trailing  ", 3),
        ("line one\nline two\tthree", 5),
    ],
)
def test_count_words(text, expected):
    assert count_words(text) == expected


def test_plain_content_passes_strings_through():
    assert derive_plain_content("Hello <b>there</b>") == "Hello <b>there</b>"


def test_plain_content_of_missing_content_is_empty():
    assert derive_plain_content(None) == ""


def test_structured_content_is_serialized_compactly():
    content = {"type": "doc", "text": "héllo"}
    assert derive_plain_content(content) == '{"type":"doc","text":"héllo"}'


def test_recomputing_from_same_content_is_stable():
    content = {"blocks": [{"text": "a b c"}]}
    first = derive_plain_content(content)
    second = derive_plain_content(content)
    assert first == second
    assert count_words(first) == count_words(second)

import pytest

from narrator.text.extraction import extract_narration_text


def test_extract_strips_tags_and_collapses_whitespace():
    assert extract_narration_text("<p>  Hi   there </p>") == "Hi there"


@pytest.mark.parametrize("raw", ["", None, "   ", "<div></div>", "<br/><hr>"])
def test_extract_empty_input_yields_empty_string(raw):
    assert extract_narration_text(raw) == ""


def test_adjacent_block_elements_keep_words_apart():
    assert extract_narration_text("<h1>Title</h1><p>Body</p>") == "Title Body"


def test_unterminated_tag_removes_rest_of_input():
    assert extract_narration_text("Hello <b world and more") == "Hello"


def test_script_style_and_comments_are_dropped():
    raw = (
        "<html><head><style>p { color: red; }</style>"
        "<script type='text/javascript'>var x = '<p>';</script></head>"
        "<body><!-- hidden note --><p>Visible</p></body></html>"
    )
    assert extract_narration_text(raw) == "Visible"


def test_entities_are_decoded_without_reintroducing_brackets():
    text = extract_narration_text("<p>Fish &amp; chips &lt;b&gt; it&#39;s</p>")
    assert text == "Fish & chips b it's"
    assert "<" not in text and ">" not in text


def test_output_invariants_hold_for_messy_markup():
    raw = "\n<ul>\n\t<li>one</li>\n\t<li>two</li>\n</ul>\n\n<p>three\r\nfour</p>"
    text = extract_narration_text(raw)
    assert text == "one two three four"
    assert text == text.strip()
    assert "  " not in text

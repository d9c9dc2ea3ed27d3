import pytest
import requests

from narrator.text.fetch import DEFAULT_USER_AGENT, PageFetchError, fetch_page_html


class FakeResponse:
    def __init__(self, text="", *, status=200, encoding="utf-8"):
        self.text = text
        self.content = text.encode("utf-8")
        self.status_code = status
        self.encoding = encoding
        self.apparent_encoding = "utf-8"

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def test_fetch_returns_body_and_sends_user_agent():
    session = FakeSession(FakeResponse("<p>Hello</p>"))

    html = fetch_page_html("https://example.com/page", timeout=5, session=session)

    assert html == "<p>Hello</p>"
    url, kwargs = session.calls[0]
    assert url == "https://example.com/page"
    assert kwargs["timeout"] == 5
    assert kwargs["headers"]["User-Agent"] == DEFAULT_USER_AGENT


def test_fetch_wraps_http_errors():
    session = FakeSession(FakeResponse("nope", status=404))

    with pytest.raises(PageFetchError) as excinfo:
        fetch_page_html("https://example.com/missing", session=session)

    assert excinfo.value.url == "https://example.com/missing"
    assert "404" in str(excinfo.value)


def test_fetch_wraps_connection_errors():
    session = FakeSession(error=requests.ConnectionError("refused"))

    with pytest.raises(PageFetchError, match="refused"):
        fetch_page_html("https://example.com", session=session)


def test_fetch_uses_apparent_encoding_for_latin1_default():
    response = FakeResponse("<p>café</p>", encoding="ISO-8859-1")
    session = FakeSession(response)

    fetch_page_html("https://example.com", session=session)

    assert response.encoding == "utf-8"

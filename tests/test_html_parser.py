# File: tests/test_html_parser.py
from datetime import datetime, timezone

from site_corpus.parser.html_parser import extract

URL = "https://example.com/about"


def test_title_meta_and_headings():
    html = """
    <html><head>
      <title>  About   Us </title>
      <meta name="Description" content="We build   things.">
    </head><body>
      <h1>About</h1><h2>Team</h2><h3>  </h3>
      <p>Hello.</p>
    </body></html>
    """
    record = extract(html, URL)
    assert record.title == "About Us"
    assert record.meta_description == "We build things."
    assert record.headings == ((1, "About"), (2, "Team"))
    assert record.ok


def test_title_falls_back_to_first_h1():
    record = extract("<body><h1>Main heading</h1><h1>Second</h1><p>x</p></body>", URL)
    assert record.title == "Main heading"


def test_title_and_meta_empty_when_missing():
    record = extract("<body><p>x</p></body>", URL)
    assert record.title == ""
    assert record.meta_description == ""


def test_main_content_selector_wins():
    html = """
    <body>
      <nav><p>Menu</p></nav>
      <main>
        <h1>Services</h1>
        <p>We do   web
           development.</p>
        <script>var x = 1;</script>
      </main>
      <footer><p>Footer</p></footer>
    </body>
    """
    record = extract(html, URL)
    assert record.content == "Services We do web development."


def test_main_selector_priority_article_before_content_class():
    html = '<body><div class="content">Generic</div><article>The article</article></body>'
    assert extract(html, URL).content == "The article"


def test_role_main_selector():
    html = '<body><div role="main"><p>Role main text</p></div><p>Other</p></body>'
    assert extract(html, URL).content == "Role main text"


def test_heading_scoped_sections():
    html = """
    <body><div>
      <h2>Web</h2>
      <p>Custom sites.</p>
      <ul><li>Shops</li><li>Portals</li></ul>
      <h2>Mobile</h2>
      <blockquote>Apps  for iOS</blockquote>
      <table><tr><td>Android</td></tr></table>
      <h2>Empty section</h2>
    </div></body>
    """
    record = extract(html, URL)
    assert record.content == "Web\nCustom sites.\nShops\nPortals\n\nMobile\nApps for iOS\nAndroid"


def test_paragraph_fallback_in_document_order():
    html = "<body><div><p>First  one.</p></div><p>Second.</p><section><p>Third.</p></section></body>"
    record = extract(html, URL)
    assert record.content == "First one.\n\nSecond.\n\nThird."


def test_non_content_and_aria_hidden_stripped():
    html = """
    <body>
      <div aria-hidden="true"><p>Hidden</p><span aria-hidden="true">nested</span></div>
      <style>p {color: red}</style>
      <p>Visible <img src="x.png" alt="image">text</p>
      <iframe src="https://video"></iframe>
    </body>
    """
    record = extract(html, URL)
    assert record.content == "Visible text"


def test_links_are_canonical_same_origin():
    html = """
    <body><p>x</p>
      <a href="/about-us/">A</a><a href="/about-us">B</a>
      <a href="https://www.other.com/">C</a>
      <a href="team#members">D</a>
    </body>
    """
    record = extract(html, URL, origin="https://example.com")
    assert record.links == frozenset({"https://example.com/about-us", "https://example.com/team"})


def test_links_resolve_against_served_url():
    html = '<body><p>x</p><a href="intro">Intro</a><a href="../up">Up</a></body>'
    record = extract(html, "https://example.com/docs", base_url="https://example.com/docs/")
    assert record.url == "https://example.com/docs"
    assert record.links == frozenset({"https://example.com/docs/intro", "https://example.com/up"})


def test_base_href_overrides_page_url():
    html = '<head><base href="/guide/v2/"></head><body><p>x</p><a href="start">Start</a></body>'
    record = extract(html, "https://example.com/docs/page")
    assert record.links == frozenset({"https://example.com/guide/v2/start"})


def test_empty_page_has_empty_content_without_error():
    record = extract("<html><body><div></div></body></html>", URL)
    assert record.content == ""
    assert record.error is None


def test_extraction_failure_becomes_error_record(monkeypatch):
    import site_corpus.parser.html_parser as html_parser

    def boom(*_args, **_kwargs):
        raise RuntimeError("parser exploded")

    monkeypatch.setattr(html_parser, "BeautifulSoup", boom)
    stamp = datetime(2024, 5, 1, tzinfo=timezone.utc)
    record = html_parser.extract("<p>x</p>", URL, fetched_at=stamp)
    assert record.content == ""
    assert "parser exploded" in record.error
    assert record.fetched_at == stamp

"""HTML analysis: version, title, headings, links and login forms."""

from collections import Counter
from typing import Optional, Union
import structlog

from pagelens.dom import Node, NodeKind, parse_document, walk
from pagelens.errors import ContentTooLarge, EmptyContent
from pagelens.links import is_internal
from pagelens.models import MAX_CONTENT_SIZE, Link, ParsedHTML

logger = structlog.get_logger()

HTML5 = "HTML5"
UNKNOWN_VERSION = "Unknown/No DOCTYPE"

# Checked in order, most specific first
DOCTYPE_VERSIONS = (
    ("html 4.01 strict", "HTML 4.01 Strict"),
    ("html 4.01//strict", "HTML 4.01 Strict"),
    ("html 4.01 transitional", "HTML 4.01 Transitional"),
    ("html 4.01//transitional", "HTML 4.01 Transitional"),
    ("html 4.01 frameset", "HTML 4.01 Frameset"),
    ("html 4.01//frameset", "HTML 4.01 Frameset"),
    ("html 4.01", "HTML 4.01 Strict"),
    ("html 4.0", "HTML 4.0"),
    ("html 3.2", "HTML 3.2"),
    ("html 2.0", "HTML 2.0"),
    ("xhtml 1.1", "XHTML 1.1"),
    ("xhtml 1.0 strict", "XHTML 1.0 Strict"),
    ("xhtml 1.0//strict", "XHTML 1.0 Strict"),
    ("xhtml 1.0 transitional", "XHTML 1.0 Transitional"),
    ("xhtml 1.0//transitional", "XHTML 1.0 Transitional"),
    ("xhtml 1.0 frameset", "XHTML 1.0 Frameset"),
    ("xhtml 1.0//frameset", "XHTML 1.0 Frameset"),
    ("xhtml basic", "XHTML Basic"),
    ("xhtml mobile", "XHTML Mobile Profile"),
    ("xhtml", "XHTML"),
    ("html", "HTML"),
)

HTML5_ELEMENTS = frozenset(
    {
        "article", "aside", "audio", "canvas", "datalist", "details", "embed",
        "figcaption", "figure", "footer", "header", "hgroup", "keygen", "mark",
        "meter", "nav", "output", "progress", "rp", "rt", "ruby", "section",
        "source", "summary", "time", "track", "video", "wbr",
    }
)

HTML5_INPUT_TYPES = frozenset(
    {
        "email", "url", "tel", "search", "number", "range", "date", "time",
        "datetime", "datetime-local", "month", "week", "color",
    }
)

HTML5_ATTRIBUTES = frozenset({"contenteditable", "draggable", "hidden", "spellcheck"})

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

LOGIN_KEYWORDS = (
    "login", "signin", "sign-in", "sign_in", "log-in", "log_in",
    "sign in", "log in", "logon", "log on",
    "password", "passwd", "pwd", "pass",
    "username", "userid", "user_id",
    "authenticate", "authentication",
    "credentials", "credential",
    "forgot password", "reset password", "password reset",
    "remember me", "stay logged in",
)

LOGIN_INPUT_NAMES = (
    "username", "userid", "user_id",
    "password", "passwd", "pwd", "pass", "passphrase",
    "login", "signin", "authenticate",
    "remember", "remember_me", "stay_logged_in",
)

# Elements whose leading text can announce a login form
TEXT_ELEMENTS = frozenset(
    {
        "button", "a", "h1", "h2", "h3", "h4", "h5", "h6",
        "label", "span", "div", "p", "legend", "title",
    }
)


def _mentions(value: Optional[str], keywords: tuple[str, ...]) -> bool:
    if not value:
        return False
    value = value.lower()
    return any(keyword in value for keyword in keywords)


def _doctype_text(node: Node) -> str:
    text = node.data.strip().lower()
    if text.startswith("doctype"):
        text = text[len("doctype"):].strip()
    return text


class HTMLAnalyzer:
    """Extracts page facts from HTML."""

    def __init__(self, max_depth: int = 100, max_content_size: int = MAX_CONTENT_SIZE):
        """
        Initialize analyzer.

        Args:
            max_depth: Elements nested deeper than this are ignored by the
                heading, link, login form and HTML5 feature scans
            max_content_size: Largest document accepted, in bytes
        """
        self.max_depth = max_depth
        self.max_content_size = max_content_size

    def parse(self, content: Union[str, bytes], base_url: str) -> ParsedHTML:
        """
        Parse HTML and extract everything the analysis reports.

        Links come back classified as internal or external but are not
        probed; see LinkProber.

        Args:
            content: Raw HTML, bytes are decoded by the parser
            base_url: URL the content was fetched from

        Returns:
            ParsedHTML

        Raises:
            EmptyContent: If content is empty
            ContentTooLarge: If content exceeds max_content_size
            ParseError: If the parser rejects the markup
        """
        if not content:
            raise EmptyContent("HTML content cannot be empty")

        size = len(content) if isinstance(content, bytes) else len(content.encode("utf-8"))
        if size > self.max_content_size:
            raise ContentTooLarge(size, self.max_content_size)

        doc = parse_document(content)

        parsed = ParsedHTML(
            html_version=self.extract_html_version(doc),
            title=self.extract_title(doc),
            headings=self.extract_headings(doc),
            links=self.extract_links(doc, base_url),
            has_login_form=self.has_login_form(doc),
            content_length=size,
        )

        logger.debug(
            "html_parsed",
            url=base_url,
            version=parsed.html_version,
            links=len(parsed.links),
            login_form=parsed.has_login_form,
        )
        return parsed

    def extract_html_version(self, doc: Node) -> str:
        for node, _ in walk(doc):
            if node.kind != NodeKind.DOCTYPE:
                continue

            doctype = _doctype_text(node)
            if doctype == "html" or "about:legacy-compat" in doctype:
                return HTML5
            for pattern, version in DOCTYPE_VERSIONS:
                if pattern in doctype:
                    return version

        if self.has_html5_features(doc):
            return HTML5
        return UNKNOWN_VERSION

    def extract_title(self, doc: Node) -> str:
        for node, _ in walk(doc):
            if node.is_element("title"):
                text = node.first_text()
                if text and text.strip():
                    return text.strip()
        return ""

    def extract_headings(self, doc: Node) -> dict[str, int]:
        counts = Counter(
            node.data for node, _ in walk(doc, self.max_depth) if node.is_element(*HEADING_TAGS)
        )
        return dict(counts)

    def extract_links(self, doc: Node, base_url: str) -> list[Link]:
        """One Link per <a> with a non-empty href, in document order."""
        links = []
        for node, _ in walk(doc, self.max_depth):
            if not node.is_element("a"):
                continue
            href = node.get("href")
            if href:
                links.append(Link(url=href, is_internal=is_internal(href, base_url)))
        return links

    def has_login_form(self, doc: Node) -> bool:
        """
        Whether the document looks like it contains a login form.

        Needs a password input plus at least one login signal somewhere in
        the document: login-ish input names, form or button attributes, or
        visible text such as "Sign in".
        """
        has_password_field = False
        has_login_context = False

        for node, _ in walk(doc, self.max_depth):
            if node.kind != NodeKind.ELEMENT:
                continue
            tag = node.data

            if tag == "input":
                if (node.get("type") or "").lower() == "password":
                    has_password_field = True
                if any(_mentions(node.get(key), LOGIN_INPUT_NAMES) for key in ("name", "id", "class")):
                    has_login_context = True

            elif tag == "form":
                if any(
                    _mentions(node.get(key), LOGIN_KEYWORDS)
                    for key in ("action", "id", "class", "name")
                ):
                    has_login_context = True

            if tag in ("button", "a"):
                if any(
                    _mentions(node.get(key), LOGIN_KEYWORDS)
                    for key in ("id", "class", "name", "value")
                ):
                    has_login_context = True

            if tag in TEXT_ELEMENTS and _mentions((node.first_text() or "").strip(), LOGIN_KEYWORDS):
                has_login_context = True

            if has_password_field and has_login_context:
                return True

        return False

    def has_html5_features(self, doc: Node) -> bool:
        for node, _ in walk(doc, self.max_depth):
            if node.kind != NodeKind.ELEMENT:
                continue
            if node.data in HTML5_ELEMENTS:
                return True
            if node.data == "input" and (node.get("type") or "").lower() in HTML5_INPUT_TYPES:
                return True
            if any(key in HTML5_ATTRIBUTES for key, _ in node.attrs):
                return True
        return False

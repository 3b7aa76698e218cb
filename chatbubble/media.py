"""
Turns assistant text into safe HTML with inline images and links.

Media spans are matched on the raw text, turned into real ``Tag`` objects with
BeautifulSoup, and everything else is appended as ``NavigableString`` so it is
escaped on output. Markup from upstream text is never passed through.
"""
import html
import re
from typing import Callable, List, Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag

Segment = Union[str, Tag]

IMG_STYLE = "max-width:100%;height:auto;border-radius:8px;display:block;margin:8px 0;"
CHECKOUT_LABEL = "Proceed to Checkout"

# Image URL on the Shopify CDN, possibly broken across lines by the upstream.
# Only path fragments (containing "/") and the final file name may follow a break.
_URL_CHARS = r"[^\s)\]\"'<>]"
CDN_IMAGE_URL = re.compile(
    r"https?://cdn\.shopify\.com/" + _URL_CHARS + r"*"
    r"(?:\s+" + _URL_CHARS + r"*/" + _URL_CHARS + r"*){0,3}"
    r"(?:\s+" + _URL_CHARS + r"*?)?"
    r"\.\s*(?:png|jpe?g|gif|webp|svg)\b(?:\?" + _URL_CHARS + r"*)?",
    re.IGNORECASE,
)
HTML_IMG_TAG = re.compile(r"<img\b[^>]*?\bsrc\s*=\s*[\"']?(https?://[^\"'\s>]+)[\"']?[^>]*>", re.IGNORECASE)
HTML_ANCHOR_TAG = re.compile(
    r"<a\b[^>]*?\bhref\s*=\s*[\"']?(https?://[^\"'\s>]+)[\"']?[^>]*>(.*?)</a\s*>",
    re.IGNORECASE | re.DOTALL,
)
MD_IMAGE = re.compile(r"!\[([^\]]*)\]\s*\(\s*(https?://[^\s)]+)\s*\)", re.IGNORECASE)
MD_LINK = re.compile(r"\[([^\]]+)\]\s*\(\s*(https?://[^\s)]+)\s*\)", re.IGNORECASE)
BRACKET_IMAGE = re.compile(r"\[\s*image\s*:\s*(https?://[^\]\s]+)\s*\]", re.IGNORECASE)
RAW_IMAGE_URL = re.compile(r"https?://[^\s\"'<>]+\.(?:png|jpe?g|gif|webp|svg)(?:\?[^\s\"'<>]*)?", re.IGNORECASE)
HREF_WRAPPER = re.compile(r"<href>(.*?)</href>", re.IGNORECASE | re.DOTALL)

LOOKS_LIKE_HTML = re.compile(r"</?(?:img|a|div|span|button|href)\b", re.IGNORECASE)
MD_IMAGE_HINT = re.compile(r"!\[.*\]\(https?://", re.IGNORECASE)
HTTP_URL = re.compile(r"^https?://\S+$", re.IGNORECASE)
INNER_TAGS = re.compile(r"<[^>]*>")


def escape_text(s: Optional[str]) -> str:
    return html.escape(s or "", quote=True)


def looks_like_html(text: str) -> bool:
    return bool(LOOKS_LIKE_HTML.search(text) or MD_IMAGE_HINT.search(text))


def clean_url(url: str) -> str:
    return re.sub(r"^[(\"'\s]+|[)\"'\s]+$", "", url or "")


def reconstruct_cdn_urls(text: str) -> str:
    """Strips whitespace that upstream line wrapping left inside CDN image URLs."""
    return CDN_IMAGE_URL.sub(lambda m: re.sub(r"\s+", "", m.group(0)), text)


class MediaBuilder:
    """Builds typed media tags and assembles the final fragment."""

    def __init__(self):
        self.soup = BeautifulSoup("", "html.parser")

    def image(self, url: str, alt: Optional[str] = None) -> Optional[Tag]:
        src = clean_url(url)
        if not HTTP_URL.match(src):
            return None
        return self.soup.new_tag("img", attrs={"src": src, "alt": alt or "product image", "style": IMG_STYLE})

    def link(self, url: str, text: str) -> Optional[Tag]:
        href = clean_url(url)
        if not HTTP_URL.match(href):
            return None
        tag = self.soup.new_tag("a", attrs={"href": href, "target": "_blank", "rel": "noopener noreferrer"})
        tag.string = text
        return tag

    def render(self, segments: List[Segment]) -> str:
        fragment = BeautifulSoup("", "html.parser")
        for seg in segments:
            fragment.append(NavigableString(seg) if isinstance(seg, str) else seg)
        return fragment.decode()


def substitute(segments: List[Segment], pattern: re.Pattern, build: Callable[[re.Match], Optional[Tag]]) -> List[Segment]:
    """Replaces matches inside plain-text segments only; built tags are never rescanned."""
    out: List[Segment] = []
    for seg in segments:
        if not isinstance(seg, str):
            out.append(seg)
            continue
        pos = 0
        for m in pattern.finditer(seg):
            tag = build(m)
            if tag is None:
                continue
            out.append(seg[pos:m.start()])
            out.append(tag)
            pos = m.end()
        out.append(seg[pos:])
    return [s for s in out if not (isinstance(s, str) and s == "")]


def inline_media(text: Optional[str]) -> str:
    source = reconstruct_cdn_urls(str(text or ""))
    b = MediaBuilder()

    def _anchor_text(m: re.Match) -> str:
        return INNER_TAGS.sub("", m.group(2)).strip() or clean_url(m.group(1))

    steps = [
        # literal <img>/<a> from upstream are rebuilt, never passed through
        (HTML_IMG_TAG, lambda m: b.image(m.group(1))),
        (HTML_ANCHOR_TAG, lambda m: b.link(m.group(1), html.unescape(_anchor_text(m)))),
        (MD_IMAGE, lambda m: b.image(m.group(2), m.group(1) or "image")),
        (MD_LINK, lambda m: b.link(m.group(2), m.group(1))),
        (BRACKET_IMAGE, lambda m: b.image(m.group(1))),
        (RAW_IMAGE_URL, lambda m: b.image(m.group(0))),
        (HREF_WRAPPER, lambda m: b.link(m.group(1).strip(), CHECKOUT_LABEL)),
    ]

    segments: List[Segment] = [source] if source else []
    for pattern, build in steps:
        segments = substitute(segments, pattern, build)

    if all(isinstance(s, str) for s in segments):
        return escape_text(source)
    return b.render(segments)


RAW_URL = re.compile(r"https?://[^\s\"'<>)]+", re.IGNORECASE)


def link_first_url(text: str) -> Optional[str]:
    """Links the first bare URL of a plain reply; ``None`` when there is none."""
    match = RAW_URL.search(text or "")
    if not match:
        return None
    b = MediaBuilder()
    url = clean_url(match.group(0))
    tag = b.image(url) if RAW_IMAGE_URL.fullmatch(url) else b.link(url, url)
    if tag is None:
        return None
    return b.render([text[:match.start()], tag, text[match.end():]])

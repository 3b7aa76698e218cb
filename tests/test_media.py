import pytest

from chatbubble.media import inline_media, link_first_url, looks_like_html, reconstruct_cdn_urls


def test_markdown_image_keeps_surrounding_text():
    out = inline_media("![a](http://x.com/i.png) hello")
    assert out.startswith('<img src="http://x.com/i.png" alt="a"')
    assert out.endswith(" hello")


def test_plain_text_comes_back_unchanged():
    assert inline_media("plain sentence, no media") == "plain sentence, no media"


def test_plain_text_is_escaped():
    assert inline_media("<script>alert(1)</script>") == "&lt;script&gt;alert(1)&lt;/script&gt;"


def test_text_around_media_is_escaped():
    out = inline_media("<b>bold</b> ![a](https://x.com/i.png)")
    assert "<b>" not in out
    assert "&lt;b&gt;bold&lt;/b&gt;" in out
    assert '<img src="https://x.com/i.png"' in out


def test_markdown_link():
    out = inline_media("See [our shop](https://shop.com/p) today")
    assert 'href="https://shop.com/p"' in out
    assert 'target="_blank"' in out
    assert ">our shop</a>" in out
    assert out.startswith("See ")
    assert out.endswith(" today")


def test_non_http_link_is_not_linked():
    out = inline_media("[click](javascript:alert(1))")
    assert "<a" not in out


def test_bracketed_image():
    out = inline_media("[Image: https://x.com/a.jpg]")
    assert '<img src="https://x.com/a.jpg" alt="product image"' in out


def test_raw_image_url_with_query():
    out = inline_media("look https://x.com/a.webp?v=2 nice")
    assert 'src="https://x.com/a.webp?v=2"' in out
    assert out.endswith(" nice")


def test_href_wrapper_becomes_checkout_link():
    out = inline_media("Added! <href>https://shop.com/checkout</href>")
    assert out.startswith("Added! ")
    assert 'href="https://shop.com/checkout"' in out
    assert ">Proceed to Checkout</a>" in out


def test_upstream_img_tag_is_rebuilt():
    out = inline_media('<img src="https://x.com/a.png" onerror="alert(1)">')
    assert "onerror" not in out
    assert 'src="https://x.com/a.png"' in out


def test_split_cdn_url_is_rejoined():
    text = "See https://cdn.shopify.com/s/files/1/\nabc.png now"
    assert reconstruct_cdn_urls(text) == "See https://cdn.shopify.com/s/files/1/abc.png now"
    out = inline_media(text)
    assert 'src="https://cdn.shopify.com/s/files/1/abc.png"' in out
    assert out.endswith(" now")


def test_cdn_rejoin_leaves_following_prose_alone():
    text = "Our logo https://cdn.shopify.com/s/files/brand is on every page. See also banner.png"
    assert reconstruct_cdn_urls(text) == text
    out = inline_media(text)
    assert "<img" not in out
    assert out == text


def test_cdn_url_split_across_path_segments():
    text = "Photo: https://cdn.shopify.com/s/files/\n1/0/ shirt.jpg?v=2 here"
    assert reconstruct_cdn_urls(text) == "Photo: https://cdn.shopify.com/s/files/1/0/shirt.jpg?v=2 here"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("<img src='x'>", True),
        ("<div>hi</div>", True),
        ("go <href>https://a.com</href>", True),
        ("![a](https://x.com/i.png)", True),
        ("hello there", False),
        ("<about>", False),
    ],
)
def test_looks_like_html(text, expected):
    assert looks_like_html(text) is expected


def test_link_first_url():
    out = link_first_url("Checkout at https://shop.com/checkout")
    assert out.startswith("Checkout at ")
    assert '<a href="https://shop.com/checkout"' in out
    assert link_first_url("no links here") is None

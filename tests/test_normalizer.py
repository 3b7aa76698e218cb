import json

import pytest

from chatbubble.normalizer import normalize, resolve_image


def test_array_with_embedded_json_output():
    n = normalize([{"output": "{\"products\":[{\"id\":1}]}"}])
    assert [p.id for p in n.products] == [1]
    assert n.parsed_output == {"products": [{"id": 1}]}


@pytest.mark.parametrize("raw", [None, "", [], {}])
def test_empty_inputs_do_not_raise(raw):
    n = normalize(raw)
    assert n.raw_text is None
    assert n.parsed_output is None
    assert n.products == []


def test_plain_string_becomes_raw_text():
    n = normalize("hello there")
    assert n.raw_text == "hello there"
    assert n.candidate_reply_fields == ["hello there"]
    assert n.products == []


def test_malformed_embedded_json_degrades_to_text():
    n = normalize({"output": "Here you go {not: valid json}"})
    assert n.parsed_output == "Here you go {not: valid json}"
    assert n.candidate_reply_fields == ["Here you go {not: valid json}"]


def test_parsed_output_passthrough():
    n = normalize({"parsedOutput": {"before_message": "Hi", "products": [{"title": "Hat"}]}})
    assert n.structured_output()["before_message"] == "Hi"
    assert n.products[0].title == "Hat"


def test_first_non_empty_product_list_wins():
    n = normalize({"products": [], "results": [{"id": 2, "title": "B"}]})
    assert [p.id for p in n.products] == [2]


def test_nested_results_shape():
    n = normalize({"results": {"results": [{"title": "A"}]}})
    assert [p.title for p in n.products] == ["A"]


def test_data_products_shape():
    n = normalize({"data": {"products": [{"handle": "x"}, "not a product"]}})
    assert [p.handle for p in n.products] == ["x"]


def test_parsed_list_of_products():
    n = normalize({"output": json.dumps([{"id": 7, "title": "Scarf"}])})
    # the greedy object regex picks the inner object, which is not a product list
    assert n.structured_output() == {"id": 7, "title": "Scarf"}
    n = normalize({"parsedOutput": [{"id": 7, "title": "Scarf"}]})
    assert [p.title for p in n.products] == ["Scarf"]


def test_reply_candidates_order():
    n = normalize({"output": json.dumps({"reply": "inner"}), "text": "outer"})
    assert n.candidate_reply_fields[0] == "inner"
    assert n.candidate_reply_fields[-1] == "outer"


def test_storefront_node_coercion():
    node = {
        "id": "gid://shopify/Product/1",
        "title": "Red Shirt",
        "handle": "red-shirt",
        "description": "Cotton",
        "productType": "Shirts",
        "featuredImage": {"url": "//cdn.shopify.com/a.png", "altText": "front"},
        "priceRange": {"minVariantPrice": {"amount": "19.99", "currencyCode": "USD"}},
        "variants": {"edges": [{"node": {"id": "gid://shopify/ProductVariant/9", "priceV2": {"amount": "21.50", "currencyCode": "USD"}}}]},
    }
    p = normalize({"products": [node]}).products[0]
    assert p.image.url == "https://cdn.shopify.com/a.png"
    assert p.image.alt_text == "front"
    assert p.product_type == "Shirts"
    assert p.variants[0].id == "gid://shopify/ProductVariant/9"
    assert p.display_price() == 21.5
    assert p.display_currency() == "USD"
    assert p.min_variant_price == 19.99


@pytest.mark.parametrize(
    "item,expected",
    [
        ({"featured_image": "https://x.com/a.jpg"}, "https://x.com/a.jpg"),
        ({"image": {"src": "https://x.com/b.jpg"}}, "https://x.com/b.jpg"),
        ({"featuredImageUrl": "https://x.com/c.jpg"}, "https://x.com/c.jpg"),
        ({"images": [{"src": "https://x.com/d.jpg"}]}, "https://x.com/d.jpg"),
        ({"images": ["https://x.com/e.jpg"]}, "https://x.com/e.jpg"),
    ],
)
def test_resolve_image_sources(item, expected):
    assert resolve_image(item).url == expected


def test_resolve_image_missing():
    assert resolve_image({"title": "No picture"}) is None

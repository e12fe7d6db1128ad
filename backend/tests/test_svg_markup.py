import pytest

from domain.models import Assignment, Photo
from services.svg_markup import (
    MarkupError,
    bind_images,
    count_bound_images,
    extract_frame_coordinates,
    namespace_ids,
    parse_path_bounding_box,
    parse_template_frames,
)


def test_namespace_ids_rewrites_ids_and_references(catalog_factory):
    catalog = catalog_factory({"two.svg": [1.0, 1.0]})
    svg = namespace_ids(catalog.template("two.svg"), "page-7")
    assert 'id="img1_page-7"' in svg
    assert 'id="clip_page-7"' in svg
    assert 'fill="url(#img2_page-7)"' in svg
    assert 'clip-path="url(#clip_page-7)"' in svg
    assert 'id="img1"' not in svg


def test_namespace_ids_rewrites_hash_hrefs():
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink">'
        '<defs><rect id="r"/></defs><use xlink:href="#r" style="fill:url(#r)"/></svg>'
    )
    out = namespace_ids(svg, "p1")
    assert 'xlink:href="#r_p1"' in out
    assert "fill:url(#r_p1)" in out


def test_namespaced_pages_do_not_collide(catalog_factory):
    template = catalog_factory({"one.svg": [1.0]}).template("one.svg")
    a = namespace_ids(template, "page-1")
    b = namespace_ids(template, "page-2")
    assert "img1_page-1" in a and "img1_page-2" in b
    assert "img1_page-2" not in a


def test_bind_images_sets_href_and_slice_fit(catalog_factory):
    template = catalog_factory({"two.svg": [1.0, 1.0]}).template("two.svg")
    photos = {
        "a": Photo(id="a", width=100, height=100, url="https://cdn/a.jpg"),
        "b": Photo(id="b", width=100, height=100),
    }
    svg = bind_images(
        namespace_ids(template, "page-1"),
        [Assignment(1, "a"), Assignment(2, "b")],
        photos,
    )
    assert 'href="https://cdn/a.jpg"' in svg
    # Without a url the photo id is the locator
    assert 'href="b"' in svg
    assert 'preserveAspectRatio="xMidYMid slice"' in svg
    assert count_bound_images(svg) == 2


def test_bind_images_skips_unknown_photos(catalog_factory):
    template = catalog_factory({"two.svg": [1.0, 1.0]}).template("two.svg")
    photos = {"a": Photo(id="a", width=100, height=100)}
    svg = bind_images(template, [Assignment(1, "a"), Assignment(2, "missing")], photos)
    assert count_bound_images(svg) == 1


def test_bind_images_matches_suffixed_pattern_ids():
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg"><defs>'
        '<pattern id="frame-2"><image/></pattern>'
        '<pattern id="frame-1"><image/></pattern>'
        "</defs></svg>"
    )
    photos = {"x": Photo(id="x", width=10, height=10)}
    out = bind_images(svg, [Assignment(1, "x")], photos)
    # frame-1 is the last pattern in the document
    assert out.index('href="x"') > out.index('id="frame-1"')


def test_count_bound_images_ignores_placeholders():
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg">'
        '<image href="data:,"/><image href="blob:undefined"/><image href=""/><image/>'
        '<image href="ok.jpg"/></svg>'
    )
    assert count_bound_images(svg) == 1


def test_invalid_markup_raises():
    with pytest.raises(MarkupError):
        count_bound_images("<svg><unclosed></svg>")


@pytest.mark.parametrize(
    "d,expected",
    [
        ("M30 30 H570 V390 H30 Z", (30.0, 30.0, 540.0, 360.0)),
        ("M10,10 L60,10 L60,40 L10,40 Z", (10.0, 10.0, 50.0, 30.0)),
        ("m10 20 h100 v50 h-100 z", (10.0, 20.0, 100.0, 50.0)),
        ("M0 0 100 0 100 20", (0.0, 0.0, 100.0, 20.0)),
    ],
)
def test_parse_path_bounding_box(d, expected):
    assert parse_path_bounding_box(d) == pytest.approx(expected)


@pytest.mark.parametrize("d", ["", "L10 10", "M0 0 C10 10 20 20 30 30", "M10"])
def test_parse_path_bounding_box_rejects_unsupported(d):
    assert parse_path_bounding_box(d) is None


def test_extract_frame_coordinates_from_rects_and_paths():
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg">'
        '<path d="M30 405 H292.5 V580 H30 Z" fill="url(#img2_page-3)"/>'
        '<rect x="30" y="30" width="540" height="360" fill="url(#img1_page-3)"/>'
        '<rect x="0" y="0" width="600" height="800" fill="#ffffff"/>'
        "</svg>"
    )
    coords = extract_frame_coordinates(svg)
    assert [c.frame_number for c in coords] == [1, 2]
    assert (coords[0].x, coords[0].y, coords[0].width, coords[0].height) == (30, 30, 540, 360)
    assert coords[1].width == pytest.approx(262.5)
    assert coords[1].height == pytest.approx(175)


def test_parse_template_frames(catalog_factory):
    template = catalog_factory({"three.svg": [1.0, 1.0, 1.0]}).template("three.svg")
    assert parse_template_frames(template) == [1, 2, 3]


def test_bind_images_ignores_page_suffix_when_matching_pattern_ids():
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg"><defs>'
        '<pattern id="img3_page-1"><image/></pattern>'
        '<pattern id="frame-1_page-1"><image/></pattern>'
        "</defs></svg>"
    )
    photos = {"x": Photo(id="x", width=10, height=10)}
    out = bind_images(svg, [Assignment(1, "x")], photos)
    assert out.index('href="x"') > out.index('id="frame-1_page-1"')

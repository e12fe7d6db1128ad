import pytest

from services.edit_operations import (
    change_page_layout,
    delete_page,
    find_best_layout,
    move_photo,
    rebuild_page,
    regenerate_pages,
    reorder_pages,
    swap_photos,
)


@pytest.fixture
def catalog(catalog_factory):
    return catalog_factory({
        "single.svg": [1.0],
        "pair.svg": [1.0, 1.0],
        "pair_alt.svg": [1.2, 1.2],
        "triple.svg": [1.0, 1.0, 1.0],
    })


@pytest.fixture
def photos(photo_factory):
    return [photo_factory(pid, 1.0) for pid in "abcdefg"]


def _build(catalog, photos, *specs):
    lookup = {p.id: p for p in photos}
    return [
        rebuild_page(f"page-{i + 1}", i + 1, layout, ids, lookup, catalog)
        for i, (layout, ids) in enumerate(specs)
    ]


def test_rebuild_page_rejects_mismatch_and_unknown(catalog, photos):
    lookup = {p.id: p for p in photos}
    with pytest.raises(ValueError):
        rebuild_page("page-1", 1, "pair.svg", ["a"], lookup, catalog)
    with pytest.raises(ValueError):
        rebuild_page("page-1", 1, "single.svg", ["zzz"], lookup, catalog)
    with pytest.raises(ValueError):
        rebuild_page("page-1", 1, "nope.svg", ["a"], lookup, catalog)


def test_swap_within_page(catalog, photos):
    pages = _build(catalog, photos, ("pair.svg", ["a", "b"]))
    result = swap_photos(pages, 0, 0, 0, 1, photos, catalog)
    assert result[0].photo_ids == ["b", "a"]
    assert result[0].id == "page-1"
    # Input pages are untouched
    assert pages[0].photo_ids == ["a", "b"]


def test_swap_across_pages(catalog, photos):
    pages = _build(catalog, photos, ("pair.svg", ["a", "b"]), ("single.svg", ["c"]))
    result = swap_photos(pages, 0, 1, 1, 0, photos, catalog)
    assert result[0].photo_ids == ["a", "c"]
    assert result[1].photo_ids == ["b"]
    assert 'href="c"' in result[0].svg_content


def test_swap_rejects_bad_indices(catalog, photos):
    pages = _build(catalog, photos, ("pair.svg", ["a", "b"]))
    with pytest.raises(IndexError):
        swap_photos(pages, 0, 5, 0, 0, photos, catalog)
    with pytest.raises(IndexError):
        swap_photos(pages, 3, 0, 0, 0, photos, catalog)


def test_change_page_layout(catalog, photos):
    pages = _build(catalog, photos, ("pair.svg", ["a", "b"]))
    result = change_page_layout(pages, 0, "pair_alt.svg", photos, catalog)
    assert result[0].layout_name == "pair_alt.svg"
    assert result[0].photo_ids == ["a", "b"]
    with pytest.raises(ValueError):
        change_page_layout(pages, 0, "triple.svg", photos, catalog)
    with pytest.raises(ValueError):
        change_page_layout(pages, 0, "unknown.svg", photos, catalog)


def test_move_photo_adjusts_layouts(catalog, photos):
    pages = _build(catalog, photos, ("pair.svg", ["a", "b"]), ("pair.svg", ["c", "d"]))
    result = move_photo(pages, 0, 0, 1, 2, photos, catalog)
    assert [(p.layout_name, p.photo_ids) for p in result] == [
        ("single.svg", ["b"]),
        ("triple.svg", ["c", "d", "a"]),
    ]


def test_move_photo_removes_emptied_page(catalog, photos):
    pages = _build(catalog, photos, ("single.svg", ["a"]), ("pair.svg", ["b", "c"]))
    result = move_photo(pages, 0, 0, 1, 0, photos, catalog)
    assert len(result) == 1
    assert result[0].photo_ids == ["a", "b", "c"]
    assert result[0].page_number == 1


def test_move_photo_beyond_largest_layout_fails(catalog, photos):
    pages = _build(catalog, photos, ("single.svg", ["a"]), ("triple.svg", ["b", "c", "d"]))
    with pytest.raises(ValueError):
        move_photo(pages, 0, 0, 1, 0, photos, catalog)


def test_move_within_page_reorders(catalog, photos):
    pages = _build(catalog, photos, ("triple.svg", ["a", "b", "c"]))
    result = move_photo(pages, 0, 0, 0, 2, photos, catalog)
    assert result[0].photo_ids == ["b", "c", "a"]


def test_find_best_layout_matches_orientations(bundled_catalog, photo_factory):
    landscapes = [photo_factory("l1", 1.5), photo_factory("l2", 1.5)]
    assert find_best_layout(landscapes, bundled_catalog).name == "layout21.svg"
    portraits = [photo_factory(f"p{i}", 0.7) for i in range(3)]
    assert find_best_layout(portraits, bundled_catalog).name == "layout22.svg"


def test_find_best_layout_nearest_count(bundled_catalog, photo_factory):
    many = [photo_factory(f"p{i}", 1.0) for i in range(8)]
    assert find_best_layout(many, bundled_catalog).frame_count == 6
    with pytest.raises(ValueError):
        find_best_layout([], bundled_catalog)


def test_reorder_and_delete_renumber(catalog, photos):
    pages = _build(catalog, photos, ("single.svg", ["a"]), ("single.svg", ["b"]), ("single.svg", ["c"]))
    reordered = reorder_pages(pages, 2, 0)
    assert [p.photo_ids[0] for p in reordered] == ["c", "a", "b"]
    assert [p.page_number for p in reordered] == [1, 2, 3]

    remaining = delete_page(reordered, 1)
    assert [p.photo_ids[0] for p in remaining] == ["c", "b"]
    assert [p.page_number for p in remaining] == [1, 2]
    with pytest.raises(IndexError):
        delete_page(remaining, 5)


def test_regenerate_pages_splices_in_place(catalog, photos):
    pages = _build(
        catalog, photos,
        ("single.svg", ["a"]), ("single.svg", ["b"]), ("single.svg", ["c"]), ("single.svg", ["d"]),
    )
    result = regenerate_pages(pages, [1, 2], photos, catalog)

    assert result[0].photo_ids == ["a"]
    assert result[-1].photo_ids == ["d"]
    middle = sorted(pid for p in result[1:-1] for pid in p.photo_ids)
    assert middle == ["b", "c"]
    assert [p.page_number for p in result] == list(range(1, len(result) + 1))
    ids = [p.id for p in result]
    assert len(ids) == len(set(ids))


def test_regenerate_requires_selection(catalog, photos):
    pages = _build(catalog, photos, ("single.svg", ["a"]))
    with pytest.raises(ValueError):
        regenerate_pages(pages, [], photos, catalog)
    with pytest.raises(IndexError):
        regenerate_pages(pages, [4], photos, catalog)

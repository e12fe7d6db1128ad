from fastapi import FastAPI
from fastapi.testclient import TestClient
from unittest.mock import patch

from api.routes import albums as albums_router
from api.routes import layouts as layouts_router
from services.assignment_engine import EngineExhaustedError


PHOTOS = [
    {"id": "a", "width": 1500, "height": 1000},
    {"id": "b", "width": 1500, "height": 1000},
    {"id": "c", "width": 700, "height": 1000, "url": "https://cdn.test/c.jpg"},
    {"id": "d", "width": 1000, "height": 1000},
]


def _client() -> TestClient:
    app = FastAPI()
    app.include_router(albums_router.router, prefix="/albums")
    app.include_router(layouts_router.router, prefix="/layouts")
    return TestClient(app)


def _generate(client):
    with patch.object(albums_router, "get_default_oracle", return_value=None):
        resp = client.post("/albums/generate", json={"photos": PHOTOS})
    assert resp.status_code == 200
    return resp.json()


def test_list_layouts():
    client = _client()
    resp = client.get("/layouts")
    assert resp.status_code == 200
    data = resp.json()
    assert len(data) == 17
    assert {"name", "frame_count", "frames"} <= set(data[0])

    meta = client.get("/layouts/metadata").json()
    assert meta["layout19.svg"]["frameCount"] == 1
    assert client.get("/layouts/missing.svg/template").status_code == 404


def test_generate_album_places_every_photo():
    data = _generate(_client())
    placed = sorted(pid for page in data["pages"] for pid in page["photoIds"])
    assert placed == ["a", "b", "c", "d"]
    assert [p["pageNumber"] for p in data["pages"]] == list(range(1, len(data["pages"]) + 1))
    assert all(p["svgContent"].startswith("<svg") for p in data["pages"])
    assert data["notices"]


def test_generate_rejects_invalid_photo():
    client = _client()
    resp = client.post("/albums/generate", json={"photos": [{"id": "x", "width": 0, "height": 10}]})
    assert resp.status_code == 400


def test_engine_exhaustion_maps_to_500():
    client = _client()
    with patch.object(albums_router, "generate_album", side_effect=EngineExhaustedError("stuck")), \
            patch.object(albums_router, "get_default_oracle", return_value=None):
        resp = client.post("/albums/generate", json={"photos": PHOTOS})
    assert resp.status_code == 500
    assert "stuck" in resp.json()["detail"]


def test_reorder_pages():
    client = _client()
    pages = [
        {"id": "page-1", "pageNumber": 1, "layoutName": "layout21.svg", "photoIds": ["a", "b"]},
        {"id": "page-2", "pageNumber": 2, "layoutName": "layout19.svg", "photoIds": ["c"]},
        {"id": "page-3", "pageNumber": 3, "layoutName": "layout19.svg", "photoIds": ["d"]},
    ]
    resp = client.post(
        "/albums/pages/reorder",
        json={"photos": PHOTOS, "pages": pages, "from_index": 2, "to_index": 0},
    )
    assert resp.status_code == 200
    reordered = resp.json()["pages"]
    assert [p["id"] for p in reordered] == ["page-3", "page-1", "page-2"]
    assert [p["pageNumber"] for p in reordered] == [1, 2, 3]


def test_change_layout_unknown_is_400():
    client = _client()
    pages = _generate(client)["pages"]
    resp = client.post(
        "/albums/pages/change-layout",
        json={"photos": PHOTOS, "pages": pages, "page_index": 0, "layout_name": "nope.svg"},
    )
    assert resp.status_code == 400


def test_delete_out_of_range_is_400():
    client = _client()
    pages = _generate(client)["pages"]
    resp = client.post(
        "/albums/pages/delete",
        json={"photos": PHOTOS, "pages": pages, "page_index": 99},
    )
    assert resp.status_code == 400


def test_swap_accepts_snake_case_pages():
    client = _client()
    pages = [
        {"id": "page-1", "page_number": 1, "layout_name": "layout21.svg", "photo_ids": ["a", "b"]},
    ]
    resp = client.post(
        "/albums/pages/swap",
        json={
            "photos": PHOTOS, "pages": pages,
            "source_page": 0, "source_frame": 0, "target_page": 0, "target_frame": 1,
        },
    )
    assert resp.status_code == 200
    assert resp.json()["pages"][0]["photoIds"] == ["b", "a"]


def test_regenerate_without_planner():
    client = _client()
    pages = [
        {"id": "page-1", "pageNumber": 1, "layoutName": "layout19.svg", "photoIds": ["c"]},
        {"id": "page-2", "pageNumber": 2, "layoutName": "layout19.svg", "photoIds": ["d"]},
    ]
    resp = client.post(
        "/albums/pages/regenerate",
        json={"photos": PHOTOS, "pages": pages, "page_indices": [0, 1], "use_planner": False},
    )
    assert resp.status_code == 200
    placed = sorted(pid for p in resp.json()["pages"] for pid in p["photoIds"])
    assert placed == ["c", "d"]


def test_health_endpoint():
    from api.main import app

    client = TestClient(app)
    assert client.get("/health").json() == {"status": "healthy"}

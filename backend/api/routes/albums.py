"""
Album API routes.

Generates albums and applies page edits. The service is stateless: clients
send the photo pool and current pages with every edit request.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from domain.models import Page, Photo, PlanTrace
from services.album_generator import generate_album
from services.assignment_engine import EngineExhaustedError
from services.edit_operations import (
    change_page_layout,
    delete_page,
    move_photo,
    rebuild_page,
    regenerate_pages,
    reorder_pages,
    swap_photos,
)
from services.layout_catalog import LayoutCatalog, get_default_catalog
from services.plan_oracle import get_default_oracle

router = APIRouter()
logger = logging.getLogger(__name__)


class PhotoIn(BaseModel):
    id: str
    width: float
    height: float
    url: Optional[str] = ""
    priority: Optional[float] = None


class PageIn(BaseModel):
    """A page as previously returned by the API; markup is rebuilt server-side."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    page_number: int = Field(alias="pageNumber")
    layout_name: str = Field(alias="layoutName")
    photo_ids: List[str] = Field(alias="photoIds")


class GenerateRequest(BaseModel):
    photos: List[PhotoIn]
    use_planner: bool = True


class EditRequest(BaseModel):
    photos: List[PhotoIn]
    pages: List[PageIn]


class PhotoMoveRequest(EditRequest):
    source_page: int
    source_frame: int
    target_page: int
    target_frame: int


class ChangeLayoutRequest(EditRequest):
    page_index: int
    layout_name: str


class ReorderRequest(EditRequest):
    from_index: int
    to_index: int


class DeletePageRequest(EditRequest):
    page_index: int


class RegenerateRequest(EditRequest):
    page_indices: List[int]
    keep_layouts: bool = False
    use_planner: bool = True


class AlbumResponse(BaseModel):
    pages: List[Dict[str, Any]]
    notices: List[str] = []
    trace: List[Dict[str, Any]] = []


@contextmanager
def translate_errors() -> Iterator[None]:
    """Map service errors onto HTTP status codes."""
    try:
        yield
    except EngineExhaustedError as exc:
        logger.error("[api] layout engine exhausted: %s", exc)
        raise HTTPException(status_code=500, detail=f"Layout engine could not place every photo: {exc}")
    except (ValueError, IndexError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _to_photos(items: List[PhotoIn]) -> List[Photo]:
    return [
        Photo(id=p.id.strip(), width=p.width, height=p.height, url=p.url or "", priority=p.priority)
        for p in items
    ]


def _to_pages(items: List[PageIn], photos: List[Photo], catalog: LayoutCatalog) -> List[Page]:
    lookup = {p.id: p for p in photos}
    return [
        rebuild_page(p.id, p.page_number, p.layout_name, p.photo_ids, lookup, catalog)
        for p in items
    ]


def _response(pages: List[Page], notices: Optional[List[str]] = None,
              trace: Optional[PlanTrace] = None) -> AlbumResponse:
    return AlbumResponse(
        pages=[p.to_dict() for p in pages],
        notices=notices or [],
        trace=trace.to_list() if trace is not None else [],
    )


@router.post("/generate", response_model=AlbumResponse)
def generate(data: GenerateRequest):
    """Lay out a photo pool into album pages."""
    with translate_errors():
        photos = _to_photos(data.photos)
        oracle = get_default_oracle() if data.use_planner else None
        result = generate_album(photos, catalog=get_default_catalog(), oracle=oracle)
    return _response(result.pages, result.notices, result.trace)


@router.post("/pages/swap", response_model=AlbumResponse)
def swap(data: PhotoMoveRequest):
    catalog = get_default_catalog()
    with translate_errors():
        photos = _to_photos(data.photos)
        pages = swap_photos(
            _to_pages(data.pages, photos, catalog),
            data.source_page, data.source_frame, data.target_page, data.target_frame,
            photos, catalog,
        )
    return _response(pages)


@router.post("/pages/move", response_model=AlbumResponse)
def move(data: PhotoMoveRequest):
    catalog = get_default_catalog()
    with translate_errors():
        photos = _to_photos(data.photos)
        pages = move_photo(
            _to_pages(data.pages, photos, catalog),
            data.source_page, data.source_frame, data.target_page, data.target_frame,
            photos, catalog,
        )
    return _response(pages)


@router.post("/pages/change-layout", response_model=AlbumResponse)
def change_layout(data: ChangeLayoutRequest):
    catalog = get_default_catalog()
    with translate_errors():
        photos = _to_photos(data.photos)
        pages = change_page_layout(
            _to_pages(data.pages, photos, catalog), data.page_index, data.layout_name, photos, catalog
        )
    return _response(pages)


@router.post("/pages/reorder", response_model=AlbumResponse)
def reorder(data: ReorderRequest):
    catalog = get_default_catalog()
    with translate_errors():
        photos = _to_photos(data.photos)
        pages = reorder_pages(_to_pages(data.pages, photos, catalog), data.from_index, data.to_index)
    return _response(pages)


@router.post("/pages/delete", response_model=AlbumResponse)
def delete(data: DeletePageRequest):
    catalog = get_default_catalog()
    with translate_errors():
        photos = _to_photos(data.photos)
        pages = delete_page(_to_pages(data.pages, photos, catalog), data.page_index)
    return _response(pages)


@router.post("/pages/regenerate", response_model=AlbumResponse)
def regenerate(data: RegenerateRequest):
    """Re-plan the selected pages, keeping every other page untouched."""
    catalog = get_default_catalog()
    trace = PlanTrace()
    with translate_errors():
        photos = _to_photos(data.photos)
        oracle = get_default_oracle() if data.use_planner else None
        pages = regenerate_pages(
            _to_pages(data.pages, photos, catalog),
            data.page_indices,
            photos,
            catalog,
            oracle=oracle,
            keep_layouts=data.keep_layouts,
            trace=trace,
        )
    return _response(pages, trace=trace)

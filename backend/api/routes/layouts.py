"""
Layout catalog API routes.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from services.layout_catalog import get_default_catalog

router = APIRouter()


class FrameResponse(BaseModel):
    id: int
    aspect_ratio: float


class LayoutResponse(BaseModel):
    name: str
    frame_count: int
    frames: List[FrameResponse]


@router.get("", response_model=List[LayoutResponse])
def list_layouts():
    """All layouts, in catalog order."""
    catalog = get_default_catalog()
    return [
        LayoutResponse(
            name=layout.name,
            frame_count=layout.frame_count,
            frames=[FrameResponse(id=f.id, aspect_ratio=f.aspect_ratio) for f in layout.frames],
        )
        for layout in catalog
    ]


@router.get("/metadata")
def layout_metadata() -> Dict[str, Any]:
    """Catalog metadata in the `layouts.json` shape."""
    return get_default_catalog().to_metadata()


@router.get("/{layout_name}/template")
def layout_template(layout_name: str) -> Dict[str, str]:
    catalog = get_default_catalog()
    template = catalog.template(layout_name)
    if template is None:
        raise HTTPException(status_code=404, detail="Layout not found")
    return {"name": layout_name, "svg": template}

"""
Plan oracle client.

Asks a remote planning service for a candidate layout plan. Whatever comes
back is only parsed here, never trusted: validation and repair happen in
`services.plan_validator`.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import requests
from pydantic import BaseModel, Field, ValidationError

from domain.models import CandidateFrame, CandidatePage, CandidatePlan, Photo
from services.layout_catalog import LayoutCatalog
from services.photo_analysis import calculate_photo_priorities
from settings import settings

logger = logging.getLogger(__name__)

_session = requests.Session()


class OracleError(Exception):
    """Base class for every plan oracle failure."""


class OracleRateLimitError(OracleError):
    """The oracle answered HTTP 429."""


class OracleQuotaError(OracleError):
    """The oracle answered HTTP 402 (credits exhausted)."""


class OracleUnavailableError(OracleError):
    """Network failure, timeout or any other non-2xx answer."""


class OracleMalformedResponseError(OracleError):
    """The oracle answered with something that is not a plan."""


class OracleFrame(BaseModel):
    frame_number: int
    image_id: Union[str, int]


class OraclePage(BaseModel):
    layout_to_use: str
    frames: List[OracleFrame] = Field(default_factory=list)


class OraclePlanResponse(BaseModel):
    pages: List[OraclePage]

    def to_candidate_plan(self) -> CandidatePlan:
        return CandidatePlan(pages=tuple(
            CandidatePage(
                layout_to_use=page.layout_to_use,
                frames=tuple(
                    CandidateFrame(frame_number=f.frame_number, image_id=str(f.image_id))
                    for f in page.frames
                ),
            )
            for page in self.pages
        ))


def build_request_payload(
    photos: Sequence[Photo],
    catalog: LayoutCatalog,
    priority_layouts: Optional[Sequence[str]] = None,
    keep_layouts: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    # Caller-supplied priorities win over the dimension heuristic
    computed = calculate_photo_priorities(photos)
    payload: Dict[str, Any] = {
        "layouts": catalog.to_metadata(),
        "photos": [
            {
                "id": p.id,
                "orientation": p.orientation.value,
                "aspectRatio": round(p.aspect_ratio, 4),
                "priority": p.priority if p.priority is not None else computed[i],
            }
            for i, p in enumerate(photos)
        ],
    }
    if priority_layouts:
        payload["priorityLayouts"] = list(priority_layouts)
    if keep_layouts:
        payload["keepLayouts"] = list(keep_layouts)
    return payload


class PlanOracle:
    """HTTP client for the planning service."""

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or _session

    @classmethod
    def from_settings(cls) -> Optional["PlanOracle"]:
        """Build a client from environment settings, or None when disabled."""
        if not settings.PLAN_ORACLE_ENABLED:
            return None
        if not settings.PLAN_ORACLE_URL:
            logger.warning("[oracle] PLAN_ORACLE_ENABLED is set but PLAN_ORACLE_URL is empty")
            return None
        return cls(
            url=settings.PLAN_ORACLE_URL,
            api_key=settings.PLAN_ORACLE_API_KEY,
            timeout=settings.PLAN_ORACLE_TIMEOUT,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def request_plan(
        self,
        photos: Sequence[Photo],
        catalog: LayoutCatalog,
        priority_layouts: Optional[Sequence[str]] = None,
        keep_layouts: Optional[Sequence[str]] = None,
    ) -> CandidatePlan:
        """
        Request a candidate plan for `photos`.

        Raises:
            OracleRateLimitError: HTTP 429
            OracleQuotaError: HTTP 402
            OracleUnavailableError: network error, timeout or other non-2xx
            OracleMalformedResponseError: body is not a valid plan
        """
        payload = build_request_payload(photos, catalog, priority_layouts, keep_layouts)
        logger.info("[oracle] requesting plan for %s photos", len(photos))
        try:
            resp = self._session.post(
                self.url, json=payload, headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise OracleUnavailableError(f"Plan oracle request failed: {exc}") from exc

        if resp.status_code == 429:
            raise OracleRateLimitError("Plan oracle rate limit exceeded")
        if resp.status_code == 402:
            raise OracleQuotaError("Plan oracle credits exhausted")
        if not 200 <= resp.status_code < 300:
            raise OracleUnavailableError(f"Plan oracle returned HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise OracleMalformedResponseError("Plan oracle returned invalid JSON") from exc
        try:
            parsed = OraclePlanResponse.model_validate(body)
        except ValidationError as exc:
            raise OracleMalformedResponseError(f"Plan oracle returned an invalid plan: {exc}") from exc

        logger.info("[oracle] received plan with %s pages", len(parsed.pages))
        return parsed.to_candidate_plan()


def get_default_oracle() -> Optional[PlanOracle]:
    return PlanOracle.from_settings()

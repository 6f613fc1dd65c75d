from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..services.mentions import MentionResolver
from ..services.token_identity import TokenIdentityService
from ..types import DetectMentionsRequest, DetectMentionsResponse
from .resolve import get_service

router = APIRouter(prefix="/mentions")

MAX_TEXTS_PER_REQUEST = 500


@router.post("/detect")
async def detect_mentions_endpoint(
    request: DetectMentionsRequest,
    service: TokenIdentityService = Depends(get_service),
) -> DetectMentionsResponse:
    """Detect token mentions in texts and resolve them"""

    if len(request.texts) > MAX_TEXTS_PER_REQUEST:
        raise HTTPException(status_code=400, detail=f"At most {MAX_TEXTS_PER_REQUEST} texts per request")

    options: Dict[str, Any] = {}
    if request.timeout_seconds is not None:
        options["timeout"] = request.timeout_seconds

    scan = await MentionResolver(service).scan(request.as_mapping(), **options)
    return DetectMentionsResponse(
        rows=[row.to_dict() for row in scan.rows],
        scanned_texts=scan.scanned_texts,
        counts={"tickers": scan.tickers, "names": scan.names, "addresses": scan.addresses},
    )

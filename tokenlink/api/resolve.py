from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ..services.token_identity import QueryMode, TokenIdentityService, get_token_identity_service
from ..types import ResolveRequest, ResolveResponse

router = APIRouter(prefix="/resolve")

MAX_QUERIES_PER_REQUEST = 200


def get_service() -> TokenIdentityService:
    return get_token_identity_service()


async def _resolve(mode: QueryMode, request: ResolveRequest, service: TokenIdentityService) -> ResolveResponse:
    if len(request.queries) > MAX_QUERIES_PER_REQUEST:
        raise HTTPException(
            status_code=400,
            detail=f"At most {MAX_QUERIES_PER_REQUEST} queries per request",
        )

    options: Dict[str, Any] = {}
    if request.timeout_seconds is not None:
        options["timeout"] = request.timeout_seconds

    if mode is QueryMode.TICKER:
        outcomes = await service.explain_tickers(request.queries, **options)
    elif mode is QueryMode.ADDRESS:
        outcomes = await service.explain_addresses(request.queries, **options)
    else:
        outcomes = await service.explain_name_phrases(request.queries, **options)

    return ResolveResponse(
        mode=mode.value,
        results={key: outcome.identity.to_dict() for key, outcome in outcomes.items()},
        explain={key: outcome.to_dict() for key, outcome in outcomes.items()} if request.explain else {},
    )


@router.post("/tickers")
async def resolve_tickers_endpoint(
    request: ResolveRequest,
    service: TokenIdentityService = Depends(get_service),
) -> ResolveResponse:
    """Resolve $TICKER mentions to canonical token addresses"""
    return await _resolve(QueryMode.TICKER, request, service)


@router.post("/addresses")
async def resolve_addresses_endpoint(
    request: ResolveRequest,
    service: TokenIdentityService = Depends(get_service),
) -> ResolveResponse:
    """Resolve contract addresses to display symbols"""
    return await _resolve(QueryMode.ADDRESS, request, service)


@router.post("/names")
async def resolve_names_endpoint(
    request: ResolveRequest,
    service: TokenIdentityService = Depends(get_service),
) -> ResolveResponse:
    """Resolve loose name phrases ("bonk coin") to tokens"""
    return await _resolve(QueryMode.NAME, request, service)

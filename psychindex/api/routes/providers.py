"""Provider routes - validated, paginated provider search."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from psychindex.api.deps import get_provider_service
from psychindex.core.logging import get_logger
from psychindex.schemas.api import ProviderSearchResponse, ValidationErrorResponse
from psychindex.services.provider_service import (
    ProviderSearchService,
    ProviderSearchValidationError,
    parse_search_params,
)

router = APIRouter(prefix="/api/providers", tags=["providers"])
log = get_logger("provider_routes")


@router.get(
    "/search",
    response_model=ProviderSearchResponse,
    responses={400: {"model": ValidationErrorResponse}, 500: {"model": ProviderSearchResponse}},
)
async def search_providers(request: Request, service: ProviderSearchService = Depends(get_provider_service)):
    """
    Search providers by name, location, specialization and availability.

    Query parameters: q, state, city, zip, specialization (comma-separated,
    all must match), gender (M/F), acceptingOnly, telehealthOnly ("true"/"false"),
    limit (1-50, default 20), offset (>= 0, default 0).

    Results are ordered by slug. Invalid parameters return 400 listing every
    failing field; a search that fails or times out returns an empty result
    with an ``error`` message.
    """
    try:
        params = parse_search_params(request.query_params)
    except ProviderSearchValidationError as exc:
        log.info(f"Rejected provider search: {[d.field for d in exc.details]}")
        body = ValidationErrorResponse(error="Invalid query parameters", details=exc.details)
        return JSONResponse(status_code=400, content=body.model_dump())

    result = await service.search(params)
    return JSONResponse(
        status_code=result.status_code,
        content=result.body.model_dump(by_alias=True, exclude_none=True),
    )

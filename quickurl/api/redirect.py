from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from quickurl.schemas.url import ErrorResponse
from quickurl.services.resolution_service import ResolutionService
from quickurl.dependencies import get_resolution_service

router = APIRouter(tags=["redirect"])


@router.get(
    "/{token}",
    response_class=RedirectResponse,
    status_code=status.HTTP_308_PERMANENT_REDIRECT,
    responses={404: {"model": ErrorResponse}, 410: {"model": ErrorResponse}},
)
async def redirect_to_original_url(
    token: str,
    resolution_service: ResolutionService = Depends(get_resolution_service)
):
    """
    Redirect to the original URL.

    The click is counted before the response is sent; expired links
    answer 410 and are not counted.
    """
    original_url = await resolution_service.resolve(token)
    return RedirectResponse(url=original_url, status_code=status.HTTP_308_PERMANENT_REDIRECT)

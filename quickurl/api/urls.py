from fastapi import APIRouter, Depends, Response, status

from quickurl.schemas.url import ErrorResponse, URLCreate, URLListResponse, URLResponse
from quickurl.services.shortening_service import ShorteningService
from quickurl.services.url_service import URLService
from quickurl.dependencies import get_shortening_service, get_url_service

router = APIRouter(tags=["urls"])


@router.post(
    "/shorten",
    response_model=URLResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_short_url(
    url_data: URLCreate,
    shortening_service: ShorteningService = Depends(get_shortening_service)
):
    """Create a new short URL"""
    return await shortening_service.shorten(
        url_data.url, title=url_data.title, expires_at=url_data.expires_at
    )


@router.get("/urls", response_model=URLListResponse)
async def list_urls(url_service: URLService = Depends(get_url_service)):
    """List all short URLs, newest first"""
    return await url_service.list_urls()


@router.get(
    "/urls/{token}",
    response_model=URLResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_url_info(
    token: str,
    url_service: URLService = Depends(get_url_service)
):
    """Get information about a short URL, including its click count"""
    return await url_service.get_url(token)


@router.delete(
    "/urls/{token}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_url(
    token: str,
    url_service: URLService = Depends(get_url_service)
):
    """Delete a short URL"""
    await url_service.delete_url(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

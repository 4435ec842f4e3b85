"""Content API endpoints."""

from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from src.api.schemas import (
    CategoryInfo,
    CategorySchemaResponse,
    ContentItem,
    DeleteItemsRequest,
    DeleteItemsResponse,
    ErrorResponse,
    UpsertItemRequest,
)
from src.core.content.errors import (
    ContentError,
    HookTimeoutError,
    ItemNotFoundError,
    UnknownCategoryError,
    ValidationError,
)
from src.core.logging import get_logger
from src.services.content_service import ContentService

logger = get_logger(__name__)

router = APIRouter(prefix="/content", tags=["content"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def get_content_service(request: Request) -> ContentService:
    """ContentService 인스턴스 반환 (의존성 주입)"""
    service: ContentService = request.app.state.content_service
    return service


def _raise_http(e: ContentError) -> NoReturn:
    """ContentError → HTTPException"""
    if isinstance(e, (UnknownCategoryError, ItemNotFoundError)):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, HookTimeoutError):
        raise HTTPException(status_code=504, detail=str(e))
    logger.error("Content operation failed: %s", e)
    raise HTTPException(status_code=500, detail=str(e))


@router.get("/categories", response_model=list[CategoryInfo])
def list_categories(
    service: ContentService = Depends(get_content_service),
) -> list[dict]:
    """등록된 카테고리 목록 (아이템 수 포함)"""
    return service.get_categories()


@router.get(
    "/categories/{category_id}/schema",
    response_model=CategorySchemaResponse,
    responses=ERROR_RESPONSES,
)
def get_category_schema(
    category_id: str,
    service: ContentService = Depends(get_content_service),
) -> dict:
    schema = service.get_schema(category_id)
    if schema is None:
        raise HTTPException(status_code=404, detail=f"Category not found: {category_id}")
    return schema


@router.get(
    "/categories/{category_id}/items",
    response_model=list[ContentItem],
    responses=ERROR_RESPONSES,
)
def list_category_items(
    category_id: str,
    service: ContentService = Depends(get_content_service),
) -> list[dict]:
    try:
        return service.list_items(category_id)
    except ContentError as e:
        _raise_http(e)


@router.post(
    "/categories/{category_id}/items",
    response_model=ContentItem,
    status_code=201,
    responses=ERROR_RESPONSES,
)
async def create_category_item(
    category_id: str,
    request: UpsertItemRequest,
    service: ContentService = Depends(get_content_service),
) -> dict:
    """
    아이템 생성

    카테고리 훅(computeFormData/Metadata/PreviewText)을 거쳐 저장하고
    새 id(`<prefix>-<6자리>`)를 부여합니다.
    """
    try:
        return await service.upsert(category_id, request.formData)
    except ContentError as e:
        _raise_http(e)


@router.put(
    "/categories/{category_id}/items/{item_id}",
    response_model=ContentItem,
    responses=ERROR_RESPONSES,
)
async def update_category_item(
    category_id: str,
    item_id: str,
    request: UpsertItemRequest,
    service: ContentService = Depends(get_content_service),
) -> dict:
    """기존 아이템에 얕은 병합 (본문에 없는 필드는 유지)"""
    try:
        return await service.upsert(category_id, request.formData, item_id=item_id)
    except ContentError as e:
        _raise_http(e)


@router.post(
    "/items/delete",
    response_model=DeleteItemsResponse,
    responses=ERROR_RESPONSES,
)
async def delete_items(
    request: DeleteItemsRequest,
    service: ContentService = Depends(get_content_service),
) -> DeleteItemsResponse:
    try:
        deleted = await service.delete_items(request.ids)
    except ContentError as e:
        _raise_http(e)
    return DeleteItemsResponse(success=True, deleted=deleted)


@router.get("/items", response_model=list[ContentItem], responses=ERROR_RESPONSES)
def find_items_by_tag(
    tag: Optional[str] = Query(None, description="metadata 태그"),
    service: ContentService = Depends(get_content_service),
) -> list[dict]:
    if tag is None:
        raise HTTPException(status_code=400, detail="Query parameter 'tag' is required")
    try:
        return service.get_by_metadata_tag(tag)
    except ContentError as e:
        _raise_http(e)


@router.get("/items/{item_id}", response_model=ContentItem, responses=ERROR_RESPONSES)
def get_item(
    item_id: str,
    service: ContentService = Depends(get_content_service),
) -> dict:
    try:
        item = service.get_by_id(item_id)
    except ContentError as e:
        _raise_http(e)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")
    return item

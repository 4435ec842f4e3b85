"""API request/response schemas."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# === Request Schemas ===


class UpsertItemRequest(BaseModel):
    """아이템 생성/갱신 요청"""

    formData: Any = Field(..., description="제출된 폼 데이터 (객체)")


class DeleteItemsRequest(BaseModel):
    """아이템 삭제 요청"""

    ids: Any = Field(..., description="삭제할 아이템 id 배열")


# === Response Schemas ===


class CategoryInfo(BaseModel):
    """카테고리 요약"""

    id: str
    title: str
    description: Optional[str] = None
    count: int


class CategorySchemaResponse(BaseModel):
    """카테고리 스키마"""

    json_schema: dict[str, Any] = Field(..., alias="json")
    ui: Optional[dict[str, Any]] = None
    title: str
    description: Optional[str] = None
    ummBloc: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class ContentItem(BaseModel):
    """외부 형태의 콘텐츠 아이템"""

    id: str
    categoryId: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    formData: Optional[dict[str, Any]] = None
    metadata: list[str] = []
    previewText: Optional[str] = None
    createdBy: Optional[str] = None
    createdOn: Optional[str] = None


class DeleteItemsResponse(BaseModel):
    """삭제 결과"""

    success: bool
    deleted: int


class ErrorResponse(BaseModel):
    """에러 응답"""

    success: bool = False
    error: str
    detail: Optional[str] = None

"""콘텐츠 도메인 모델 (DB 무관)"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

# 훅은 동기/비동기 모두 허용. 입력은 제출된 formData.
Hook = Callable[[dict], Union[Any, Awaitable[Any]]]

# 폼 정의 파일의 훅 슬롯 이름 → CategoryHooks 필드
HOOK_SLOTS: dict[str, str] = {
    "computeFormData": "compute_form_data",
    "computeMetadata": "compute_metadata",
    "computePreviewText": "compute_preview_text",
}

REQUIRED_FIELDS: tuple[str, ...] = ("id", "title", "jsonSchema")

DEFAULT_PREVIEW_TEXT = "No preview"


@dataclass(frozen=True)
class CategoryHooks:
    """카테고리별 파생 로직 (capability set). 모두 선택."""

    compute_form_data: Optional[Hook] = None
    compute_metadata: Optional[Hook] = None
    compute_preview_text: Optional[Hook] = None


@dataclass(frozen=True)
class Category:
    """콘텐츠 카테고리 — 불변. 폼 정의 파일에서 로드."""

    id: str  # 소문자, 전역 유일
    title: str
    json_schema: dict[str, Any]
    description: Optional[str] = None
    ui_schema: Optional[dict[str, Any]] = None
    umm_bloc: Optional[str] = None  # 생성 id 접두사 (예: "#!trivia")
    hooks: CategoryHooks = field(default_factory=CategoryHooks)
    source: Optional[str] = None  # "faq.form.json"

    @property
    def id_prefix(self) -> str:
        """생성 item id의 접두사. 선행 '#' 제거."""
        prefix = self.umm_bloc or self.id
        return prefix[1:] if prefix.startswith("#") else prefix

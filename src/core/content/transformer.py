"""내부 아이템 → 외부 노출 형태 변환 (순수 함수)"""

from __future__ import annotations

from typing import Iterable, Optional


def to_external(item: Optional[dict]) -> Optional[dict]:
    """None이면 None. 빈 metadata 항목 제거, created_* 필드 이름 변환.

    입력은 변경하지 않는다.
    """
    if item is None:
        return None

    metadata = [m for m in item.get("metadata") or [] if isinstance(m, str) and len(m) > 0]

    return {
        "id": item.get("id"),
        "data": item.get("data"),
        "formData": item.get("formData"),
        "categoryId": item.get("categoryId"),
        "previewText": item.get("previewText"),
        "metadata": metadata,
        "createdBy": item.get("created_by"),
        "createdOn": item.get("created_on"),
    }


def to_external_many(items: Iterable[Optional[dict]]) -> list[dict]:
    return [ext for ext in (to_external(i) for i in items) if ext is not None]

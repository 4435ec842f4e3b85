"""기본 제공 훅 — 어떤 폼 정의에서든 이름으로 참조 가능"""

from __future__ import annotations

from typing import Any

from src.core.content.hooks import HookRegistry

PREVIEW_MAX_LENGTH = 120
PREVIEW_FIELDS: tuple[str, ...] = ("title", "question", "text", "name")


def preview_from_text_fields(form_data: dict) -> str | None:
    """title/question/text/name 중 처음 나오는 비어있지 않은 값의 첫 줄."""
    for key in PREVIEW_FIELDS:
        value = form_data.get(key)
        if isinstance(value, str) and value.strip():
            line = value.strip().splitlines()[0]
            if len(line) > PREVIEW_MAX_LENGTH:
                line = line[: PREVIEW_MAX_LENGTH - 3] + "..."
            return line
    return None


def metadata_from_tags(form_data: dict) -> list[str]:
    """formData의 "tags"를 metadata로 사용.

    리스트 또는 쉼표 구분 문자열을 받는다. 공백은 제거, 빈 값은 버린다.
    """
    raw: Any = form_data.get("tags", [])
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, list):
        return []
    return [str(tag).strip() for tag in raw if str(tag).strip()]


def data_without_empty_fields(form_data: dict) -> dict:
    """None/빈 문자열 값을 뺀 얕은 복사본."""
    return {k: v for k, v in form_data.items() if v is not None and v != ""}


BUILTIN_HOOKS = {
    "builtin.preview_from_text_fields": preview_from_text_fields,
    "builtin.metadata_from_tags": metadata_from_tags,
    "builtin.data_without_empty_fields": data_without_empty_fields,
}


def register_builtin_hooks(registry: HookRegistry) -> int:
    """기본 훅을 저장소에 등록. 반환: 등록 수."""
    for name, fn in BUILTIN_HOOKS.items():
        registry.register(name, fn)
    return len(BUILTIN_HOOKS)

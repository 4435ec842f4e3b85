"""카테고리 로더 — 폼 정의 파일 탐색, 검증, 등록"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from src.core.content.errors import (
    ContentError,
    DuplicateCategoryError,
    ValidationError,
)
from src.core.content.hooks import HookRegistry
from src.core.content.models import HOOK_SLOTS, REQUIRED_FIELDS, Category, CategoryHooks
from src.core.content.store import CategoryDataStore
from src.core.logging import get_logger

logger = get_logger(__name__)

FORM_FILE_SUFFIX = ".form.json"
DATA_FILE_SUFFIX = ".json"

STRING_FIELDS: tuple[str, ...] = ("title", "description", "ummBloc")
OBJECT_FIELDS: tuple[str, ...] = ("jsonSchema", "uiSchema")


def data_file_name(form_file: str) -> str:
    """정의 파일 이름 → 데이터 파일 이름 (faq/trivia.form.json → faq/trivia.json)"""
    if not form_file.endswith(FORM_FILE_SUFFIX):
        raise ValueError(f"Not a form definition file: {form_file}")
    return form_file[: -len(FORM_FILE_SUFFIX)] + DATA_FILE_SUFFIX


class CategoryRegistry:
    """등록된 카테고리. 순서 있는 리스트 + id 매핑."""

    def __init__(self) -> None:
        self._categories: list[Category] = []
        self._by_id: dict[str, Category] = {}

    def register(self, category: Category) -> Category:
        """id는 소문자여야 하며 중복 등록은 DuplicateCategoryError."""
        if category.id != category.id.lower():
            raise ValidationError(f"Category id must be lowercase: {category.id}")
        if category.id in self._by_id:
            raise DuplicateCategoryError(f"There is already a form with id={category.id}")
        self._by_id[category.id] = category
        self._categories.append(category)
        return category

    def get(self, category_id: Optional[str]) -> Optional[Category]:
        """O(1) 조회. 대소문자 무시. 없으면 None."""
        if not isinstance(category_id, str):
            return None
        return self._by_id.get(category_id.lower())

    def get_all(self) -> list[Category]:
        return list(self._categories)

    def count(self) -> int:
        return len(self._categories)

    def __contains__(self, category_id: object) -> bool:
        return self.get(category_id) is not None  # type: ignore[arg-type]


class CategoryLoader:
    """폼 디렉터리 → CategoryRegistry + CategoryDataStore 하이드레이션."""

    def __init__(
        self,
        registry: CategoryRegistry,
        hooks: HookRegistry,
        store: CategoryDataStore,
        forms_dir: str | Path,
    ) -> None:
        self._registry = registry
        self._hooks = hooks
        self._store = store
        self._forms_dir = Path(forms_dir)

    def load(self, source: dict[str, Any], source_name: str = "?") -> Category:
        """정의 하나를 검증하고 등록.

        필수 필드(id, title, jsonSchema) 누락 시 ValidationError,
        같은 id(소문자 기준)가 있으면 DuplicateCategoryError.
        """
        if not isinstance(source, dict):
            raise ValidationError(f"Content Form file must contain an object: {source_name}")

        for name in REQUIRED_FIELDS:
            if source.get(name) is None:
                raise ValidationError(
                    f"{name} is required but missing in Content Form file: {source_name}"
                )

        raw_id = source["id"]
        if not isinstance(raw_id, str) or not raw_id.strip():
            raise ValidationError(f"id must be a non-empty string in Content Form file: {source_name}")

        for name in STRING_FIELDS:
            if source.get(name) is not None and not isinstance(source[name], str):
                raise ValidationError(f"{name} must be a string in Content Form file: {source_name}")
        for name in OBJECT_FIELDS:
            if source.get(name) is not None and not isinstance(source[name], dict):
                raise ValidationError(f"{name} must be an object in Content Form file: {source_name}")

        category = Category(
            id=raw_id.strip().lower(),
            title=source["title"],
            json_schema=source["jsonSchema"],
            description=source.get("description"),
            ui_schema=source.get("uiSchema"),
            umm_bloc=source.get("ummBloc"),
            hooks=self._resolve_hooks(source.get("hooks"), source_name),
            source=source_name,
        )
        return self._registry.register(category)

    def _resolve_hooks(self, declared: Any, source_name: str) -> CategoryHooks:
        if declared is None:
            return CategoryHooks()
        if not isinstance(declared, dict):
            raise ValidationError(f"hooks must be an object in Content Form file: {source_name}")

        resolved = {}
        for slot, hook_name in declared.items():
            field_name = HOOK_SLOTS.get(slot)
            if field_name is None:
                raise ValidationError(f'Unknown hook slot "{slot}" in Content Form file: {source_name}')
            resolved[field_name] = self._hooks.resolve(hook_name, source_name)
        return CategoryHooks(**resolved)

    def load_file(self, form_file: str) -> Category:
        """forms_dir 기준 상대 경로의 정의 파일 로드."""
        path = self._forms_dir / form_file
        with path.open("r", encoding="utf-8") as f:
            source = json.load(f)
        return self.load(source, form_file)

    def discover(self) -> list[str]:
        """forms_dir 아래의 정의 파일 (상대 경로, 정렬)."""
        return sorted(
            p.relative_to(self._forms_dir).as_posix()
            for p in self._forms_dir.glob(f"**/*{FORM_FILE_SUFFIX}")
            if p.is_file()
        )

    def init(self) -> int:
        """전체 로드. 반환: 로드된 카테고리 수.

        디렉터리가 없으면 빈 레지스트리로 끝난다.
        정의 하나의 실패는 경고만 남기고 나머지를 계속 로드한다.
        """
        if not self._forms_dir.is_dir():
            logger.info("Forms directory %s does not exist, no categories loaded", self._forms_dir)
            return 0

        count = 0
        for form_file in self.discover():
            try:
                category = self.load_file(form_file)
            except (ContentError, OSError, ValueError, TypeError) as e:
                logger.warning("[Content Manager] Could not load Form: %s (%s)", form_file, e)
                continue
            self._store.hydrate(category, data_file_name(form_file))
            count += 1

        logger.info("Loaded %d content categories from %s", count, self._forms_dir)
        return count

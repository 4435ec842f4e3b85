"""콘텐츠 Service — 카테고리 훅 실행, 검증, 인덱스 변경, 영속화

규칙:
- 변경 순서는 훅 → 검증 → 인덱스 변경 → flush
- 같은 카테고리의 변경은 카테고리별 asyncio.Lock으로 직렬화
- 훅/검증 실패 시 인덱스와 파일은 그대로
- flush 실패 시 인덱스를 변경 전 상태로 되돌린다
- DB 미러 갱신은 EventBus 경유 (content_items_changed)
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Optional

from src.core.content.errors import (
    HookTimeoutError,
    InvalidArgumentError,
    InvalidHookResultError,
    UnknownCategoryError,
)
from src.core.content.loader import CategoryRegistry
from src.core.content.models import DEFAULT_PREVIEW_TEXT, Category, Hook
from src.core.content.store import CategoryDataStore
from src.core.content.transformer import to_external, to_external_many
from src.core.event_bus import ContentEvent, EventBus
from src.core.event_types import EventTypes
from src.core.logging import get_logger
from src.services.record_index import ContentRecordIndex

logger = get_logger(__name__)

SHORT_UID_LENGTH = 6
MAX_ID_ATTEMPTS = 10


def get_short_uid() -> str:
    """uuid4 hex 앞 6자리"""
    return uuid.uuid4().hex[:SHORT_UID_LENGTH]


def now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ContentService:
    """콘텐츠 카테고리/아이템 CRUD"""

    def __init__(
        self,
        registry: CategoryRegistry,
        store: CategoryDataStore,
        event_bus: EventBus,
        record_index: ContentRecordIndex,
        hook_timeout: Optional[float] = 5.0,
        author: str = "admin",
    ):
        self._registry = registry
        self._store = store
        self._bus = event_bus
        self._records = record_index
        self._hook_timeout = hook_timeout
        self._author = author
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # === 카테고리 ===

    def get_categories(self) -> list[dict[str, Any]]:
        """등록 순서대로 카테고리 요약 + 아이템 수."""
        return [
            {
                "id": category.id,
                "title": category.title,
                "description": category.description,
                "count": self._store.count(category.id) if self._store.has_category(category.id) else 0,
            }
            for category in self._registry.get_all()
        ]

    def get_schema(self, category_id: Optional[str]) -> Optional[dict[str, Any]]:
        """미등록 id는 None (호출자가 id로 탐색하므로 에러 아님)."""
        category = self._registry.get(category_id)
        if category is None:
            return None
        return {
            "json": category.json_schema,
            "ui": category.ui_schema,
            "title": category.title,
            "description": category.description,
            "ummBloc": category.umm_bloc,
        }

    # === 아이템 조회 ===

    def list_items(self, category_id: Optional[str]) -> list[dict]:
        category = self._require_category(category_id)
        return to_external_many(self._store.items(category.id))

    def get_by_id(self, item_id: str) -> Optional[dict]:
        if not isinstance(item_id, str) or not item_id:
            raise InvalidArgumentError("Expected a non-empty item id")
        return to_external(self._records.get(item_id))

    def get_by_metadata_tag(self, tag: str) -> list[dict]:
        return to_external_many(self._records.find_by_metadata(tag))

    # === 생성 / 갱신 ===

    async def upsert(
        self,
        category_id: Optional[str],
        form_data: Any,
        item_id: Optional[str] = None,
    ) -> dict:
        """item_id가 있으면 기존 아이템에 얕은 병합, 없으면 새 id로 생성.

        반환: 외부 형태의 아이템. 반환 시점에 파일은 이미 다시 쓰여 있다.
        """
        category = self._require_category(category_id)

        if form_data is None or not isinstance(form_data, dict):
            raise InvalidArgumentError('"formData" must be a valid object')
        if item_id is not None and (not isinstance(item_id, str) or not item_id):
            raise InvalidArgumentError('"itemId" must be a non-empty string')

        async with self._locks[category.id]:
            body = await self._build_body(category, form_data)

            snapshot = self._store.snapshot(category.id)
            if item_id:
                item = self._store.update(category.id, item_id, body)
            else:
                body["id"] = self._new_item_id(category)
                body["categoryId"] = category.id
                item = self._store.insert(category.id, body)

            try:
                self._store.flush(category.id)
            except Exception:
                self._store.restore(category.id, snapshot)
                logger.exception("Flush failed for %s, index rolled back", category.id)
                raise

            result = to_external(item)

        self._emit_changed(category.id)
        logger.info(
            "%s content item %s in %s",
            "Updated" if item_id else "Created",
            result["id"],
            category.id,
        )
        return result

    async def _build_body(self, category: Category, form_data: dict) -> dict:
        """훅 실행 + 결과 검증. 인덱스는 건드리지 않는다."""
        hooks = category.hooks
        data = await self._call_hook(hooks.compute_form_data, form_data, category) or form_data
        metadata = await self._call_hook(hooks.compute_metadata, form_data, category) or []
        preview_text = (
            await self._call_hook(hooks.compute_preview_text, form_data, category)
            or DEFAULT_PREVIEW_TEXT
        )

        if not isinstance(metadata, list):
            raise InvalidHookResultError("computeMetadata must return an array of strings")
        if not isinstance(preview_text, str):
            raise InvalidHookResultError("computePreviewText must return a string")
        if data is None or not isinstance(data, dict):
            raise InvalidHookResultError("computeFormData must return a valid object")

        return {
            "data": data,
            "formData": form_data,
            "metadata": metadata,
            "previewText": preview_text,
            "created_by": self._author,
            "created_on": now(),
        }

    async def _call_hook(self, hook: Optional[Hook], form_data: dict, category: Category) -> Any:
        if hook is None:
            return None
        result = hook(form_data)
        if not inspect.isawaitable(result):
            return result
        try:
            return await asyncio.wait_for(result, timeout=self._hook_timeout)
        except asyncio.TimeoutError:
            raise HookTimeoutError(
                f"Hook {getattr(hook, '__name__', hook)!r} of {category.id} "
                f"did not complete within {self._hook_timeout}s"
            ) from None

    def _new_item_id(self, category: Category) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = f"{category.id_prefix}-{get_short_uid()}"
            if not self._store.contains(category.id, candidate):
                return candidate
        raise RuntimeError(f"Could not generate a unique item id for {category.id}")

    # === 삭제 ===

    async def delete_items(self, ids: Any) -> int:
        """id 목록의 아이템 삭제. 반환: 삭제된 수.

        id는 카테고리 네임스페이스가 없으므로 소유 카테고리를 먼저 찾는다.
        영향받은 카테고리마다 한 번씩 flush.
        """
        if not isinstance(ids, list) or any(not isinstance(i, str) for i in ids):
            raise InvalidArgumentError("Expected an array of Ids to delete")

        by_category: dict[str, list[str]] = defaultdict(list)
        for item_id in dict.fromkeys(ids):
            owners = self._store.categories_containing(item_id)
            if not owners:
                logger.debug("Delete skipped, unknown item id: %s", item_id)
            for category_id in owners:
                by_category[category_id].append(item_id)

        removed = 0
        for category_id, item_ids in by_category.items():
            async with self._locks[category_id]:
                snapshot = self._store.snapshot(category_id)
                count = sum(1 for i in item_ids if self._store.remove(category_id, i))
                if count == 0:
                    continue
                try:
                    self._store.flush(category_id)
                except Exception:
                    self._store.restore(category_id, snapshot)
                    logger.exception("Flush failed for %s, index rolled back", category_id)
                    raise
            removed += count
            self._emit_changed(category_id)

        logger.info("Deleted %d content items", removed)
        return removed

    # === 내부 헬퍼 ===

    def _require_category(self, category_id: Optional[str]) -> Category:
        category = self._registry.get(category_id)
        if category is None or not self._store.has_category(category.id):
            raise UnknownCategoryError(category_id.lower() if isinstance(category_id, str) else category_id)
        return category

    def _emit_changed(self, category_id: str) -> None:
        self._bus.emit(
            ContentEvent(
                event_type=EventTypes.CONTENT_ITEMS_CHANGED,
                data={"category_id": category_id},
                source="content_service",
            )
        )

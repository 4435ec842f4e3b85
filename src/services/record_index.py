"""콘텐츠 레코드 인덱스 — 파일 인덱스의 DB 조회용 미러

파일 인덱스가 정본이다. content_items 테이블은 카테고리 단위로 통째로
교체되는 파생 데이터이며, id 조회와 metadata 태그 검색에만 쓰인다.
세션은 호출마다 새로 연다 (요청 스레드와 이벤트 루프가 동시에 사용).
동기화에 실패한 카테고리는 stale로 표시하고 다음 조회 전에 다시 동기화한다.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from src.core.content.errors import InvalidArgumentError
from src.core.content.store import CategoryDataStore
from src.core.event_bus import ContentEvent, EventBus
from src.core.event_types import EventTypes
from src.core.logging import get_logger
from src.db.models import ContentItemModel

logger = get_logger(__name__)

METADATA_DELIMITER = "|"
LIKE_ESCAPE = "\\"


def encode_metadata(metadata: list) -> str:
    """["a", "b"] → "|a|b|". 구분자를 포함하거나 빈 항목은 제외."""
    tags = [
        m
        for m in metadata or []
        if isinstance(m, str) and m and METADATA_DELIMITER not in m
    ]
    return METADATA_DELIMITER + METADATA_DELIMITER.join(tags) + METADATA_DELIMITER


def decode_metadata(text: Optional[str]) -> list[str]:
    return [m for m in (text or "").split(METADATA_DELIMITER) if m]


def _escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class ContentRecordIndex:
    """content_items 테이블 동기화 + 조회"""

    def __init__(self, session_factory: sessionmaker, event_bus: EventBus, store: CategoryDataStore):
        self._session_factory = session_factory
        self._bus = event_bus
        self._store = store
        self._stale: set[str] = set()
        self._register_event_handlers()

    def _register_event_handlers(self) -> None:
        """EventBus 구독"""
        self._bus.subscribe(EventTypes.CONTENT_ITEMS_CHANGED, self._on_items_changed)

    def _on_items_changed(self, event: ContentEvent) -> None:
        category_id = event.data["category_id"]
        try:
            self.sync_category(category_id)
        except SQLAlchemyError:
            self._stale.add(category_id)
            raise

    @property
    def stale_categories(self) -> set[str]:
        return set(self._stale)

    # === 동기화 ===

    def sync_category(self, category_id: str) -> int:
        """카테고리의 행 전체를 현재 파일 인덱스로 교체. 반환: 행 수."""
        items = self._store.items(category_id)
        with self._session_factory() as db, db.begin():
            existing = db.scalars(
                select(ContentItemModel).where(ContentItemModel.category_id == category_id)
            ).all()
            for row in existing:
                db.delete(row)
            db.flush()
            for item in items:
                db.add(self._item_to_orm(category_id, item))
        self._stale.discard(category_id)

        logger.debug("Synced %d content records for %s", len(items), category_id)
        return len(items)

    def sync_all(self) -> int:
        """서버 시작 시 호출. 모든 카테고리 동기화."""
        total = 0
        for category_id in self._store.category_ids():
            total += self.sync_category(category_id)
        logger.info("Synced %d content records to DB", total)
        return total

    # === 조회 ===

    def get(self, item_id: str) -> Optional[dict]:
        """id로 한 건 조회. 없으면 None."""
        self._refresh_stale()
        with self._session_factory() as db:
            row = db.scalars(
                select(ContentItemModel)
                .where(ContentItemModel.id == item_id)
                .order_by(ContentItemModel.category_id)
                .limit(1)
            ).first()
            return None if row is None else self._orm_to_item(row)

    def find_by_metadata(self, tag: str) -> list[dict]:
        """metadata에 tag가 정확히 들어있는 아이템 목록."""
        if not isinstance(tag, str) or not tag or METADATA_DELIMITER in tag:
            raise InvalidArgumentError(
                f'Metadata tag must be a non-empty string without "{METADATA_DELIMITER}"'
            )
        pattern = f"%{METADATA_DELIMITER}{_escape_like(tag)}{METADATA_DELIMITER}%"
        self._refresh_stale()
        with self._session_factory() as db:
            rows = db.scalars(
                select(ContentItemModel)
                .where(ContentItemModel.metadata_text.like(pattern, escape=LIKE_ESCAPE))
                .order_by(ContentItemModel.category_id, ContentItemModel.id)
            ).all()
            return [self._orm_to_item(r) for r in rows]

    def _refresh_stale(self) -> None:
        """이전 동기화에 실패한 카테고리를 조회 전에 다시 동기화. 실패하면 예외 전파."""
        for category_id in sorted(self._stale):
            logger.info("Resyncing stale content records for %s", category_id)
            self.sync_category(category_id)

    # === 변환 헬퍼 ===

    @staticmethod
    def _item_to_orm(category_id: str, item: dict) -> ContentItemModel:
        return ContentItemModel(
            category_id=category_id,
            id=item["id"],
            data=item.get("data"),
            form_data=item.get("formData"),
            metadata_text=encode_metadata(item.get("metadata")),
            preview_text=item.get("previewText"),
            created_by=item.get("created_by"),
            created_on=item.get("created_on"),
        )

    @staticmethod
    def _orm_to_item(orm: ContentItemModel) -> dict:
        return {
            "id": orm.id,
            "categoryId": orm.category_id,
            "data": orm.data,
            "formData": orm.form_data,
            "metadata": decode_metadata(orm.metadata_text),
            "previewText": orm.preview_text,
            "created_by": orm.created_by,
            "created_on": orm.created_on,
        }

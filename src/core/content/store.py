"""카테고리별 아이템 저장소 — 메모리 인덱스 + JSON 파일 영속화

인덱스는 카테고리마다 두 개의 뷰를 가진다.
- 순서 있는 리스트 (목록/직렬화 순서)
- id → item 매핑 (O(1) 조회/갱신)
두 뷰는 항상 같은 item 객체 집합을 참조해야 한다.
파일은 영속 사본, 인덱스는 작업 사본. 변경 후 flush()까지 끝나야 영속.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from src.core.content.errors import (
    ItemNotFoundError,
    MalformedDataFileError,
    UnknownCategoryError,
)
from src.core.content.models import Category
from src.core.logging import get_logger

logger = get_logger(__name__)


class CategoryDataStore:
    """카테고리 아이템 인덱스와 데이터 파일의 유일한 소유자."""

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        self._items: dict[str, list[dict]] = {}
        self._items_by_id: dict[str, dict[str, dict]] = {}
        self._files: dict[str, str] = {}
        # id가 없거나 중복된 원본 항목. 인덱스에는 없지만 flush 시 그대로 다시 쓴다.
        self._unindexed: dict[str, list] = {}

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # === 로드 / 저장 ===

    def hydrate(self, category: Category, file_name: str) -> int:
        """데이터 파일에서 인덱스 구성. 반환: 로드된 아이템 수.

        파일이 없으면 빈 카테고리로 시작한다 (에러 아님).
        읽기/파싱 실패나 배열이 아닌 내용은 경고만 남기고 빈 인덱스로 둔다.
        """
        path = self._data_dir / file_name
        raw_items: list = []
        if path.exists():
            try:
                raw_items = self._read_array(path, file_name)
            except (OSError, ValueError, MalformedDataFileError) as e:
                logger.warning("Error reading data from %s: %s", file_name, e)

        items: list[dict] = []
        by_id: dict[str, dict] = {}
        unindexed: list = []
        for raw in raw_items:
            item_id = raw.get("id") if isinstance(raw, dict) else None
            if not isinstance(item_id, str) or not item_id:
                logger.warning("Entry without id in %s kept unindexed", file_name)
                unindexed.append(raw)
                continue
            if item_id in by_id:
                logger.warning("Duplicate item id %s in %s kept unindexed", item_id, file_name)
                unindexed.append(raw)
                continue
            items.append(raw)
            by_id[item_id] = raw

        self._items[category.id] = items
        self._items_by_id[category.id] = by_id
        self._files[category.id] = file_name
        self._unindexed[category.id] = unindexed

        logger.info("Loaded %d items for category %s from %s", len(items), category.id, file_name)
        return len(items)

    @staticmethod
    def _read_array(path: Path, file_name: str) -> list:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise MalformedDataFileError(f"{file_name} expected to contain array, contents ignored")
        return data

    def flush(self, category_id: str) -> Path:
        """현재 인덱스로 데이터 파일 전체를 다시 쓴다.

        같은 디렉터리의 임시 파일에 쓰고 fsync 후 os.replace로 교체하므로
        호출자는 절반만 쓰인 파일을 볼 수 없다.
        """
        items = self._require(category_id)
        path = self._data_dir / self._files[category_id]
        path.parent.mkdir(parents=True, exist_ok=True)

        payload = json.dumps(items + self._unindexed[category_id], indent=2, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

        logger.debug("Flushed %d items for category %s to %s", len(items), category_id, path)
        return path

    def file_path(self, category_id: str) -> Path:
        self._require(category_id)
        return self._data_dir / self._files[category_id]

    # === 조회 ===

    def has_category(self, category_id: str) -> bool:
        return category_id in self._items

    def category_ids(self) -> list[str]:
        return list(self._items)

    def items(self, category_id: str) -> list[dict]:
        """순서 있는 아이템 리스트 (얕은 복사)."""
        return list(self._require(category_id))

    def get(self, category_id: str, item_id: str) -> Optional[dict]:
        self._require(category_id)
        return self._items_by_id[category_id].get(item_id)

    def count(self, category_id: str) -> int:
        return len(self._require(category_id))

    def contains(self, category_id: str, item_id: str) -> bool:
        self._require(category_id)
        return item_id in self._items_by_id[category_id]

    def categories_containing(self, item_id: str) -> list[str]:
        """item id를 가진 카테고리 목록. id는 카테고리 간 네임스페이스가 없으므로 전체 탐색."""
        return [cid for cid, by_id in self._items_by_id.items() if item_id in by_id]

    # === 변경 (두 뷰에 함께 적용) ===

    def insert(self, category_id: str, item: dict) -> dict:
        items = self._require(category_id)
        item_id = item.get("id")
        if not isinstance(item_id, str) or not item_id:
            raise ValueError("Item must have a non-empty string id")
        by_id = self._items_by_id[category_id]
        if item_id in by_id:
            raise ValueError(f"Item id already exists in {category_id}: {item_id}")
        items.append(item)
        by_id[item_id] = item
        return item

    def update(self, category_id: str, item_id: str, body: dict) -> dict:
        """기존 아이템에 얕은 병합. body에 없는 필드는 유지."""
        self._require(category_id)
        item = self._items_by_id[category_id].get(item_id)
        if item is None:
            raise ItemNotFoundError(category_id, item_id)
        item.update(body)
        return item

    def remove(self, category_id: str, item_id: str) -> bool:
        items = self._require(category_id)
        item = self._items_by_id[category_id].pop(item_id, None)
        if item is None:
            return False
        items[:] = [i for i in items if i is not item]
        return True

    # === 롤백 ===

    def snapshot(self, category_id: str) -> list[dict]:
        """현재 인덱스의 사본. 병합은 얕으므로 아이템별 얕은 복사로 충분."""
        return [dict(item) for item in self._require(category_id)]

    def restore(self, category_id: str, snapshot: list[dict]) -> None:
        self._require(category_id)
        self._items[category_id] = snapshot
        self._items_by_id[category_id] = {item["id"]: item for item in snapshot}

    def _require(self, category_id: str) -> list[dict]:
        items = self._items.get(category_id)
        if items is None:
            raise UnknownCategoryError(category_id)
        return items

"""ContentService 통합 테스트 (임시 디렉터리 + 인메모리 SQLite + EventBus)"""

import asyncio
import json
import re

import pytest

from conftest import make_form, write_form
from src.core.content.errors import (
    HookTimeoutError,
    InvalidArgumentError,
    InvalidHookResultError,
    ItemNotFoundError,
    UnknownCategoryError,
)
from src.core.content.hooks import HookRegistry
from src.core.content.loader import CategoryLoader, CategoryRegistry
from src.core.content.store import CategoryDataStore
from src.core.event_bus import EventBus
from src.core.event_types import EventTypes
from src.services.content_service import ContentService
from src.services.record_index import ContentRecordIndex


def _register_hooks(hooks: HookRegistry) -> None:
    hooks.register("test.upper", lambda fd: {k: str(v).upper() for k, v in fd.items()})
    hooks.register("test.tags", lambda fd: list(fd.get("tags", [])))
    hooks.register("test.preview", lambda fd: f"Q: {fd.get('q', '')}")
    hooks.register("test.bad_metadata", lambda fd: "not-a-list")
    hooks.register("test.bad_preview", lambda fd: 42)
    hooks.register("test.bad_data", lambda fd: ["not", "a", "dict"])

    async def slow(fd):
        await asyncio.sleep(5)
        return []

    async def async_tags(fd):
        await asyncio.sleep(0)
        return ["async"]

    hooks.register("test.slow", slow)
    hooks.register("test.async_tags", async_tags)


@pytest.fixture()
def setup(tmp_path, session_factory):
    """faq / trivia / derived / broken_* 카테고리가 로드된 ContentService"""
    forms_dir = tmp_path / "forms"
    data_dir = tmp_path / "forms_data"
    write_form(forms_dir, "faq.form.json", make_form("faq"))
    write_form(forms_dir, "trivia.form.json", make_form("trivia", ummBloc="#!trivia"))
    write_form(
        forms_dir,
        "derived.form.json",
        make_form(
            "derived",
            hooks={
                "computeFormData": "test.upper",
                "computeMetadata": "test.tags",
                "computePreviewText": "test.preview",
            },
        ),
    )
    write_form(forms_dir, "bad_meta.form.json", make_form("bad_meta", hooks={"computeMetadata": "test.bad_metadata"}))
    write_form(forms_dir, "bad_preview.form.json", make_form("bad_preview", hooks={"computePreviewText": "test.bad_preview"}))
    write_form(forms_dir, "bad_data.form.json", make_form("bad_data", hooks={"computeFormData": "test.bad_data"}))
    write_form(forms_dir, "slow.form.json", make_form("slow", hooks={"computeMetadata": "test.slow"}))
    write_form(forms_dir, "asyncmeta.form.json", make_form("asyncmeta", hooks={"computeMetadata": "test.async_tags"}))

    hooks = HookRegistry()
    _register_hooks(hooks)
    registry = CategoryRegistry()
    store = CategoryDataStore(data_dir)
    CategoryLoader(registry, hooks, store, forms_dir).init()

    bus = EventBus()
    record_index = ContentRecordIndex(session_factory, bus, store)
    service = ContentService(registry, store, bus, record_index, hook_timeout=0.05)
    return service, store, bus, data_dir


def _upsert(service, category_id, form_data, item_id=None):
    return asyncio.run(service.upsert(category_id, form_data, item_id=item_id))


class TestCreate:
    def test_generated_id_uses_category_id(self, setup):
        service, _, _, _ = setup
        first = _upsert(service, "faq", {"text": "hello"})
        second = _upsert(service, "faq", {"text": "again"})
        assert re.fullmatch(r"faq-[0-9a-f]{6}", first["id"])
        assert first["id"] != second["id"]

    def test_generated_id_uses_umm_bloc_without_hash(self, setup):
        service, _, _, _ = setup
        item = _upsert(service, "trivia", {"text": "x"})
        assert re.fullmatch(r"!trivia-[0-9a-f]{6}", item["id"])

    def test_category_id_case_insensitive(self, setup):
        service, store, _, _ = setup
        item = _upsert(service, "FAQ", {"text": "x"})
        assert item["categoryId"] == "faq"
        assert store.count("faq") == 1

    def test_defaults_without_hooks(self, setup):
        service, _, _, _ = setup
        item = _upsert(service, "faq", {"text": "hello"})
        assert item["data"] == {"text": "hello"}
        assert item["formData"] == {"text": "hello"}
        assert item["metadata"] == []
        assert item["previewText"] == "No preview"
        assert item["createdBy"] == "admin"
        assert item["createdOn"]

    def test_hooks_applied(self, setup):
        service, _, _, _ = setup
        item = _upsert(service, "derived", {"q": "why", "tags": ["t1", ""]})
        assert item["data"]["q"] == "WHY"
        assert item["formData"] == {"q": "why", "tags": ["t1", ""]}
        assert item["metadata"] == ["t1"]
        assert item["previewText"] == "Q: why"

    def test_async_hook(self, setup):
        service, _, _, _ = setup
        assert _upsert(service, "asyncmeta", {"text": "x"})["metadata"] == ["async"]

    def test_file_written_before_return(self, setup):
        service, _, _, data_dir = setup
        item = _upsert(service, "faq", {"text": "hello"})
        stored = json.loads((data_dir / "faq.json").read_text(encoding="utf-8"))
        assert [i["id"] for i in stored] == [item["id"]]
        assert stored[0]["created_by"] == "admin"

    def test_round_trip_through_reload(self, setup):
        service, store, _, data_dir = setup
        _upsert(service, "derived", {"q": "one", "tags": ["a"]})
        _upsert(service, "derived", {"q": "two"})

        reloaded = CategoryDataStore(data_dir)
        category = service._registry.get("derived")
        reloaded.hydrate(category, "derived.json")
        assert reloaded.items("derived") == store.items("derived")

    def test_emits_changed_event(self, setup):
        service, _, bus, _ = setup
        received = []
        bus.subscribe(EventTypes.CONTENT_ITEMS_CHANGED, lambda e: received.append(e))
        _upsert(service, "faq", {"text": "x"})
        assert [e.data["category_id"] for e in received] == ["faq"]


class TestUpdate:
    def test_shallow_merge_preserves_other_fields(self, setup):
        service, store, _, _ = setup
        created = _upsert(service, "faq", {"text": "v1"})
        store.update("faq", created["id"], {"extra": "kept"})

        updated = _upsert(service, "faq", {"text": "v2"}, item_id=created["id"])
        assert updated["id"] == created["id"]
        assert updated["formData"] == {"text": "v2"}
        assert store.get("faq", created["id"])["extra"] == "kept"
        assert store.count("faq") == 1

    def test_update_missing_item(self, setup):
        service, store, _, data_dir = setup
        with pytest.raises(ItemNotFoundError):
            _upsert(service, "faq", {"text": "x"}, item_id="faq-000000")
        assert store.count("faq") == 0
        assert not (data_dir / "faq.json").exists()

    def test_empty_item_id_rejected(self, setup):
        service, _, _, _ = setup
        with pytest.raises(InvalidArgumentError):
            _upsert(service, "faq", {"text": "x"}, item_id="")


class TestUpsertValidation:
    def test_unknown_category(self, setup):
        service, _, _, _ = setup
        with pytest.raises(UnknownCategoryError):
            _upsert(service, "nope", {"text": "x"})

    @pytest.mark.parametrize("form_data", ["not an object", None, ["a"], 3])
    def test_form_data_must_be_object(self, setup, form_data):
        service, store, _, data_dir = setup
        with pytest.raises(InvalidArgumentError):
            _upsert(service, "faq", form_data)
        assert store.count("faq") == 0
        assert not (data_dir / "faq.json").exists()

    @pytest.mark.parametrize("category_id", ["bad_meta", "bad_preview", "bad_data"])
    def test_bad_hook_result_leaves_no_trace(self, setup, category_id):
        service, store, bus, data_dir = setup
        received = []
        bus.subscribe(EventTypes.CONTENT_ITEMS_CHANGED, lambda e: received.append(e))
        with pytest.raises(InvalidHookResultError):
            _upsert(service, category_id, {"text": "x"})
        assert store.count(category_id) == 0
        assert not (data_dir / f"{category_id}.json").exists()
        assert received == []

    def test_hook_timeout(self, setup):
        service, store, _, data_dir = setup
        with pytest.raises(HookTimeoutError):
            _upsert(service, "slow", {"text": "x"})
        assert store.count("slow") == 0
        assert not (data_dir / "slow.json").exists()

    def test_flush_failure_rolls_back(self, setup, monkeypatch):
        service, store, _, _ = setup
        created = _upsert(service, "faq", {"text": "v1"})

        def fail(category_id):
            raise OSError("disk full")

        monkeypatch.setattr(store, "flush", fail)
        with pytest.raises(OSError):
            _upsert(service, "faq", {"text": "v2"})
        with pytest.raises(OSError):
            _upsert(service, "faq", {"text": "v3"}, item_id=created["id"])

        assert store.count("faq") == 1
        assert store.get("faq", created["id"])["formData"] == {"text": "v1"}


class TestConcurrency:
    def test_concurrent_updates_serialized(self, setup, monkeypatch):
        """같은 카테고리의 upsert는 훅 실행 중에도 겹치지 않는다."""
        service, store, _, _ = setup
        created = _upsert(service, "faq", {"text": "v0"})
        category = service._registry.get("faq")
        active = 0
        peak = 0

        async def tracking_hook(fd):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return fd

        hooks = category.hooks.__class__(compute_form_data=tracking_hook)
        object.__setattr__(category, "hooks", hooks)

        async def run():
            await asyncio.gather(
                *(service.upsert("faq", {"text": f"v{i}"}, item_id=created["id"]) for i in range(5))
            )

        asyncio.run(run())
        assert peak == 1
        assert store.count("faq") == 1


class TestQueries:
    def test_list_empty_category(self, setup):
        service, _, _, _ = setup
        assert service.list_items("faq") == []

    def test_list_in_insertion_order(self, setup):
        service, _, _, _ = setup
        ids = [_upsert(service, "faq", {"text": str(i)})["id"] for i in range(3)]
        assert [i["id"] for i in service.list_items("faq")] == ids

    def test_list_unknown_category(self, setup):
        service, _, _, _ = setup
        with pytest.raises(UnknownCategoryError):
            service.list_items("nope")

    def test_get_categories_counts(self, setup):
        service, _, _, _ = setup
        _upsert(service, "faq", {"text": "x"})
        _upsert(service, "faq", {"text": "y"})
        categories = {c["id"]: c for c in service.get_categories()}
        assert categories["faq"] == {"id": "faq", "title": "Faq", "description": None, "count": 2}
        assert categories["trivia"]["count"] == 0

    def test_get_schema(self, setup):
        service, _, _, _ = setup
        schema = service.get_schema("trivia")
        assert schema == {
            "json": {"type": "object", "properties": {"text": {"type": "string"}}},
            "ui": None,
            "title": "Trivia",
            "description": None,
            "ummBloc": "#!trivia",
        }

    def test_get_schema_unknown(self, setup):
        service, _, _, _ = setup
        assert service.get_schema("nope") is None
        assert service.get_schema(None) is None

    def test_get_by_id_and_tag(self, setup):
        service, _, _, _ = setup
        item = _upsert(service, "derived", {"q": "one", "tags": ["alpha", "beta"]})
        _upsert(service, "derived", {"q": "two", "tags": ["beta"]})

        assert service.get_by_id(item["id"])["previewText"] == "Q: one"
        assert service.get_by_id("derived-ffffff") is None
        assert [i["id"] for i in service.get_by_metadata_tag("alpha")] == [item["id"]]
        assert len(service.get_by_metadata_tag("beta")) == 2
        assert service.get_by_metadata_tag("alp") == []


class TestDelete:
    def test_rejects_bad_input(self, setup):
        service, _, _, _ = setup
        for bad in ("faq-1", None, ["ok", 3]):
            with pytest.raises(InvalidArgumentError):
                asyncio.run(service.delete_items(bad))

    def test_deletes_across_categories(self, setup):
        service, store, _, data_dir = setup
        faq = _upsert(service, "faq", {"text": "x"})
        keep = _upsert(service, "faq", {"text": "y"})
        trivia = _upsert(service, "trivia", {"text": "z"})

        removed = asyncio.run(service.delete_items([faq["id"], trivia["id"], "unknown-id"]))
        assert removed == 2
        assert [i["id"] for i in service.list_items("faq")] == [keep["id"]]
        assert service.list_items("trivia") == []
        stored = json.loads((data_dir / "faq.json").read_text(encoding="utf-8"))
        assert [i["id"] for i in stored] == [keep["id"]]
        assert service.get_by_id(faq["id"]) is None

    def test_empty_list(self, setup):
        service, _, _, _ = setup
        assert asyncio.run(service.delete_items([])) == 0

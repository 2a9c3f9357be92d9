import unittest
from unittest.mock import MagicMock

from backend.content_store import (
    ContentRegistry,
    ContentSnapshot,
    ContentStore,
    ContentSyncStore,
    repair_ids,
)
from backend.domains import (
    MOOD_TYPES,
    ONBOARDING_QUESTIONS,
    PROGRAMS,
    ContentDomain,
)
from backend.exceptions import (
    ConfigurationError,
    SourceUnavailableError,
    TransportError,
)
from backend.sources import InMemoryDocumentSource
from backend.sync_metadata import InMemorySyncMetadataSink

THINGS = ContentDomain(
    name="things",
    label="things",
    items_key="items",
    file_id_setting="THINGS_FILE_ID",
    extras={"categories": dict},
)

MOODS_DOCUMENT = {
    "moodTypes": [
        {
            "id": "happy",
            "name": {"en": "Happy", "ru": "Счастливый"},
            "description": "Feeling great",
            "score": 9,
            "category": "positive",
        },
        {
            "id": "fine",
            "name": {"en": "Fine", "ru": "Нормально"},
            "description": "Normal mood",
            "score": 6,
            "category": "neutral",
        },
        {
            "id": "sad",
            "name": "Sad",
            "description": "Feeling down",
            "score": 2,
            "category": "negative",
        },
    ],
    "categories": {"positive": "Positive", "neutral": "Neutral", "negative": "Negative"},
    "defaultMood": "fine",
}


def _store(domain=THINGS, documents=None, document_id="doc", **kwargs):
    source = InMemoryDocumentSource(documents=documents or {})
    return ContentSyncStore(domain, source, document_id, **kwargs), source


class ContentStoreTests(unittest.TestCase):
    def test_initial_state_is_empty(self):
        store = ContentStore(ContentSnapshot())
        self.assertEqual(store.current().items, ())
        self.assertIsNone(store.state().last_sync_at)
        self.assertFalse(store.state().source_available)

    def test_failed_replace_keeps_last_sync(self):
        store = ContentStore(ContentSnapshot())
        store.replace(ContentSnapshot(items=({"id": 1},)), synced=True)
        synced_at = store.state().last_sync_at
        self.assertIsNotNone(synced_at)

        store.replace(ContentSnapshot(), synced=False)
        self.assertEqual(store.current().items, ())
        self.assertEqual(store.state().last_sync_at, synced_at)
        self.assertFalse(store.state().source_available)


class RepairIdsTests(unittest.TestCase):
    def test_duplicate_gets_smallest_unused_integer(self):
        items = [{"id": 1, "name": "a"}, {"id": 1, "name": "b"}, {"id": "x", "name": "c"}]
        repaired = repair_ids(items, "id")
        self.assertEqual([item["id"] for item in repaired], [1, 2, "x"])
        # Input is left untouched.
        self.assertEqual(items[1]["id"], 1)

    def test_missing_and_unusable_ids(self):
        items = [{"id": 2}, {}, {"id": ""}, {"id": True}, {"id": [1]}, {"id": 1}]
        repaired = repair_ids(items, "id")
        self.assertEqual([item["id"] for item in repaired], [2, 1, 3, 4, 5, 6])

    def test_numeric_and_string_ids_collide(self):
        repaired = repair_ids([{"id": 1}, {"id": "1"}, {"id": 1.0}], "id")
        self.assertEqual([item["id"] for item in repaired], [1, 2, 3])

    def test_custom_id_field(self):
        repaired = repair_ids([{"stepName": "goal"}, {"stepName": "goal"}], "stepName")
        self.assertEqual([item["stepName"] for item in repaired], ["goal", 1])


class ContentSyncStoreLoadTests(unittest.TestCase):
    def test_load_replaces_snapshot(self):
        store, _ = _store(documents={"doc": {"items": [{"id": 1}, {"id": 2}]}})
        store.load()
        self.assertEqual(len(store.get_all()), 2)
        self.assertTrue(store.is_source_available())
        self.assertIsNotNone(store.last_sync_at())

    def test_load_repairs_duplicate_ids(self):
        document = {
            "items": [
                {"id": 1, "name": "one"},
                {"id": 1, "name": "two"},
                {"id": "x", "name": "three"},
            ]
        }
        store, _ = _store(documents={"doc": document})
        store.load()
        self.assertEqual([item["id"] for item in store.get_all()], [1, 2, "x"])

    def test_load_is_idempotent(self):
        store, _ = _store(documents={"doc": MOODS_DOCUMENT}, domain=MOOD_TYPES)
        store.load()
        first = store.snapshot()
        store.load()
        self.assertEqual(store.snapshot(), first)

    def test_unavailable_source_serves_empty_content(self):
        store, source = _store(documents={"doc": {"items": [{"id": 1}]}})
        store.load()
        source.available = False
        store.load()
        self.assertEqual(store.get_all(), [])
        self.assertEqual(store.get_stats().total_count, 0)
        self.assertFalse(store.is_source_available())

    def test_unconfigured_document_serves_empty_content(self):
        store, _ = _store(document_id="")
        store.load()
        self.assertEqual(store.get_all(), [])
        self.assertFalse(store.is_source_available())

    def test_missing_source_serves_empty_content(self):
        store = ContentSyncStore(THINGS, None, "doc")
        store.load()
        self.assertEqual(store.get_all(), [])

    def test_invalid_json_serves_empty_content(self):
        store, _ = _store(documents={"doc": b"{not json"})
        store.load()
        self.assertEqual(store.get_all(), [])
        self.assertFalse(store.is_source_available())

    def test_wrong_shape_serves_empty_content(self):
        store, _ = _store(documents={"doc": {"items": {"id": 1}}})
        store.load()
        self.assertEqual(store.get_all(), [])
        self.assertEqual(store.categories(), {})

    def test_transport_error_serves_empty_content(self):
        store, _ = _store(documents={})
        store.load()
        self.assertEqual(store.get_all(), [])

    def test_unexpected_error_is_absorbed(self):
        source = MagicMock()
        source.is_available.return_value = True
        source.read.side_effect = RuntimeError("boom")
        store = ContentSyncStore(THINGS, source, "doc")
        store.load()
        self.assertEqual(store.get_all(), [])

    def test_sync_metadata_records_successful_loads_only(self):
        sink = InMemorySyncMetadataSink()
        store, source = _store(
            documents={"doc": {"items": []}}, sync_metadata=sink
        )
        store.load()
        self.assertIn("things", sink.last_syncs())

        sink.reset()
        source.available = False
        store.load()
        self.assertEqual(sink.last_syncs(), {})

    def test_failing_sync_metadata_does_not_break_load(self):
        sink = MagicMock()
        sink.record_sync.side_effect = RuntimeError("db down")
        store, _ = _store(documents={"doc": {"items": [{"id": 1}]}}, sync_metadata=sink)
        store.load()
        self.assertEqual(len(store.get_all()), 1)


class ContentSyncStoreWriteTests(unittest.TestCase):
    def test_push_does_not_touch_snapshot(self):
        store, source = _store(documents={"doc": {"items": [{"id": 1}]}})
        store.load()
        store.push({"items": [{"id": 1}, {"id": 2}]})
        self.assertEqual(len(store.get_all()), 1)
        self.assertEqual(len(source.documents["doc"]["items"]), 2)

        store.load()
        self.assertEqual(len(store.get_all()), 2)

    def test_push_writes_verbatim(self):
        store, source = _store(documents={"doc": {"items": []}})
        content = {"items": [{"id": 1}, {"id": 1}]}
        store.push(content)
        self.assertEqual(source.documents["doc"], content)

    def test_push_without_document_id(self):
        store, _ = _store(document_id=None)
        with self.assertRaises(ConfigurationError) as ctx:
            store.push({"items": []})
        self.assertIn("THINGS_FILE_ID is not configured", ctx.exception.message)

    def test_push_to_unavailable_source(self):
        store, source = _store()
        source.available = False
        with self.assertRaises(SourceUnavailableError):
            store.push({"items": []})

    def test_push_propagates_transport_errors(self):
        source = MagicMock()
        source.is_available.return_value = True
        source.write.side_effect = TransportError("network down")
        store = ContentSyncStore(THINGS, source, "doc")
        with self.assertRaises(TransportError):
            store.push({"items": []})

    def test_update_pushes_and_reloads(self):
        store, _ = _store(documents={"doc": {"items": []}})
        store.load()
        result = store.update({"items": [{"id": "a"}]})
        self.assertTrue(result.success)
        self.assertEqual(store.get_all(), [{"id": "a"}])

    def test_update_unconfigured_reports_failure(self):
        store, _ = _store(documents={"doc": {"items": [{"id": 1}]}})
        store.load()
        store.document_id = ""
        before = store.snapshot()
        result = store.update({"items": [{"id": 2}]})
        self.assertFalse(result.success)
        self.assertIn("not configured", result.message)
        self.assertIs(store.snapshot(), before)

    def test_update_transport_error_reports_failure(self):
        source = MagicMock()
        source.is_available.return_value = True
        source.write.side_effect = TransportError("Failed to update file")
        store = ContentSyncStore(THINGS, source, "doc")
        result = store.update({"items": []})
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Failed to update file")
        source.read.assert_not_called()

    def test_update_rejects_duplicate_program_ids(self):
        store, source = _store(
            domain=PROGRAMS, documents={"doc": {"programs": [{"id": 1, "name": "A"}]}}
        )
        result = store.update(
            {"programs": [{"id": 1, "name": "A"}, {"id": 1, "name": "B"}]}
        )
        self.assertFalse(result.success)
        self.assertIn("Duplicate program id: 1", result.message)
        self.assertEqual(len(source.documents["doc"]["programs"]), 1)

    def test_update_rejects_malformed_document(self):
        store, _ = _store(documents={"doc": {"items": []}})
        result = store.update({"things": []})
        self.assertFalse(result.success)
        self.assertIn("items must be an array", result.message)


class ContentSyncStoreQueryTests(unittest.TestCase):
    def setUp(self):
        self.store, _ = _store(domain=MOOD_TYPES, documents={"doc": MOODS_DOCUMENT})
        self.store.load()

    def test_get_by_id(self):
        self.assertEqual(self.store.get_by_id("sad")["score"], 2)
        self.assertIsNone(self.store.get_by_id("angry"))

    def test_get_by_id_matches_numeric_ids_by_string(self):
        store, _ = _store(documents={"doc": {"items": [{"id": 2, "name": "two"}]}})
        store.load()
        self.assertEqual(store.get_by_id("2")["name"], "two")

    def test_get_all_localizes_copies(self):
        items = self.store.get_all("ru")
        self.assertEqual(items[0]["name"], "Счастливый")
        self.assertEqual(items[2]["name"], "Sad")
        self.assertIsInstance(self.store.get_all()[0]["name"], dict)

    def test_get_by_category_keeps_order(self):
        store, _ = _store(
            documents={
                "doc": {
                    "items": [
                        {"id": 1, "category": "a"},
                        {"id": 2, "category": "b"},
                        {"id": 3, "category": "a"},
                    ]
                }
            }
        )
        store.load()
        self.assertEqual([i["id"] for i in store.get_by_category("a")], [1, 3])

    def test_category_stats(self):
        store, _ = _store(
            documents={
                "doc": {
                    "items": [
                        {"id": 1, "category": "a"},
                        {"id": 2, "category": "a"},
                        {"id": 3, "category": "b"},
                    ]
                }
            }
        )
        store.load()
        stats = store.get_stats()
        self.assertEqual(stats.total_count, 3)
        self.assertEqual(stats.per_category_count, {"a": 2, "b": 1})

    def test_mood_stats(self):
        stats = self.store.get_stats()
        self.assertEqual(stats.total_count, 3)
        self.assertEqual(
            stats.per_category_count, {"positive": 1, "neutral": 1, "negative": 1}
        )
        self.assertEqual(stats.average, 5.67)
        self.assertEqual(stats.extra, {"totalCategories": 3})
        self.assertEqual(stats.as_dict()["totalCount"], 3)

    def test_search_is_case_insensitive(self):
        self.assertEqual([m["id"] for m in self.store.search("FEELING")], ["happy", "sad"])
        self.assertEqual([m["id"] for m in self.store.search("счастл")], ["happy"])
        self.assertEqual([m["id"] for m in self.store.search("neutral")], ["fine"])
        self.assertEqual(self.store.search("   "), [])

    def test_categories_and_default(self):
        self.assertEqual(self.store.categories()["neutral"], "Neutral")
        self.assertEqual(self.store.default_item("ru")["name"], "Нормально")

    def test_recommend(self):
        recommended = self.store.recommend("i feel sad and negative today")
        self.assertEqual([m["id"] for m in recommended], ["sad"])

    def test_recommend_matches_any_translation(self):
        self.assertEqual([m["id"] for m in self.store.recommend("i am happy")], ["happy"])
        self.assertEqual(
            [m["id"] for m in self.store.recommend("сегодня счастливый день")], ["happy"]
        )

    def test_returned_items_are_copies(self):
        snapshot = self.store.snapshot()
        self.store.get_all()[0]["id"] = "changed"
        self.store.get_by_id("happy")["score"] = 0
        self.store.search("feeling")[0]["name"]["en"] = "changed"
        self.store.categories()["neutral"] = "changed"

        self.assertIs(self.store.snapshot(), snapshot)
        happy = self.store.get_by_id("happy")
        self.assertEqual(happy["score"], 9)
        self.assertEqual(happy["name"]["en"], "Happy")
        self.assertEqual(self.store.categories()["neutral"], "Neutral")
        self.assertEqual(snapshot.items[0]["id"], "happy")

    def test_onboarding_nested_localization(self):
        document = {
            "onboardingSteps": [
                {
                    "stepName": "goal",
                    "stepQuestion": {"en": "Your goal?", "ru": "Ваша цель?"},
                    "answers": [
                        {"id": "energy", "text": {"en": "Energy", "ru": "Энергия"}, "subtitle": "Boost"}
                    ],
                    "required": True,
                }
            ]
        }
        store, _ = _store(domain=ONBOARDING_QUESTIONS, documents={"doc": document})
        store.load()
        step = store.get_by_id("goal", "ru-RU")
        self.assertEqual(step["stepQuestion"], "Ваша цель?")
        self.assertEqual(step["answers"][0]["text"], "Энергия")
        self.assertEqual(step["answers"][0]["subtitle"], "Boost")
        self.assertIsInstance(store.get_all()[0]["answers"][0]["text"], dict)


class ContentRegistryTests(unittest.TestCase):
    def test_load_all_and_lookup(self):
        source = InMemoryDocumentSource(documents={"doc": {"items": []}})
        registry = ContentRegistry(
            {
                "things": ContentSyncStore(THINGS, source, "doc"),
                "programs": ContentSyncStore(PROGRAMS, source, ""),
            }
        )
        self.assertEqual(registry.load_all(), {"things": True, "programs": False})
        self.assertEqual(registry.names(), ["things", "programs"])
        with self.assertRaises(Exception):
            registry.get("unknown")


if __name__ == "__main__":
    unittest.main()

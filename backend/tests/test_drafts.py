"""
Tests for the local draft cache, its storage backends and the remote mirror.
"""
import json
from datetime import datetime, timedelta, timezone

from amity.jobs.workers import run_draft_sync_job
from amity.schemas.draft import Draft
from amity.services.background import drain
from amity.services.drafts import DraftStore
from amity.store.local import FileLocalStorage
from amity.store.remote import eq

T1 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
T2 = T1 + timedelta(hours=1)


def draft(draft_id, caption="hi", last_updated=T1, **extra):
    return Draft(id=draft_id, memory={"caption": caption}, last_updated=last_updated, **extra)


# ---------------------------------------------------------------------------
# Local cache
# ---------------------------------------------------------------------------

class TestLocalCache:
    def test_save_upserts_by_id(self, local_storage):
        drafts = DraftStore(local_storage, "u1")
        drafts.save(draft("d1", "hi", T1))
        drafts.save(draft("d1", "hi2", T2))

        assert drafts.get("d1").memory.caption == "hi2"
        assert [item.id for item in drafts.list()] == ["d1"]

    def test_list_is_newest_first(self, local_storage):
        drafts = DraftStore(local_storage, "u1")
        drafts.save(draft("old", last_updated=T1))
        drafts.save(draft("new", last_updated=T2))
        drafts.save(draft("older", last_updated=T1 - timedelta(days=1)))
        assert [item.id for item in drafts.list()] == ["new", "old", "older"]

    def test_blob_uses_camel_case_schema(self, local_storage):
        drafts = DraftStore(local_storage, "u1")
        drafts.save(
            Draft(
                id="d1",
                memory={"caption": "hi", "event_date": T1},
                board_id="b1",
                media_items=[{"url": "u1", "is_video": True}],
                last_updated=T2,
            )
        )
        stored = json.loads(local_storage.get_item(drafts.key))
        assert stored[0]["boardId"] == "b1"
        assert stored[0]["lastUpdated"].startswith("2024-05-01T09:00:00")
        assert stored[0]["memory"]["eventDate"].startswith("2024-05-01T08:00:00")
        assert stored[0]["mediaItems"][0]["isVideo"] is True

    def test_unknown_memory_fields_survive(self, local_storage):
        local_storage.set_item(
            "thisisus_memory_drafts:u1",
            json.dumps([{"id": "d1", "memory": {"caption": "x", "mood": "happy"}, "lastUpdated": T1.isoformat()}]),
        )
        drafts = DraftStore(local_storage, "u1")
        drafts.save(drafts.get("d1"))
        assert json.loads(local_storage.get_item(drafts.key))[0]["memory"]["mood"] == "happy"

    def test_corrupt_blob_reads_as_empty(self, local_storage):
        local_storage.set_item("thisisus_memory_drafts:u1", "{not json")
        assert DraftStore(local_storage, "u1").list() == []

    def test_non_list_blob_reads_as_empty(self, local_storage):
        local_storage.set_item("thisisus_memory_drafts:u1", json.dumps({"id": "d1"}))
        assert DraftStore(local_storage, "u1").list() == []

    def test_malformed_entries_are_skipped(self, local_storage):
        local_storage.set_item(
            "thisisus_memory_drafts:u1",
            json.dumps([{"memory": {}}, {"id": "ok", "lastUpdated": T1.isoformat()}]),
        )
        assert [item.id for item in DraftStore(local_storage, "u1").list()] == ["ok"]

    def test_delete_count_clear(self, local_storage):
        drafts = DraftStore(local_storage, "u1")
        drafts.save(draft("d1"))
        drafts.save(draft("d2"))
        assert drafts.count() == 2

        assert drafts.delete("d1") is True
        assert drafts.delete("d1") is False
        assert drafts.get("d1") is None
        assert drafts.count() == 1

        drafts.clear()
        assert drafts.count() == 0

    def test_users_do_not_share_drafts(self, local_storage):
        DraftStore(local_storage, "u1").save(draft("d1"))
        assert DraftStore(local_storage, "u2").list() == []


class TestFileLocalStorage:
    def test_round_trip_and_keys(self, tmp_path):
        storage = FileLocalStorage(tmp_path / "drafts")
        assert storage.get_item("a:b") is None
        assert storage.keys() == []

        storage.set_item("a:b", "[1]")
        storage.set_item("other", "[]")
        assert storage.get_item("a:b") == "[1]"
        assert storage.keys("a:") == ["a:b"]

        storage.remove_item("a:b")
        storage.remove_item("a:b")
        assert storage.get_item("a:b") is None


# ---------------------------------------------------------------------------
# Remote mirror
# ---------------------------------------------------------------------------

class TestRemoteMirror:
    async def test_save_mirrors_in_background(self, store, local_storage):
        drafts = DraftStore(local_storage, "u1", store)
        drafts.save(draft("d1", "hi"))
        await drain()

        rows = await store.select("memory_drafts", [eq("id", "d1")])
        assert rows[0]["user_id"] == "u1"
        assert rows[0]["content"]["memory"]["caption"] == "hi"

    async def test_delete_removes_remote_copy(self, store, local_storage):
        drafts = DraftStore(local_storage, "u1", store)
        drafts.save(draft("d1"))
        await drain()
        drafts.delete("d1")
        await drain()
        assert await store.select("memory_drafts") == []

    async def test_sync_failure_keeps_local_copy(self, flaky_store, local_storage):
        flaky_store.rules.append(lambda method, table, args: ConnectionError("network down"))
        drafts = DraftStore(local_storage, "u1", flaky_store)
        drafts.save(draft("d1"))
        await drain()

        assert drafts.get("d1") is not None
        assert await drafts.sync_to_remote(drafts.get("d1")) is False

    async def test_load_prefers_remote(self, store, local_storage):
        drafts = DraftStore(local_storage, "u1", store)
        await drafts.sync_to_remote(draft("d1", "remote", T2))
        local_storage.set_item(drafts.key, json.dumps([draft("d1", "local", T1).to_blob()]))

        assert (await drafts.load("d1")).memory.caption == "remote"

    async def test_load_falls_back_to_local(self, flaky_store, local_storage):
        drafts = DraftStore(local_storage, "u1", flaky_store)
        local_storage.set_item(drafts.key, json.dumps([draft("d1", "local").to_blob()]))
        flaky_store.rules.append(lambda method, table, args: ConnectionError("timeout"))

        assert (await drafts.load("d1")).memory.caption == "local"

    async def test_load_missing_remote_uses_local(self, store, local_storage):
        drafts = DraftStore(local_storage, "u1", store)
        local_storage.set_item(drafts.key, json.dumps([draft("d1", "local").to_blob()]))
        assert (await drafts.load("d1")).memory.caption == "local"

    async def test_load_all_remote_wins_wholesale(self, store, local_storage):
        drafts = DraftStore(local_storage, "u1", store)
        await drafts.sync_to_remote(draft("shared", "remote", T1))
        await drafts.sync_to_remote(draft("remote-only", "r", T1 - timedelta(hours=1)))
        local_storage.set_item(
            drafts.key,
            json.dumps([draft("shared", "local", T2).to_blob(), draft("local-only", "l", T2).to_blob()]),
        )

        loaded = {item.id: item for item in await drafts.load_all()}
        assert set(loaded) == {"shared", "remote-only", "local-only"}
        assert loaded["shared"].memory.caption == "remote"

    async def test_other_users_remote_drafts_hidden(self, store, local_storage):
        await DraftStore(local_storage, "u2", store).sync_to_remote(draft("theirs"))
        assert await DraftStore(local_storage, "u1", store).load("theirs") is None


class TestDraftSyncJob:
    async def test_pushes_every_users_drafts(self, store, local_storage):
        DraftStore(local_storage, "u1").save(draft("a"))
        DraftStore(local_storage, "u2").save(draft("b"))
        DraftStore(local_storage, "u2").save(draft("c"))

        assert await run_draft_sync_job(local_storage, store) == 3
        rows = await store.select("memory_drafts")
        assert {(row["id"], row["user_id"]) for row in rows} == {("a", "u1"), ("b", "u2"), ("c", "u2")}

"""Tests for the knowledge base and its prompt rendering."""

from grid_swarm.knowledge import (
    CONTEXT_FOOTER,
    CONTEXT_HEADER,
    MAX_SNIPPET_CHARS,
    KnowledgeBase,
)


class TestIngest:
    def test_kind_is_derived_from_the_extension(self):
        kb = KnowledgeBase()
        assert kb.ingest("loads.CSV", "a,b").kind == "CSV"
        assert kb.ingest("topology.json", "{}").kind == "JSON"
        assert kb.ingest("runbook.md", "text").kind == "TEXT"

    def test_size_counts_utf8_bytes(self):
        item = KnowledgeBase().ingest("notes.txt", "MW·h")
        assert item.size == 5

    def test_ingest_file(self, tmp_path):
        path = tmp_path / "limits.csv"
        path.write_text("line,limit_mw\nA,400\n", encoding="utf-8")
        item = KnowledgeBase().ingest_file(path)
        assert item.name == "limits.csv"
        assert item.content.startswith("line,limit_mw")

    def test_delete(self):
        kb = KnowledgeBase()
        item = kb.ingest("a.txt", "x")
        assert kb.delete(item.item_id) is True
        assert kb.delete(item.item_id) is False
        assert kb.items() == []


class TestContext:
    def test_empty_store_renders_nothing(self):
        assert KnowledgeBase().context_for("WA") == ""

    def test_files_are_rendered_in_upload_order(self):
        kb = KnowledgeBase()
        kb.ingest("first.txt", "alpha")
        kb.ingest("second.json", '{"b": 1}')
        block = kb.context_for("GS")
        assert block.startswith(CONTEXT_HEADER)
        assert block.endswith(CONTEXT_FOOTER)
        assert block.index("--- FILE 1: first.txt (TEXT) ---") < block.index("--- FILE 2: second.json (JSON) ---")

    def test_large_documents_are_truncated(self):
        kb = KnowledgeBase()
        kb.ingest("huge.txt", "x" * (MAX_SNIPPET_CHARS + 10))
        block = kb.context_for("LF")
        assert "x" * (MAX_SNIPPET_CHARS + 1) not in block
        assert "...(Truncated for bandwidth)..." in block


class TestPersistence:
    def test_save_and_load(self, tmp_path):
        kb = KnowledgeBase()
        item = kb.ingest("runbook.txt", "Shed order: C, B, A", summary="load shed order")
        path = tmp_path / "kb" / "store.json"
        kb.save_json(path)

        loaded = KnowledgeBase.load_json(path)
        [restored] = loaded.items()
        assert restored == item

    def test_malformed_entries_are_skipped(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text('{"items": [{"name": "no-id.txt"}, "junk", {"item_id": "abc", "name": "ok.csv", "content": "1,2"}]}', encoding="utf-8")
        [item] = KnowledgeBase.load_json(path).items()
        assert item.item_id == "abc"
        assert item.kind == "CSV"
        assert item.size == 3

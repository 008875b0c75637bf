"""
Unit tests for the MCP tool functions over an in-memory manager.
"""

import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock, patch

from mcp_rag.application.index_manager import IndexManager
from mcp_rag.domain.config import InMemoryConfig, MockEmbeddingConfig, PineconeConfig
from mcp_rag.domain.errors import EmbeddingError
from mcp_rag.mcp.api import (
    get_chunks_for_file,
    index_content,
    index_status,
    manual_index_file,
    query_index,
)

from conftest import FixedEmbeddingFunction


EMBED = MockEmbeddingConfig(dimension=2, batch_size=8)


class TestIndexContentTool(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.fn = FixedEmbeddingFunction(default=[1.0, 0.0])
        self.manager = await IndexManager.create(InMemoryConfig(), self.fn)

    async def test_indexes_with_source_ids(self):
        """Test: chunk ids are derived from the item source."""
        out = await index_content(self.manager, EMBED, [
            {"content": "def a():\n    return 1\n\n\ndef b():\n    return 2\n", "source": "m.py"},
        ])

        self.assertEqual(out, [{
            "id": None, "source": "m.py", "success": True, "chunksUpserted": 2, "error": None, "suggestion": None,
        }])
        self.assertEqual(sorted(await self.manager.get_all_ids()), ["m.py-chunk-0", "m.py-chunk-1"])
        meta = await self.manager.get_chunks_metadata_by_source("m.py")
        self.assertEqual(meta["m.py-chunk-0"]["language"], "python")

    async def test_id_used_when_no_source(self):
        await index_content(self.manager, EMBED, [{"content": "hello", "id": "note"}])

        self.assertEqual(await self.manager.get_all_ids(), ["note-chunk-0"])

    async def test_generated_id_when_no_source_or_id(self):
        await index_content(self.manager, EMBED, [{"content": "hello"}])

        ids = await self.manager.get_all_ids()
        self.assertEqual(len(ids), 1)
        self.assertRegex(ids[0], r"^item-\d+-chunk-0$")

    async def test_empty_content_succeeds_without_chunks(self):
        out = await index_content(self.manager, EMBED, [{"content": "", "source": "empty.md"}])

        self.assertTrue(out[0]["success"])
        self.assertEqual(out[0]["chunksUpserted"], 0)

    async def test_per_item_failure_reported(self):
        with patch("mcp_rag.application.use_cases.index_content.generate_embeddings",
                   side_effect=EmbeddingError("provider down")):
            out = await index_content(self.manager, EMBED, [{"content": "x", "source": "a.md"}])

        self.assertFalse(out[0]["success"])
        self.assertEqual(out[0]["error"], "provider down")
        self.assertIn("embedding provider", out[0]["suggestion"])

    async def test_missing_content_rejected(self):
        with self.assertRaises(ValueError):
            await index_content(self.manager, EMBED, [{"source": "a.md"}])

    async def test_unknown_language_rejected(self):
        with self.assertRaises(ValueError):
            await index_content(self.manager, EMBED, [{"content": "x", "language": "cobol"}])


class TestQueryAndStatusTools(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.fn = FixedEmbeddingFunction({"alpha": [1.0, 0.0], "beta": [0.0, 1.0]}, default=[1.0, 0.0])
        self.manager = await IndexManager.create(InMemoryConfig(), self.fn)
        await index_content(self.manager, EMBED, [
            {"content": "alpha", "source": "a.txt"},
            {"content": "beta", "source": "b.txt"},
        ])

    async def test_query_ranks_results(self):
        out = await query_index(self.manager, EMBED, "alpha", top_k=2)

        self.assertTrue(out["success"])
        self.assertEqual([r["item"]["id"] for r in out["results"]], ["a.txt-chunk-0", "b.txt-chunk-0"])
        self.assertAlmostEqual(out["results"][0]["score"], 1.0)
        self.assertEqual(out["results"][0]["item"]["content"], "alpha")

    async def test_query_with_filter(self):
        out = await query_index(self.manager, EMBED, "alpha", filter={"source": "b.txt"})

        self.assertEqual([r["item"]["id"] for r in out["results"]], ["b.txt-chunk-0"])

    async def test_query_validation(self):
        with self.assertRaises(ValueError):
            await query_index(self.manager, EMBED, "   ")
        with self.assertRaises(ValueError):
            await query_index(self.manager, EMBED, "alpha", top_k=0)
        with self.assertRaises(ValueError):
            await query_index(self.manager, EMBED, "alpha", filter={"tags": ["x"]})

    async def test_query_embedding_failure_envelope(self):
        with patch("mcp_rag.application.use_cases.query_index.generate_embeddings",
                   side_effect=EmbeddingError("down")):
            out = await query_index(self.manager, EMBED, "alpha")

        self.assertFalse(out["success"])
        self.assertEqual(out["error"], "down")
        self.assertEqual(out["errorKind"], "embedding")
        self.assertEqual(out["results"], [])

    async def test_status(self):
        out = await index_status(self.manager)

        self.assertEqual(out, {"success": True, "chunkCount": 2, "collectionName": "in-memory-store",
                               "error": None, "errorKind": None, "suggestion": None})

    async def test_status_uninitialized(self):
        out = await index_status(IndexManager(PineconeConfig(api_key="k", index_name="i")))

        self.assertFalse(out["success"])
        self.assertIn("not initialized", out["error"])

    async def test_chunks_for_file(self):
        out = await get_chunks_for_file(self.manager, "a.txt")

        self.assertTrue(out["success"])
        self.assertEqual(out["count"], 1)
        self.assertIn("a.txt-chunk-0", out["chunks"])


class TestManualIndexFileTool(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.tmp = TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = Path(self.tmp.name)
        (self.root / "pkg").mkdir()
        self.file = self.root / "pkg" / "mod.py"
        self.file.write_text("def a():\n    return 1\n\n\ndef b():\n    return 2\n", encoding="utf-8")
        self.manager = await IndexManager.create(InMemoryConfig(), FixedEmbeddingFunction())

    async def test_indexes_file(self):
        out = await manual_index_file(self.manager, EMBED, str(self.root), "pkg/mod.py")

        self.assertTrue(out["success"])
        self.assertEqual(out["chunksUpserted"], 2)
        meta = await self.manager.get_chunks_metadata_by_source("pkg/mod.py")
        self.assertEqual(sorted(meta), ["pkg/mod.py-chunk-0", "pkg/mod.py-chunk-1"])
        self.assertIn("fileMtime", meta["pkg/mod.py-chunk-0"])

    async def test_reindex_drops_stale_chunks(self):
        await manual_index_file(self.manager, EMBED, str(self.root), "pkg/mod.py")
        self.file.write_text("X = 1\n", encoding="utf-8")

        out = await manual_index_file(self.manager, EMBED, str(self.root), "pkg/mod.py")

        self.assertEqual(out["chunksUpserted"], 1)
        self.assertEqual(await self.manager.get_all_ids(), ["pkg/mod.py-chunk-0"])

    async def test_return_chunks_does_not_index(self):
        out = await manual_index_file(
            self.manager, EMBED, str(self.root), "pkg/mod.py", return_chunks=True, max_chunks_to_return=1
        )

        self.assertTrue(out["success"])
        self.assertEqual(out["message"], "Returning 1 of 2 generated chunks.")
        self.assertEqual(len(out["returnedChunks"]), 1)
        self.assertEqual(await self.manager.get_all_ids(), [])

    async def test_missing_file(self):
        out = await manual_index_file(self.manager, EMBED, str(self.root), "pkg/missing.py")

        self.assertFalse(out["success"])
        self.assertEqual(out["message"], "Failed to read file.")

    async def test_path_outside_workspace_rejected(self):
        with self.assertRaises(ValueError):
            await manual_index_file(self.manager, EMBED, str(self.root), "../escape.py")

    @patch("mcp_rag.application.index_manager.PineconeVectorBackend")
    async def test_reindex_without_filtered_delete_removes_stale_ids(self, mock_backend_cls):
        """Test: without filtered delete, stale chunks are looked up by source and deleted by id."""
        backend = MagicMock(supports_filtered_delete=False)
        backend.metadata_where.return_value = {
            "pkg/mod.py-chunk-0": {"source": "pkg/mod.py"},
            "pkg/mod.py-chunk-1": {"source": "pkg/mod.py"},
            "pkg/mod.py-chunk-2": {"source": "pkg/mod.py"},
        }
        mock_backend_cls.return_value = backend
        manager = await IndexManager.create(PineconeConfig(api_key="k", index_name="idx"), FixedEmbeddingFunction())

        out = await manual_index_file(manager, EMBED, str(self.root), "pkg/mod.py")

        self.assertTrue(out["success"])
        self.assertEqual(out["chunksUpserted"], 2)
        backend.delete_where.assert_not_called()
        backend.metadata_where.assert_called_once_with({"source": "pkg/mod.py"})
        backend.delete.assert_called_once_with(["pkg/mod.py-chunk-0", "pkg/mod.py-chunk-1", "pkg/mod.py-chunk-2"])
        names = [c[0] for c in backend.method_calls if c[0] in ("delete", "upsert")]
        self.assertEqual(names, ["delete", "upsert"])
        upserted = backend.upsert.call_args[0][0]
        self.assertEqual([i.id for i in upserted], ["pkg/mod.py-chunk-0", "pkg/mod.py-chunk-1"])


if __name__ == "__main__":
    unittest.main()

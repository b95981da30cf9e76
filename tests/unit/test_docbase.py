"""Tests for DocumentBase add / delete pipelines and batch commits."""

from __future__ import annotations

import zipfile

import pytest

from docbase.config import DocbaseConfig, RagCfg
from docbase.docbase import DocumentBase
from docbase.errors import DocumentTooLarge, EmptyDocument, LoadFailure, NotFound, UnsupportedType
from docbase.ingest.loader import DocumentLoader
from docbase.ingest.splitter import TextSplitter
from docbase.models import Container, Leaf


def _files(n: int, folder: str = "/docs") -> list[str]:
    return [f"{folder}/file{i:02d}.txt" for i in range(n)]


# ------------------------------------------------------------------
# Construction
# ------------------------------------------------------------------


def test_batch_sizes_default_from_config(make_base):
    base = make_base()
    assert base.add_commit_every == 5
    assert base.delete_commit_every == 10


def test_batch_sizes_passed_at_construction(make_base):
    base = make_base(add_commit_every=2, delete_commit_every=3)
    assert base.add_commit_every == 2
    assert base.delete_commit_every == 3


def test_batch_size_zero_rejected(make_base):
    with pytest.raises(ValueError, match="batch"):
        make_base(add_commit_every=0)


# ------------------------------------------------------------------
# add: file / url
# ------------------------------------------------------------------


def test_add_file_returns_uuid_and_registers_once(make_base, collab):
    base = make_base()
    assert base.add("doc-1", "file", "/tmp/a.txt") == "doc-1"
    assert [d.uuid for d in base.documents] == ["doc-1"]
    assert isinstance(base.documents[0], Leaf)
    assert collab.store.count("insert") == 2


def test_add_file_registers_only_after_chunks_stored(make_base, collab):
    base = make_base()
    seen: list[int] = []
    collab.store.on_insert = lambda uuid: seen.append(len(base.documents))

    base.add("doc-1", "file", "/tmp/a.txt")

    assert seen == [0, 0]
    assert len(base.documents) == 1


def test_add_file_uses_store_of_this_base(make_base, collab):
    base = make_base("base-xyz")
    base.add("doc-1", "file", "/tmp/a.txt")
    assert collab.store.connected == ["base-xyz"]


def test_add_file_metadata(make_base, collab):
    base = make_base()
    base.add("doc-1", "file", "/tmp/notes/a.txt")
    for row in collab.store.rows:
        assert row["uuid"] == "doc-1"
        assert row["metadata"] == {
            "uuid": "doc-1",
            "type": "file",
            "title": "a.txt",
            "url": "/tmp/notes/a.txt",
        }


def test_add_file_callback_once(make_base):
    base = make_base()
    calls = []
    base.add("doc-1", "file", "/tmp/a.txt", lambda: calls.append(1))
    assert len(calls) == 1


def test_add_file_standalone_has_no_transaction(make_base, collab):
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.txt")
    kinds = [e[0] for e in collab.store.events]
    assert "begin" not in kinds
    assert "commit" not in kinds
    assert kinds[-1] == "close"


def test_embedding_is_sequential_in_chunk_order(make_base, collab):
    collab.loader.texts["/tmp/a.txt"] = "one\n\ntwo\n\nthree"
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.txt")
    assert collab.embedder.calls == ["one", "two", "three"]
    assert [r["content"] for r in collab.store.rows] == ["one", "two", "three"]


def test_add_unsupported_type(make_base, collab):
    collab.loader.unsupported.add("/tmp/a.bin")
    base = make_base()
    with pytest.raises(UnsupportedType):
        base.add("doc-1", "file", "/tmp/a.bin")
    assert base.documents == []
    assert collab.loader.loaded == []


def test_add_load_failure_propagates(make_base, collab):
    collab.loader.texts["/tmp/a.txt"] = LoadFailure("/tmp/a.txt", "boom")
    base = make_base()
    with pytest.raises(LoadFailure):
        base.add("doc-1", "file", "/tmp/a.txt")
    assert base.documents == []


def test_add_empty_text_is_empty_document(make_base, collab):
    collab.loader.texts["/tmp/a.txt"] = ""
    base = make_base()
    with pytest.raises(EmptyDocument):
        base.add("doc-1", "file", "/tmp/a.txt")
    assert base.documents == []


def test_add_whitespace_text_is_empty_document(make_base, collab):
    collab.loader.texts["/tmp/a.txt"] = "  \n\t "
    base = make_base()
    with pytest.raises(EmptyDocument):
        base.add("doc-1", "file", "/tmp/a.txt")
    assert base.documents == []


@pytest.mark.parametrize("text", [
    "----------------Page (0) Break----------------",
    "---Page (0) Break---\n\n---Page (1) Break---\n",
    "\n  -Page (12) Break-  \n",
])
def test_add_page_break_only_is_empty_document(make_base, collab, text):
    collab.loader.texts["/tmp/a.pdf"] = text
    base = make_base()
    with pytest.raises(EmptyDocument):
        base.add("doc-1", "file", "/tmp/a.pdf")
    assert collab.store.rows == []


def test_page_break_with_text_is_accepted(make_base, collab):
    collab.loader.texts["/tmp/a.pdf"] = "Real text\n\n---Page (0) Break---"
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.pdf")
    assert len(base.documents) == 1


def test_add_too_large(make_base, collab):
    config = DocbaseConfig(rag=RagCfg(max_document_size_mb=0.00001))  # ~10 bytes
    collab.loader.texts["/tmp/a.txt"] = "x" * 20
    base = make_base(config=config)
    with pytest.raises(DocumentTooLarge) as excinfo:
        base.add("doc-1", "file", "/tmp/a.txt")
    assert excinfo.value.max_size_mb == pytest.approx(0.00001)
    assert base.documents == []
    assert collab.embedder.calls == []


def test_add_embedder_failure_leaves_no_entry(make_base, collab):
    collab.loader.texts["/tmp/a.txt"] = "good\n\nbad"
    collab.embedder.fail_on.add("bad")
    base = make_base()
    with pytest.raises(RuntimeError):
        base.add("doc-1", "file", "/tmp/a.txt")
    assert base.documents == []
    assert collab.store.rows == []


def test_add_url_sets_title(make_base, collab):
    url = "https://example.com/page"
    collab.loader.texts[url] = "<html><TITLE> Example </TITLE></html>\n\nBody text"
    base = make_base()
    base.add("doc-1", "url", url)
    source = base.documents[0]
    assert source.title == "Example"
    assert all(r["metadata"]["title"] == "Example" for r in collab.store.rows)
    assert all(r["metadata"]["url"] == url for r in collab.store.rows)


def test_add_url_takes_first_title(make_base, collab):
    url = "https://example.com/page"
    collab.loader.texts[url] = "<title>First</title><title>Second</title>"
    base = make_base()
    base.add("doc-1", "url", url)
    assert base.documents[0].title == "First"


def test_add_url_without_title_falls_back_to_url(make_base, collab):
    url = "https://example.com/page"
    collab.loader.texts[url] = "No title here"
    base = make_base()
    base.add("doc-1", "url", url)
    assert base.documents[0].title is None
    assert collab.store.rows[0]["metadata"]["title"] == url


def test_add_file_does_not_extract_title(make_base, collab):
    collab.loader.texts["/tmp/a.html"] = "<title>Ignored</title>"
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.html")
    assert base.documents[0].title is None


def test_add_invalid_type(make_base):
    base = make_base()
    with pytest.raises(ValueError, match="source type"):
        base.add("doc-1", "video", "/tmp/a.mp4")


def test_scenario_small_text_file(tmp_path, collab, config):
    path = tmp_path / "a.txt"
    path.write_text("ten bytes!", encoding="utf-8")
    base = DocumentBase(
        "base-1",
        "Test base",
        "openai",
        "text-embedding-3-small",
        config=config,
        store=collab.store,
        loader=DocumentLoader(),
        splitter=TextSplitter(),
        embedder_factory=lambda engine, model: collab.embedder,
        enumerator=collab.enumerator,
    )
    calls = []

    assert base.add("id1", "file", str(path), lambda: calls.append(1)) == "id1"
    assert len(base.documents) == 1
    assert any(r["metadata"]["uuid"] == "id1" for r in collab.store.rows)
    assert calls == [1]


def _file_base(collab, config) -> DocumentBase:
    return DocumentBase(
        "base-1",
        "Test base",
        "openai",
        "text-embedding-3-small",
        config=config,
        store=collab.store,
        loader=DocumentLoader(),
        splitter=TextSplitter(),
        embedder_factory=lambda engine, model: collab.embedder,
        enumerator=collab.enumerator,
    )


def test_zero_byte_file_is_empty_document(tmp_path, collab, config):
    path = tmp_path / "empty.txt"
    path.write_text("", encoding="utf-8")
    base = _file_base(collab, config)
    with pytest.raises(EmptyDocument):
        base.add("id1", "file", str(path))
    assert base.documents == []
    assert collab.store.rows == []


def test_epub_missing_package_file_is_load_failure(tmp_path, collab, config):
    path = tmp_path / "book.epub"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(
            "META-INF/container.xml",
            '<container><rootfiles><rootfile full-path="OEBPS/missing.opf"/></rootfiles></container>',
        )
    base = _file_base(collab, config)
    with pytest.raises(LoadFailure):
        base.add("id1", "file", str(path))
    assert base.documents == []


# ------------------------------------------------------------------
# add: upsert
# ------------------------------------------------------------------


def test_readd_existing_uuid_deletes_first(make_base, collab):
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.txt")
    base.add("doc-1", "file", "/tmp/b.txt")

    assert [d.uuid for d in base.documents] == ["doc-1"]
    assert base.documents[0].origin == "/tmp/b.txt"
    assert ("delete", "doc-1") in collab.store.events
    assert {r["metadata"]["url"] for r in collab.store.rows} == {"/tmp/b.txt"}


def test_readd_failure_leaves_prior_entry_deleted(make_base, collab):
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.txt")
    collab.loader.texts["/tmp/b.txt"] = ""
    with pytest.raises(EmptyDocument):
        base.add("doc-1", "file", "/tmp/b.txt")
    assert base.documents == []
    assert collab.store.rows == []


def test_readd_folder_rebuilds_items(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(3)
    base = make_base()
    base.add("folder-1", "folder", "/docs")
    first_items = {i.uuid for i in base.documents[0].items}

    collab.enumerator.folders["/docs"] = _files(2)
    base.add("folder-1", "folder", "/docs")

    assert len(base.documents) == 1
    folder = base.documents[0]
    assert len(folder.items) == 2
    assert not first_items & {i.uuid for i in folder.items}
    assert collab.store.uuids() == {i.uuid for i in folder.items}


# ------------------------------------------------------------------
# add: folder
# ------------------------------------------------------------------


def test_add_folder_registered_before_indexing(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(2)
    base = make_base()
    seen: list[list[str]] = []
    collab.store.on_insert = lambda uuid: seen.append([d.uuid for d in base.documents])

    base.add("folder-1", "folder", "/docs")

    assert seen and all(s == ["folder-1"] for s in seen)


def test_add_folder_first_callback_before_content(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(1)
    base = make_base()
    snapshots: list[tuple[int, int]] = []

    def _cb():
        folder = base.documents[0]
        snapshots.append((len(base.documents), len(folder.items)))

    base.add("folder-1", "folder", "/docs", _cb)
    assert snapshots[0] == (1, 0)


def test_add_folder_items_and_leaf_uuids(make_base, collab):
    files = _files(3)
    collab.enumerator.folders["/docs"] = files
    base = make_base()

    base.add("folder-1", "folder", "/docs")

    folder = base.documents[0]
    assert isinstance(folder, Container)
    assert [i.origin for i in folder.items] == files
    assert all(i.type == "file" for i in folder.items)
    assert "folder-1" not in collab.store.uuids()
    assert collab.store.uuids() == {i.uuid for i in folder.items}


def test_add_folder_tolerates_bad_files(make_base, collab):
    files = _files(6)
    collab.enumerator.folders["/docs"] = files
    collab.loader.unsupported.add(files[0])
    collab.loader.texts[files[1]] = LoadFailure(files[1])
    collab.loader.texts[files[2]] = "   "
    collab.loader.texts[files[3]] = ValueError("parser crashed")
    base = make_base()

    assert base.add("folder-1", "folder", "/docs") == "folder-1"

    folder = base.documents[0]
    assert [i.origin for i in folder.items] == files[4:]


def test_add_folder_commits_every_five(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(12)
    base = make_base()
    calls = []

    base.add("folder-1", "folder", "/docs", lambda: calls.append(1))

    assert len(base.documents[0].items) == 12
    assert collab.store.count("commit") == 3
    # one up front, two batch commits, one trailing
    assert len(calls) == 4

    kinds = [e[0] for e in collab.store.events]
    commit_positions = [i for i, k in enumerate(kinds) if k == "commit"]
    inserts_before = [kinds[:p].count("insert") for p in commit_positions]
    # two chunks per file
    assert inserts_before == [10, 20, 24]


def test_add_folder_batch_aligned_still_has_trailing_commit(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(10)
    base = make_base()
    base.add("folder-1", "folder", "/docs")
    assert collab.store.count("commit") == 3
    kinds = [e[0] for e in collab.store.events]
    assert kinds[-3:] == ["begin", "commit", "close"]


def test_add_folder_empty(make_base, collab):
    base = make_base()
    calls = []
    base.add("folder-1", "folder", "/empty", lambda: calls.append(1))
    assert base.documents[0].items == []
    assert collab.store.count("begin") == 1
    assert collab.store.count("commit") == 1
    assert len(calls) == 2


def test_add_folder_failures_do_not_count_toward_batch(make_base, collab):
    files = _files(7)
    collab.enumerator.folders["/docs"] = files
    collab.loader.texts[files[0]] = LoadFailure(files[0])
    collab.loader.texts[files[3]] = LoadFailure(files[3])
    base = make_base()
    base.add("folder-1", "folder", "/docs")
    # five successes: one batch commit + trailing commit
    assert collab.store.count("commit") == 2


def test_add_folder_single_connection_no_inner_commit(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(3)
    base = make_base()
    base.add("folder-1", "folder", "/docs")
    assert collab.store.connected == ["base-1"]
    assert collab.store.count("commit") == 1


def test_add_folder_on_populated_container_rejected(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(2)
    base = make_base()
    base.add("folder-1", "folder", "/docs")
    with pytest.raises(ValueError, match="already indexed"):
        base.add_folder(base.documents[0])


# ------------------------------------------------------------------
# add_document with caller-owned store
# ------------------------------------------------------------------


def test_add_document_with_store_does_not_commit(make_base, collab):
    base = make_base()
    handle = collab.store.connect("base-1")
    leaf = Leaf(uuid="leaf-1", type="file", origin="/tmp/a.txt")
    base.add_document(leaf, handle)
    kinds = [e[0] for e in collab.store.events]
    assert kinds == ["insert", "insert"]
    assert base.documents == []


# ------------------------------------------------------------------
# delete
# ------------------------------------------------------------------


def test_delete_unknown_raises_not_found(make_base, collab):
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.txt")
    events_before = list(collab.store.events)
    with pytest.raises(NotFound):
        base.delete("missing")
    assert [d.uuid for d in base.documents] == ["doc-1"]
    assert collab.store.events == events_before


def test_delete_leaf(make_base, collab):
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.txt")
    calls = []
    base.delete("doc-1", lambda: calls.append(1))
    assert base.documents == []
    assert collab.store.rows == []
    assert collab.store.count("delete") == 1
    assert len(calls) == 1


def test_delete_folder_deletes_each_item(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(4)
    base = make_base()
    base.add("folder-1", "folder", "/docs")
    item_ids = [i.uuid for i in base.documents[0].items]
    collab.store.events.clear()

    base.delete("folder-1")

    assert base.documents == []
    deletes = [e[1] for e in collab.store.events if e[0] == "delete"]
    assert deletes == item_ids
    assert "folder-1" not in deletes
    assert collab.store.rows == []


def test_delete_folder_commits_every_ten(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(23)
    base = make_base()
    base.add("folder-1", "folder", "/docs")
    collab.store.events.clear()
    calls = []

    base.delete("folder-1", lambda: calls.append(1))

    assert collab.store.count("delete") == 23
    assert collab.store.count("commit") == 3
    assert len(calls) == 3


def test_delete_folder_batch_aligned_trailing_commit(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(10)
    base = make_base()
    base.add("folder-1", "folder", "/docs")
    collab.store.events.clear()

    base.delete("folder-1")

    kinds = [e[0] for e in collab.store.events]
    assert kinds.count("commit") == 2
    assert kinds[-3:] == ["begin", "commit", "close"]


def test_delete_empty_folder(make_base, collab):
    base = make_base()
    base.add("folder-1", "folder", "/empty")
    collab.store.events.clear()
    base.delete("folder-1")
    assert base.documents == []
    assert collab.store.count("commit") == 1


def test_delete_keeps_other_documents(make_base, collab):
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.txt")
    base.add("doc-2", "file", "/tmp/b.txt")
    base.add("doc-3", "file", "/tmp/c.txt")
    base.delete("doc-2")
    assert [d.uuid for d in base.documents] == ["doc-1", "doc-3"]
    assert collab.store.uuids() == {"doc-1", "doc-3"}


# ------------------------------------------------------------------
# query / destroy / to_dict
# ------------------------------------------------------------------


def test_query_embeds_and_uses_default_limit(make_base, collab):
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.txt")
    results = base.query("what is alpha?")
    assert collab.embedder.calls[-1] == "what is alpha?"
    assert ("query", 10) in collab.store.events
    assert len(results) == 2


def test_query_rejects_zero_limit(make_base):
    with pytest.raises(ValueError, match="limit"):
        make_base().query("x", limit=0)


def test_destroy_removes_store(make_base, collab):
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.txt")
    base.destroy()
    assert collab.store.destroyed == ["base-1"]
    assert base.documents == []


def test_embedder_built_lazily_once(collab, config):
    built = []

    def _factory(engine, model):
        built.append((engine, model))
        return collab.embedder

    base = DocumentBase(
        "base-1", "B", "ollama", "nomic-embed-text",
        config=config, store=collab.store, loader=collab.loader,
        splitter=collab.splitter, embedder_factory=_factory, enumerator=collab.enumerator,
    )
    assert built == []
    base.add("doc-1", "file", "/tmp/a.txt")
    base.add("doc-2", "file", "/tmp/b.txt")
    assert built == [("ollama", "nomic-embed-text")]


def test_to_dict(make_base, collab):
    collab.enumerator.folders["/docs"] = _files(1)
    base = make_base()
    base.add("doc-1", "file", "/tmp/a.txt")
    base.add("folder-1", "folder", "/docs")
    data = base.to_dict()
    assert data["uuid"] == "base-1"
    assert data["embedding_engine"] == "openai"
    assert [d["uuid"] for d in data["documents"]] == ["doc-1", "folder-1"]
    assert len(data["documents"][1]["items"]) == 1

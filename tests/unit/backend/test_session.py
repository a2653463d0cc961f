"""
Unit tests for the live session: re-parse cycle, collapse state, persistence.
"""

import logging

import pytest

from treediagram.backend import session as session_module
from treediagram.backend.session import STORAGE_KEY, SourceStore, TreeSession


@pytest.fixture
def store(tmp_path):
    return SourceStore(tmp_path / "store.json")


@pytest.fixture
def session(store):
    return TreeSession(store=store)


class TestSourceStore:
    def test_round_trip(self, store):
        assert store.save('node A "a"')
        assert store.load() == 'node A "a"'

    def test_missing_file_loads_none(self, store):
        assert store.load() is None

    def test_keys_are_independent(self, store):
        store.save("one")
        store.save("two", key="other")
        assert store.load(STORAGE_KEY) == "one"
        assert store.load("other") == "two"

    def test_failed_save_is_logged_not_raised(self, tmp_path, caplog):
        # A directory cannot be opened for writing
        broken = SourceStore(tmp_path)
        with caplog.at_level(logging.WARNING, logger="treediagram.backend.session"):
            assert broken.save("text") is False
        assert "save failed" in caplog.text

    def test_interrupted_save_keeps_previous_text(self, store, monkeypatch):
        store.save("old")

        def disk_full(*args, **kwargs):
            raise OSError("No space left on device")

        monkeypatch.setattr(session_module.json, "dump", disk_full)
        assert store.save("new") is False
        monkeypatch.undo()
        assert store.load() == "old"
        assert [p.name for p in store.path.parent.iterdir()] == ["store.json"]

    def test_corrupt_file_loads_none(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json")
        assert SourceStore(path).load() is None


class TestSetSource:
    def test_success(self, session, org_source):
        model = session.set_source(org_source)
        assert model is not None
        assert session.model is model
        assert session.error is None
        assert session.status == (True, "Parsed 6 Nodes")

    def test_source_is_persisted(self, session, store, org_source):
        session.set_source(org_source)
        assert store.load() == org_source

    def test_error_clears_model(self, session, org_source):
        session.set_source(org_source)
        assert session.set_source('node A "a"\nnode A "b"') is None
        assert session.model is None
        assert session.status == (False, 'Line 2: Duplicate Node id "A"')
        assert session.drawing().nodes == []

    def test_error_text_still_persisted(self, session, store):
        session.set_source("garbage")
        assert store.load() == "garbage"

    def test_save_failure_does_not_interrupt(self, tmp_path, org_source):
        session = TreeSession(store=SourceStore(tmp_path))
        assert session.set_source(org_source) is not None
        assert session.status[0]

    def test_works_without_store(self, org_source):
        session = TreeSession()
        assert session.set_source(org_source) is not None

    def test_change_callbacks(self, session, org_source):
        calls = []
        session.on_change(lambda: calls.append(session.status))
        session.set_source(org_source)
        session.set_source("")
        assert calls == [(True, "Parsed 6 Nodes"), (False, "No Nodes Defined")]


class TestCollapseState:
    def test_toggle(self, session, org_source):
        session.set_source(org_source)
        assert session.toggle("cto") is True
        assert session.collapsed == {"cto"}
        assert session.status == (True, "Collapsed Technology")
        assert session.toggle("cto") is False
        assert session.status == (True, "Expanded Technology")

    def test_toggle_leaf_is_noop(self, session, org_source):
        session.set_source(org_source)
        calls = []
        session.on_change(lambda: calls.append(1))
        assert session.toggle("eng") is None
        assert session.collapsed == frozenset()
        assert calls == []

    def test_toggle_unknown_node(self, session, org_source):
        session.set_source(org_source)
        with pytest.raises(KeyError):
            session.toggle("nobody")

    def test_toggle_without_model(self, session):
        session.set_source("bad line")
        with pytest.raises(ValueError):
            session.toggle("cto")

    def test_collapse_survives_reparse(self, session, org_source):
        session.set_source(org_source)
        session.toggle("cto")
        session.set_source(org_source + '\nnode extra "x"')
        assert session.collapsed == {"cto"}
        assert "eng" not in session.layout().visible

    def test_removed_node_pruned(self, session, org_source):
        session.set_source(org_source)
        session.toggle("cto")
        session.set_source('node cfo "Finance"')
        assert session.collapsed == frozenset()

    def test_error_leaves_collapse_set(self, session, org_source):
        session.set_source(org_source)
        session.toggle("cto")
        session.set_source("oops")
        assert session.collapsed == {"cto"}
        session.set_source(org_source)
        assert session.collapsed == {"cto"}


class TestRestore:
    def test_restores_saved_source(self, store, org_source):
        store.save(org_source)
        session = TreeSession(store=store)
        model = session.restore()
        assert model is not None
        assert session.source == org_source

    def test_empty_store_gives_no_nodes_error(self, session):
        assert session.restore() is None
        assert session.status == (False, "No Nodes Defined")


class TestState:
    def test_state_shape(self, session, org_source):
        session.set_source(org_source)
        session.toggle("cto")
        state = session.get_state()
        assert state["source"] == org_source
        assert state["status"] == {"ok": True, "message": "Collapsed Technology"}
        assert state["error"] is None
        assert state["model"]["root"] == "ceo"
        assert state["collapsed"] == ["cto"]
        labels = [c["label"] for c in state["drawing"]["commands"] if c["kind"] == "node"]
        assert labels == ["Chief Executive [–]", "Technology [+]", "Finance"]

    def test_error_state(self, session):
        session.set_source("edge a -> b")
        state = session.get_state()
        assert state["model"] is None
        assert state["error"]["type"] == "unknown_node"
        assert state["drawing"] == {"view_box": None, "commands": []}

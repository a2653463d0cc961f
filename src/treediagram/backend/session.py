"""
Tree Session - State for the live editor: source text, model, collapse set.

This module implements:
- Single session state (one source text edited at a time)
- Re-parse on every source change, pruning stale collapsed ids
- Collapse/expand toggles on nodes with children
- Durable source persistence via a keyed JSON string store
- Change callbacks for real-time sync
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

from ..core import (
    Drawing,
    LayoutConfig,
    LayoutResult,
    ParseError,
    TreeModel,
    layout,
    parse,
    prune_collapsed,
    render,
    toggle_collapsed,
)


logger = logging.getLogger(__name__)

STORAGE_KEY = "flowchart_source_v1"
DEFAULT_STORE_PATH = Path(os.environ.get(
    "TREE_DIAGRAM_STORE",
    str(Path.home() / ".treediagram" / "store.json")
))


class SourceStore:
    """
    A durable string store backed by one JSON file of key -> text.

    Save failures are logged and swallowed so editing never stops because
    the disk is full or read-only.
    """

    def __init__(self, path: str | Path = DEFAULT_STORE_PATH):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read source store %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, key: str = STORAGE_KEY) -> Optional[str]:
        """Get the stored text for a key, or None if nothing was saved."""
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def save(self, text: str, key: str = STORAGE_KEY) -> bool:
        """Store text under a key. Returns False (after logging) if the write failed."""
        data = self._read_all()
        data[key] = text
        tmp_path = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            # The previous store stays readable until the new file is complete
            with tempfile.NamedTemporaryFile(
                'w', dir=self._path.parent, suffix=".tmp", delete=False
            ) as f:
                tmp_path = f.name
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as e:
            logger.warning("Source store save failed: %s", e)
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
            return False
        return True


class TreeSession:
    """
    Manages the edited source text and everything derived from it.

    Features:
    - Every set_source() re-parses and either installs a new model or records the error
    - The collapse set survives re-parses; ids that disappear are pruned
    - Status line mirroring what the editor shows ("Parsed 3 Nodes", errors, toggles)
    - Change callbacks for real-time sync
    """

    def __init__(
        self,
        store: Optional[SourceStore] = None,
        config: Optional[LayoutConfig] = None
    ):
        self._store = store
        self._config = config or LayoutConfig()
        self._source: str = ""
        self._model: Optional[TreeModel] = None
        self._error: Optional[ParseError] = None
        self._collapsed: set[str] = set()
        self._status: str = ""
        self._status_ok: bool = True
        self._on_change_callbacks: list[Callable] = []

    # --- Properties ---

    @property
    def source(self) -> str:
        return self._source

    @property
    def model(self) -> Optional[TreeModel]:
        """The current model, or None while the source has an error."""
        return self._model

    @property
    def error(self) -> Optional[ParseError]:
        return self._error

    @property
    def collapsed(self) -> frozenset[str]:
        return frozenset(self._collapsed)

    @property
    def status(self) -> tuple[bool, str]:
        return self._status_ok, self._status

    @property
    def config(self) -> LayoutConfig:
        return self._config

    # --- Change Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback for session changes."""
        self._on_change_callbacks.append(callback)

    def _notify_change(self):
        """Notify all registered callbacks of a change."""
        for callback in self._on_change_callbacks:
            callback()

    def _set_status(self, ok: bool, message: str):
        self._status_ok = ok
        self._status = message

    # --- Source ---

    def set_source(self, text: str, persist: bool = True) -> Optional[TreeModel]:
        """
        Replace the source text and re-parse it.

        On a parse error the model is cleared and the error becomes the
        status; the collapse set is left as it was.

        Returns:
            The new model, or None if the text did not parse
        """
        self._source = text
        if persist and self._store is not None:
            self._store.save(text)

        try:
            model = parse(text)
        except ParseError as e:
            self._model = None
            self._error = e
            self._set_status(False, e.message)
            self._notify_change()
            return None

        self._model = model
        self._error = None
        stale = prune_collapsed(self._collapsed, model)
        if stale:
            logger.debug("Pruned collapsed ids no longer in model: %s", sorted(stale))
        self._set_status(True, f"Parsed {len(model.nodes)} Nodes")
        self._notify_change()
        return model

    def restore(self) -> Optional[TreeModel]:
        """Load the saved source text (if any) and parse it."""
        text = self._store.load() if self._store is not None else None
        return self.set_source(text or "", persist=False)

    # --- Collapse ---

    def toggle(self, node_id: str) -> Optional[bool]:
        """
        Collapse or expand a node.

        Returns:
            True if now collapsed, False if expanded, None for a childless node

        Raises:
            ValueError: If there is no valid diagram
            KeyError: If the node does not exist
        """
        if self._model is None:
            raise ValueError("No diagram to toggle")

        state = toggle_collapsed(self._collapsed, self._model, node_id)
        if state is None:
            return None

        title = self._model.nodes[node_id].title
        self._set_status(True, ("Collapsed " if state else "Expanded ") + title)
        self._notify_change()
        return state

    # --- Derived output ---

    def layout(self) -> Optional[LayoutResult]:
        if self._model is None:
            return None
        return layout(self._model, self._collapsed, self._config)

    def drawing(self) -> Drawing:
        """Draw commands for the current state; empty while the source has an error."""
        if self._model is None:
            return Drawing()
        return render(self._model, self._collapsed, self._config)

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        return {
            "source": self._source,
            "status": {"ok": self._status_ok, "message": self._status},
            "error": self._error.to_dict() if self._error else None,
            "model": self._model.to_json_dict() if self._model else None,
            "collapsed": sorted(self._collapsed),
            "drawing": self.drawing().to_dict(),
        }

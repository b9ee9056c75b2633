"""
Pagecraft Kernel: the document model and edit-history engine.

Components:
  normalizer  (any input) -> canonical document  (total, idempotent)
  defaults    per-type default content, section and project factories
  merge       partial patch + canonical value -> canonical value
  reducer     (editor state, action) -> ReduceResult  (pure, never raises)
  history     bounded undo/redo over whole-project snapshots
  selection   keeps the selection pointer valid across structural edits
  editor      one session per document: validate -> reduce -> notify

The CSV import collaborator builds `storeCsv` fragments with `parse_csv` and
`build_store_csv`; renderers resolve background presets with
`resolve_background`.

Importing the package registers the built-in default-content providers.
"""

from pagecraft.kernel import defaults  # noqa: F401  (registers providers)
from pagecraft.kernel.actions import make_action
from pagecraft.kernel.background import normalize_background_spec, resolve_background
from pagecraft.kernel.defaults import create_default_project, create_section
from pagecraft.kernel.editor import ActionRejected, Editor, UnknownActionError
from pagecraft.kernel.normalizer import normalize_project, normalize_section, register_default_content
from pagecraft.kernel.reducer import initial_state, projects_equal, reduce
from pagecraft.kernel.stores import build_store_csv, build_stores_from_store_csv, parse_csv
from pagecraft.kernel.validation import validate_action

__all__ = [
    "validate_action",
    "reduce",
    "initial_state",
    "projects_equal",
    "make_action",
    "normalize_project",
    "normalize_section",
    "register_default_content",
    "create_default_project",
    "create_section",
    "Editor",
    "ActionRejected",
    "UnknownActionError",
    "parse_csv",
    "build_store_csv",
    "build_stores_from_store_csv",
    "normalize_background_spec",
    "resolve_background",
]

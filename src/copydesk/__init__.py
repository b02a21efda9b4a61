"""copydesk - local-first project/document store for a copywriting workspace.

Keeps projects, folders, versioned documents, personas and brand voice in a
device-local store that is mirrored best-effort to a remote API, and tracks
the active project/document/tool state of the workspace UI.

Package entry point. Exports the version string only; functional modules
are imported explicitly by callers and by main.py.
"""

__version__ = "0.1.0"

"""
frflow: French lesson generation with a deduplicated review notebook.

Packages:
- core: domain models, identity hashing, storage modes, exceptions
- storage: local SQLite store, remote HTTP store and the routing adapter
- archive: lesson archival and notebook merges
- delivery: interval-ladder review scheduling
- generation: provider client producing lessons
- cli: Typer command-line interface
"""

__version__ = "0.1.0"

"""Quire static blog generator.

Quire turns a folder of Markdown documents with YAML front matter into a
static blog, using a bundled Jinja2 theme configured from ``quire.yaml``.

The main entry point is the CLI module, which provides commands for
scaffolding new projects, creating posts, building sites, and running the
development server.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"

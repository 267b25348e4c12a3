"""
Helix — blueprint compiler.

Parses .helix blueprints into an AST and derives schema, API and UI
artifacts for a target platform, with self-healing around every
step that depends on an external completion call.
"""

__version__ = "0.1.0"

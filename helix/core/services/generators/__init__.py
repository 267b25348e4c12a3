"""
Generators — derive artifacts from a parsed blueprint.

Each generator module exposes a pure ``generate_*()`` function that
returns a list of ``GeneratedFile`` instances, plus a builder for the
underlying target-agnostic descriptor. Generators never perform I/O.
"""

"""Adapters — bindings for the compiler's external collaborators.

Public re-exports for convenient access.
"""

from helix.adapters.filesystem import WriteResult, merge_manifests, summarize_manifest, write_manifest
from helix.adapters.openrouter import AVAILABLE_MODELS, CompletionClient, OpenRouterClient
from helix.adapters.process import ProcessResult, ProcessRunner

__all__ = [
    "AVAILABLE_MODELS",
    "CompletionClient",
    "OpenRouterClient",
    "ProcessResult",
    "ProcessRunner",
    "WriteResult",
    "merge_manifests",
    "summarize_manifest",
    "write_manifest",
]

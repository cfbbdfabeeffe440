from photobook.draft.cache import DraftCache, JsonDraftCache, MemoryDraftCache
from photobook.draft.store import DraftInvariantError, DraftStore, ProofFileError

__all__ = [
    "DraftCache",
    "DraftInvariantError",
    "DraftStore",
    "JsonDraftCache",
    "MemoryDraftCache",
    "ProofFileError",
]

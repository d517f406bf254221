"""Public interface definitions for all external collaborators.

Every external service Examly talks to is reached through the abstract
base classes defined here.  Concrete adapters live in
``examly/providers/`` and are constructed once in ``examly/main.py``, then
injected into the services that need them.

CONCRETE PROVIDER MAP:
    Interface              →  Concrete implementations (in examly/providers/)
    ─────────────────────────────────────────────────────────────────
    ILLMProvider           →  AnthropicLLMProvider, OpenAILLMProvider,
                              OllamaLLMProvider
    IBlobStore             →  LocalBlobStore
    IVideoSearchProvider   →  YouTubeVideoProvider
    IMaterialStore         →  SQLiteMaterialStore
"""

from examly.interfaces.blob_store import IBlobStore
from examly.interfaces.llm_provider import ILLMProvider
from examly.interfaces.material_store import IMaterialStore
from examly.interfaces.video_search_provider import IVideoSearchProvider, VideoResult

__all__ = [
    "IBlobStore",
    "ILLMProvider",
    "IMaterialStore",
    "IVideoSearchProvider",
    "VideoResult",
]

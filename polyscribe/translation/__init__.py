# polyscribe/translation/__init__.py
# Translation — engines, offline tables and the caching orchestrator

from polyscribe.translation.engines import (  # noqa: F401
    AUTO,
    OfflineDictionaryEngine,
    OpenAITranslationEngine,
    TranslationEngine,
    TranslationRequest,
    TranslationResult,
)
from polyscribe.translation.orchestrator import (  # noqa: F401
    TranslationCacheEntry,
    TranslationOrchestrator,
)

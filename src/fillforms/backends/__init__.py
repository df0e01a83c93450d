"""External collaborator clients."""

from fillforms.backends.document_intelligence import DocumentIntelligenceHTTPClient
from fillforms.backends.draft_http import HTTPDraftStore
from fillforms.backends.profile_http import HTTPProfileStore
from fillforms.backends.vision_openai import OpenAIVisionClient
from fillforms.typing.protocol import (
    DocumentIntelligenceClient,
    DraftStore,
    ProfileStore,
    VisionValidationClient,
)

__all__ = [
    "DocumentIntelligenceClient",
    "DocumentIntelligenceHTTPClient",
    "DraftStore",
    "HTTPDraftStore",
    "HTTPProfileStore",
    "OpenAIVisionClient",
    "ProfileStore",
    "VisionValidationClient",
]

# text embedding clients

from ondevice_ai.common.services.embedding_service.text_embedding.dispatcher import TypedTextEmbeddingClient
from ondevice_ai.common.services.embedding_service.text_embedding.protocols import TextEmbeddingProvider, TypedTextEmbeddingProtocol

# NOTE: only supports the generic wrappers here
__all__ = ["TypedTextEmbeddingClient", "TextEmbeddingProvider", "TypedTextEmbeddingProtocol"]

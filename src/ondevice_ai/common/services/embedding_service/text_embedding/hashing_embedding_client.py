# Deterministic offline embedder, used when no embedding API key is configured (and in tests).
# Feature-hashes word tokens into a fixed-size vector, so texts sharing words land close together.

import hashlib
import re

import numpy as np

from ondevice_ai.common.services.embedding_service.text_embedding.protocols import TypedTextEmbeddingProtocol, ProvidesProviderInfo
from ondevice_ai.common.services.embedding_service.text_embedding.protocols import TextEmbeddingProvider

# unicode word characters, so non-Latin scripts still produce tokens
_TOKEN_PATTERN = re.compile(r"\w+(?:'\w+)?")

class HashingTextEmbeddingClient(TypedTextEmbeddingProtocol, ProvidesProviderInfo):
    def __init__(self, embedding_size: int = 1536):
        if embedding_size <= 0:
            raise ValueError("embedding_size must be positive")
        self.embedding_size = embedding_size
        self.provider = TextEmbeddingProvider.HASHING
        self.model = f"feature-hashing-{embedding_size}"

    @staticmethod
    def tokenize(text: str) -> list[str]:
        """Casefolded word tokens with possessive suffixes dropped ("user's" -> "user")."""
        tokens = []
        for token in _TOKEN_PATTERN.findall(text.casefold()):
            if token.endswith("'s"):
                token = token[:-2]
            tokens.append(token.replace("'", ""))
        return tokens

    def _bucket(self, token: str) -> tuple[int, float]:
        # md5 instead of hash(): stable across processes (PYTHONHASHSEED)
        digest = hashlib.md5(token.encode("utf-8")).digest()
        index = int.from_bytes(digest[:4], "little") % self.embedding_size
        sign = 1.0 if digest[4] & 1 else -1.0
        return index, sign

    def embed_one(self, text: str) -> list[float]:
        vector = np.zeros(self.embedding_size, dtype=np.float64)
        for token in self.tokenize(text):
            index, sign = self._bucket(token)
            vector[index] += sign
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()

    async def aembed_text(self, text: list[str], **kwargs) -> list[list[float]]:
        return [self.embed_one(t) for t in text]

# memory.py
# Semantic store used by the relevance filter.
#
# The planner only depends on the SemanticMemory protocol
# (upsert / get / search). VolatileMemoryStore is an in-process
# implementation backed by a pluggable embedding model and cosine similarity.

import hashlib
import threading
from typing import Protocol

import numpy as np
from openai import OpenAI, OpenAIError

from sequential_planner.errors import StoreUnavailableError
from sequential_planner.models import MemoryRecord, SearchResult


class SemanticMemory(Protocol):
    def upsert(self, collection: str, key: str, embedding_text: str, description: str) -> None: ...

    def get(self, collection: str, key: str) -> MemoryRecord | None: ...

    def search(self, collection: str, query: str, k: int, min_score: float) -> list[SearchResult]: ...


class EmbeddingModel(Protocol):
    def embed(self, texts: list[str]) -> list[list[float]]: ...


# ---------------------------------------------------------------------------
# Embedding models
# ---------------------------------------------------------------------------


class OpenAIEmbeddingModel:
    """Embeddings from any OpenAI-compatible /embeddings endpoint."""

    def __init__(self, client: OpenAI, model: str) -> None:
        self._client = client
        self._model = model

    def embed(self, texts: list[str]) -> list[list[float]]:
        response = self._client.embeddings.create(model=self._model, input=texts)
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


class HashingEmbeddingModel:
    """
    Deterministic, offline bag-of-words embedding.

    Good enough for smoke tests and demos without an embeddings endpoint;
    not intended for high-quality retrieval.
    """

    def __init__(self, dim: int = 384) -> None:
        self.dim = int(dim)

    def embed(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for text in texts:
            vec = np.zeros(self.dim, dtype=np.float32)
            for token in _tokenize(text):
                h = int.from_bytes(hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest(), "big")
                vec[h % self.dim] += 1.0 if (h >> 63) & 1 else -1.0
            norm = float(np.linalg.norm(vec))
            if norm > 0:
                vec /= norm
            vectors.append(vec.tolist())
        return vectors


def _tokenize(text: str) -> list[str]:
    out: list[str] = []
    buf: list[str] = []
    for ch in text or "":
        if ch.isalnum():
            buf.append(ch.lower())
        elif buf:
            out.append("".join(buf))
            buf = []
    if buf:
        out.append("".join(buf))
    return out


# ---------------------------------------------------------------------------
# VolatileMemoryStore
# ---------------------------------------------------------------------------


class VolatileMemoryStore:
    """
    In-process semantic store. Contents live only as long as the instance.

    Safe for concurrent upserts; search on an empty or unknown collection
    raises StoreUnavailableError since there is nothing to rank against.
    """

    def __init__(self, embedding_model: EmbeddingModel) -> None:
        self._embedding_model = embedding_model
        self._collections: dict[str, dict[str, tuple[MemoryRecord, np.ndarray]]] = {}
        self._lock = threading.Lock()

    def _embed(self, collection: str, texts: list[str]) -> list[np.ndarray]:
        try:
            raw = self._embedding_model.embed(texts)
        except OpenAIError as exc:
            raise StoreUnavailableError(collection, f"embedding request failed: {exc}") from exc
        return [np.asarray(v, dtype=np.float32) for v in raw]

    def upsert(self, collection: str, key: str, embedding_text: str, description: str) -> None:
        (vector,) = self._embed(collection, [embedding_text])
        record = MemoryRecord(
            collection=collection,
            key=key,
            embedding_text=embedding_text,
            description=description,
        )
        with self._lock:
            self._collections.setdefault(collection, {})[key] = (record, vector)

    def get(self, collection: str, key: str) -> MemoryRecord | None:
        with self._lock:
            entry = self._collections.get(collection, {}).get(key)
        return entry[0] if entry else None

    def search(self, collection: str, query: str, k: int, min_score: float) -> list[SearchResult]:
        with self._lock:
            entries = list(self._collections.get(collection, {}).values())
        if not entries:
            raise StoreUnavailableError(collection, "collection is empty")

        (query_vec,) = self._embed(collection, [query])
        query_norm = float(np.linalg.norm(query_vec))
        if query_norm == 0:
            return []

        scored: list[SearchResult] = []
        for record, vector in entries:
            norm = float(np.linalg.norm(vector))
            if norm <= 0:
                continue
            score = float(np.dot(query_vec, vector) / (query_norm * norm))
            if score >= min_score:
                scored.append(SearchResult(key=record.key, score=score))

        scored.sort(key=lambda r: (-r.score, r.key))
        return scored[: max(int(k), 1)]

    def __len__(self) -> int:
        with self._lock:
            return sum(len(c) for c in self._collections.values())

"""Unit tests for embedding provider adapters and the per-document ChunkEmbedder."""

from __future__ import annotations

import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock, patch

import openai
import pytest

from libdocs.config.settings import Settings
from libdocs.interfaces.embedding_provider import IEmbeddingProvider
from libdocs.models.document import DocumentChunk
from libdocs.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from libdocs.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from libdocs.services.ingestion.chunk_embedder import ChunkEmbedder
from libdocs.utils.errors import EmbeddingError


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def _chunks(count: int, document_id: str = "doc-1") -> list[DocumentChunk]:
    return [
        DocumentChunk(id=f"c{i}", document_id=document_id, chunk_index=i, text=f"chunk {i}")
        for i in range(count)
    ]


def _openai_response(vectors: list[list[float]]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=10)
    return response


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def test_provider_metadata(self) -> None:
        provider = OpenAIEmbeddingProvider(_settings(), client=AsyncMock())
        assert provider.get_provider_name() == "openai_embedding"
        assert provider.get_dimension() == 1536
        assert provider.is_available() is True

    def test_compatible_endpoint_label(self) -> None:
        provider = OpenAIEmbeddingProvider(
            _settings(
                openai_base_url="https://api.together.xyz/v1",
                openai_embedding_model="BAAI/bge-base-en-v1.5",
            ),
            client=AsyncMock(),
        )
        assert provider.get_provider_name() == "openai-compatible_embedding"
        assert provider.get_dimension() == 768

    def test_unavailable_without_key(self) -> None:
        provider = OpenAIEmbeddingProvider(_settings(openai_api_key=""), client=AsyncMock())
        assert provider.is_available() is False

    async def test_embed_batch(self) -> None:
        client = AsyncMock()
        client.embeddings.create = AsyncMock(
            return_value=_openai_response([[0.1] * 1536, [0.2] * 1536])
        )
        provider = OpenAIEmbeddingProvider(_settings(), client=client)

        result = await provider.embed(["hello", "world"])

        assert len(result) == 2
        assert len(result[0]) == 1536
        client.embeddings.create.assert_awaited_once_with(
            input=["hello", "world"], model="text-embedding-3-small"
        )

    async def test_embed_empty_makes_no_call(self) -> None:
        client = AsyncMock()
        provider = OpenAIEmbeddingProvider(_settings(), client=client)
        assert await provider.embed([]) == []
        client.embeddings.create.assert_not_called()

    async def test_small_context_model_truncates_inputs(self) -> None:
        client = AsyncMock()
        client.embeddings.create = AsyncMock(return_value=_openai_response([[0.0] * 768]))
        provider = OpenAIEmbeddingProvider(
            _settings(openai_embedding_model="BAAI/bge-base-en-v1.5"), client=client
        )
        await provider.embed(["x" * 5000])
        sent = client.embeddings.create.call_args.kwargs["input"]
        assert len(sent[0]) == 512 * 3

    async def test_api_error_becomes_embedding_error(self) -> None:
        client = AsyncMock()
        client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(message="Rate limit", request=MagicMock(), body=None)
        )
        provider = OpenAIEmbeddingProvider(_settings(), client=client)
        with pytest.raises(EmbeddingError) as excinfo:
            await provider.embed(["test"])
        assert excinfo.value.provider_name == "openai_embedding"

    def test_builds_client_from_settings(self) -> None:
        with patch(
            "libdocs.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"
        ) as client_cls:
            OpenAIEmbeddingProvider(_settings(openai_base_url="http://localhost:8080/v1"))
        kwargs = client_cls.call_args.kwargs
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["base_url"] == "http://localhost:8080/v1"


# ======================================================================
# FastEmbed Provider
# ======================================================================


class TestFastEmbedEmbeddingProvider:
    def test_defaults(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        assert provider.get_dimension() == 384
        assert provider.get_provider_name() == "fastembed_bge-small-en-v1.5"

    async def test_embed_uses_loaded_model(self) -> None:
        import numpy as np

        provider = FastEmbedEmbeddingProvider()
        model = MagicMock()
        model.embed = MagicMock(return_value=iter([np.ones(384), np.zeros(384)]))
        provider._model = model

        result = await provider.embed(["a", "b"])

        assert result[0] == [1.0] * 384
        assert result[1] == [0.0] * 384

    async def test_model_failure_becomes_embedding_error(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        model = MagicMock()
        model.embed = MagicMock(side_effect=RuntimeError("onnx crashed"))
        provider._model = model
        with pytest.raises(EmbeddingError):
            await provider.embed(["a"])

    async def test_inference_runs_off_the_event_loop(self) -> None:
        import numpy as np

        loop_thread = threading.get_ident()
        inference_threads: list[int] = []

        def fake_embed(batch):
            inference_threads.append(threading.get_ident())
            return iter([np.zeros(384) for _ in batch])

        provider = FastEmbedEmbeddingProvider()
        provider._model = MagicMock(embed=MagicMock(side_effect=fake_embed))

        await provider.embed(["a"] * 70)

        assert len(inference_threads) == 2
        assert loop_thread not in inference_threads

    async def test_model_loaded_once_in_worker_thread(self) -> None:
        import numpy as np

        loop_thread = threading.get_ident()
        load_threads: list[int] = []
        model = MagicMock()
        model.embed = MagicMock(side_effect=lambda batch: iter([np.ones(384) for _ in batch]))

        def fake_load():
            load_threads.append(threading.get_ident())
            return model

        provider = FastEmbedEmbeddingProvider()
        with patch.object(provider, "_load_model_sync", side_effect=fake_load):
            await asyncio.gather(provider.embed(["a"]), provider.embed_single("b"))

        assert len(load_threads) == 1
        assert load_threads[0] != loop_thread

    async def test_load_failure_becomes_embedding_error(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        with patch.object(provider, "_load_model_sync", side_effect=ImportError("no fastembed")):
            with pytest.raises(EmbeddingError, match="Could not load"):
                await provider.embed(["a"])


# ======================================================================
# ChunkEmbedder
# ======================================================================


def _mock_provider(dimension: int = 4) -> MagicMock:
    provider = MagicMock(spec=IEmbeddingProvider)
    provider.get_dimension.return_value = dimension
    provider.get_provider_name.return_value = "mock"
    provider.embed = AsyncMock()
    return provider


class TestChunkEmbedder:
    async def test_attaches_vectors_with_single_call(self) -> None:
        provider = _mock_provider()
        provider.embed.return_value = [[float(i)] * 4 for i in range(3)]

        chunks, error = await ChunkEmbedder(provider).embed_chunks(_chunks(3))

        assert error is None
        assert [c.embedding for c in chunks] == [[0.0] * 4, [1.0] * 4, [2.0] * 4]
        provider.embed.assert_awaited_once_with(["chunk 0", "chunk 1", "chunk 2"])

    async def test_provider_failure_returns_chunks_without_vectors(self) -> None:
        provider = _mock_provider()
        provider.embed.side_effect = EmbeddingError(message="down", provider_name="mock")

        chunks, error = await ChunkEmbedder(provider).embed_chunks(_chunks(2))

        assert isinstance(error, EmbeddingError)
        assert len(chunks) == 2
        assert all(c.embedding is None for c in chunks)

    async def test_count_mismatch_is_an_error(self) -> None:
        provider = _mock_provider()
        provider.embed.return_value = [[0.0] * 4]

        chunks, error = await ChunkEmbedder(provider).embed_chunks(_chunks(2))

        assert error is not None
        assert "Expected 2 embeddings" in error.message
        assert all(c.embedding is None for c in chunks)

    async def test_dimension_mismatch_is_an_error(self) -> None:
        provider = _mock_provider(dimension=4)
        provider.embed.return_value = [[0.0] * 3, [0.0] * 3]

        _, error = await ChunkEmbedder(provider).embed_chunks(_chunks(2))
        assert error is not None
        assert "dimension" in error.message

    async def test_no_chunks_no_call(self) -> None:
        provider = _mock_provider()
        chunks, error = await ChunkEmbedder(provider).embed_chunks([])
        assert (chunks, error) == ([], None)
        provider.embed.assert_not_called()

"""Unit tests for EmbeddingModel class."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import AsyncMock, MagicMock, Mock, patch
import httpx
from services.embedding_model import EmbeddingModel, EmbeddingError


def _response(status_code=200, payload=None, text="ok"):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = text
    return response


def _mock_async_client(mock_client_class, *responses):
    """Wire httpx.AsyncClient so successive posts return the given responses."""
    post = AsyncMock(side_effect=list(responses))
    mock_client = MagicMock()
    mock_client.post = post
    mock_client.is_closed = False
    mock_client.aclose = AsyncMock()
    mock_client_class.return_value = mock_client
    return post


class TestEmbeddingModel:
    """Test suite for EmbeddingModel."""

    def test_initialization_success(self):
        model = EmbeddingModel(api_key="test_key")
        assert model.api_key == "test_key"
        assert model.model_name == "sentence-transformers/all-mpnet-base-v2"
        assert model.max_retries == 5
        assert model.model_name in model.api_url

    def test_initialization_without_api_key(self):
        with pytest.raises(ValueError, match="HUGGINGFACE_API_KEY"):
            EmbeddingModel(api_key=None)

    @pytest.mark.asyncio
    async def test_embed_text_empty_string(self):
        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(ValueError, match="Text cannot be empty"):
            await model.embed_text("")

        with pytest.raises(ValueError, match="Text cannot be empty"):
            await model.embed_text("   ")

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient')
    async def test_embed_text_success(self, mock_client_class):
        post = _mock_async_client(mock_client_class, _response(payload=[[0.1, 0.2, 0.3]]))

        model = EmbeddingModel(api_key="test_key")
        result = await model.embed_text("test text")

        assert result == [0.1, 0.2, 0.3]
        call_kwargs = post.call_args.kwargs
        assert call_kwargs["json"]["inputs"] == ["test text"]
        assert call_kwargs["headers"]["Authorization"] == "Bearer test_key"

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient')
    async def test_embed_text_no_vector_raises(self, mock_client_class):
        _mock_async_client(mock_client_class, _response(payload=[]))

        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(EmbeddingError, match="Failed to generate embedding"):
            await model.embed_text("test text")

    @pytest.mark.asyncio
    @patch('services.embedding_model.asyncio.sleep', new_callable=AsyncMock)
    @patch('httpx.AsyncClient')
    async def test_retry_on_503(self, mock_client_class, mock_sleep):
        post = _mock_async_client(
            mock_client_class,
            _response(status_code=503, payload={"estimated_time": 20}),
            _response(status_code=503, payload={"estimated_time": 20}),
            _response(payload=[[0.5, 0.5]])
        )

        model = EmbeddingModel(api_key="test_key", initial_delay=1.0)
        result = await model.embed_text("test text")

        assert result == [0.5, 0.5]
        assert post.await_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    @patch('services.embedding_model.asyncio.sleep', new_callable=AsyncMock)
    @patch('httpx.AsyncClient')
    async def test_503_exhausts_retries(self, mock_client_class, mock_sleep):
        _mock_async_client(
            mock_client_class,
            *[_response(status_code=503, payload={}) for _ in range(3)]
        )

        model = EmbeddingModel(api_key="test_key", max_retries=3)

        with pytest.raises(EmbeddingError, match="after 3 attempts"):
            await model.embed_text("test text")

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient')
    async def test_rate_limit_not_retried(self, mock_client_class):
        post = _mock_async_client(mock_client_class, _response(status_code=429))

        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(EmbeddingError, match="Rate limit exceeded"):
            await model.embed_text("test text")
        assert post.await_count == 1

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient')
    async def test_authentication_error(self, mock_client_class):
        _mock_async_client(mock_client_class, _response(status_code=401))

        model = EmbeddingModel(api_key="bad_key")

        with pytest.raises(EmbeddingError, match="Invalid API key"):
            await model.embed_text("test text")

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient')
    async def test_other_status_error(self, mock_client_class):
        _mock_async_client(mock_client_class, _response(status_code=500, text="Internal Server Error"))

        model = EmbeddingModel(api_key="test_key")

        with pytest.raises(EmbeddingError, match="status 500"):
            await model.embed_text("test text")

    @pytest.mark.asyncio
    @patch('services.embedding_model.asyncio.sleep', new_callable=AsyncMock)
    @patch('httpx.AsyncClient')
    async def test_timeout_retried_then_fails(self, mock_client_class, mock_sleep):
        _mock_async_client(
            mock_client_class,
            httpx.TimeoutException("Request timeout"),
            httpx.TimeoutException("Request timeout")
        )

        model = EmbeddingModel(api_key="test_key", max_retries=2, timeout=30.0)

        with pytest.raises(EmbeddingError, match="Request timeout after 30.0s"):
            await model.embed_text("test text")
        assert mock_sleep.await_count == 1

    @pytest.mark.asyncio
    @patch('services.embedding_model.asyncio.sleep', new_callable=AsyncMock)
    @patch('httpx.AsyncClient')
    async def test_network_error_then_success(self, mock_client_class, mock_sleep):
        _mock_async_client(
            mock_client_class,
            httpx.ConnectError("Connection refused"),
            _response(payload=[[1.0, 0.0]])
        )

        model = EmbeddingModel(api_key="test_key")

        assert await model.embed_text("test text") == [1.0, 0.0]

    @pytest.mark.asyncio
    @patch('services.embedding_model.asyncio.sleep', new_callable=AsyncMock)
    @patch('httpx.AsyncClient')
    async def test_client_reused_across_calls_and_retries(self, mock_client_class, mock_sleep):
        post = _mock_async_client(
            mock_client_class,
            _response(status_code=503, payload={}),
            _response(payload=[[0.1]]),
            _response(payload=[[0.2]])
        )

        model = EmbeddingModel(api_key="test_key", timeout=30.0)
        assert await model.embed_text("first") == [0.1]
        assert await model.embed_text("second") == [0.2]

        assert post.await_count == 3
        mock_client_class.assert_called_once_with(timeout=30.0)

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient')
    async def test_aclose_closes_client(self, mock_client_class):
        _mock_async_client(mock_client_class, _response(payload=[[0.1]]))
        client = mock_client_class.return_value

        model = EmbeddingModel(api_key="test_key")
        await model.aclose()  # nothing opened yet
        await model.embed_text("test text")
        await model.aclose()

        client.aclose.assert_awaited_once()
        assert model._client is None

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient')
    async def test_closed_client_is_replaced(self, mock_client_class):
        _mock_async_client(mock_client_class, _response(payload=[[0.1]]), _response(payload=[[0.2]]))

        model = EmbeddingModel(api_key="test_key")
        await model.embed_text("first")
        mock_client_class.return_value.is_closed = True
        await model.embed_text("second")

        assert mock_client_class.call_count == 2

    @pytest.mark.asyncio
    async def test_warmup_reports_failure(self):
        model = EmbeddingModel(api_key="test_key")

        with patch.object(model, 'embed_text', AsyncMock(side_effect=EmbeddingError("down"))):
            assert await model.warmup() is False

        with patch.object(model, 'embed_text', AsyncMock(return_value=[0.1])):
            assert await model.warmup() is True

import pytest
from unittest.mock import patch, MagicMock

from hub.main import app, lifespan, log_requests, root
from hub.config import settings

@pytest.mark.asyncio
async def test_lifespan_starts_scheduler():
    mock_app = MagicMock()

    with patch.object(settings, "SCHEDULER_ENABLED", True):
        with patch('hub.main.start_scheduler') as mock_start:
            with patch('hub.main.stop_scheduler') as mock_stop:
                async with lifespan(mock_app):
                    mock_start.assert_called_once()
                    mock_stop.assert_not_called()

                mock_stop.assert_called_once()

@pytest.mark.asyncio
async def test_lifespan_scheduler_disabled():
    mock_app = MagicMock()

    with patch.object(settings, "SCHEDULER_ENABLED", False):
        with patch('hub.main.start_scheduler') as mock_start:
            with patch('hub.main.stop_scheduler') as mock_stop:
                async with lifespan(mock_app):
                    pass

    mock_start.assert_not_called()
    mock_stop.assert_not_called()

@pytest.mark.asyncio
async def test_log_requests_middleware():
    mock_request = MagicMock()
    mock_request.url.path = "/go/summer-sale"
    mock_request.method = "GET"

    mock_response = MagicMock()
    mock_response.status_code = 302

    async def mock_call_next(_):
        return mock_response

    with patch('hub.main.logger') as mock_logger:
        response = await log_requests(mock_request, mock_call_next)

    assert response == mock_response
    mock_logger.info.assert_called_once()
    assert "GET /go/summer-sale - 302" in mock_logger.info.call_args.args[0]

@pytest.mark.asyncio
async def test_log_requests_skips_other_paths():
    mock_request = MagicMock()
    mock_request.url.path = "/docs"

    async def mock_call_next(_):
        return MagicMock()

    with patch('hub.main.logger') as mock_logger:
        await log_requests(mock_request, mock_call_next)

    mock_logger.info.assert_not_called()

@pytest.mark.asyncio
async def test_root_endpoint():
    result = await root()

    assert result["message"] == "Creator Hub API"
    assert result["docs_url"] == "/docs"
    assert result["version"] == "1.0.0"

def test_routers_registered(client):
    paths = set(app.openapi()["paths"])

    assert "/links" in paths
    assert "/categories" in paths
    assert "/analytics/summary" in paths
    assert "/youtube/videos" in paths

    # /go/{slug} скрыт из схемы, проверяем его запросом
    assert "/go/{slug}" not in paths
    response = client.get("/go/nonexistent", follow_redirects=False)
    assert response.status_code == 404
    assert response.json()["detail"] == "Ссылка не найдена"

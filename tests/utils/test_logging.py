from unittest.mock import MagicMock, patch

from swipematch.utils.errors import StorageUnavailableError
from swipematch.utils.logging import configure_logging, get_logger, log_error


@patch("swipematch.utils.logging.structlog")
@patch("swipematch.utils.logging.logging")
@patch("swipematch.utils.logging.settings")
def test_configure_logging_development(mock_settings, mock_logging, mock_structlog):
    mock_settings.LOG_LEVEL = "DEBUG"
    mock_settings.ENVIRONMENT = "development"

    configure_logging()

    mock_logging.basicConfig.assert_called_once()
    _args, kwargs = mock_logging.basicConfig.call_args
    assert kwargs["level"] == mock_logging.DEBUG

    mock_structlog.configure.assert_called_once()
    processors = mock_structlog.configure.call_args[1]["processors"]
    assert mock_structlog.dev.ConsoleRenderer.return_value in processors


@patch("swipematch.utils.logging.structlog")
@patch("swipematch.utils.logging.logging")
@patch("swipematch.utils.logging.settings")
def test_configure_logging_production(mock_settings, mock_logging, mock_structlog):
    mock_settings.LOG_LEVEL = "INFO"
    mock_settings.ENVIRONMENT = "production"

    configure_logging()

    processors = mock_structlog.configure.call_args[1]["processors"]
    assert mock_structlog.processors.JSONRenderer.return_value in processors
    assert mock_structlog.dev.ConsoleRenderer.return_value not in processors


@patch("swipematch.utils.logging.structlog")
def test_get_logger(mock_structlog):
    mock_logger = MagicMock()
    mock_structlog.get_logger.return_value = mock_logger

    logger = get_logger("test_logger", foo="bar")

    mock_structlog.get_logger.assert_called_with("test_logger")
    mock_logger.bind.assert_called_with(foo="bar")
    assert logger == mock_logger.bind.return_value


def test_log_error_includes_details_and_retryable():
    mock_logger = MagicMock()
    error = StorageUnavailableError("lock timeout", details={"key": "user:1"})

    log_error(mock_logger, error, "Swipe failed", extra={"swiper_id": 1})

    mock_logger.error.assert_called_once()
    args, kwargs = mock_logger.error.call_args
    assert args[0] == "Swipe failed"
    assert kwargs["swiper_id"] == 1
    assert kwargs["error_type"] == "StorageUnavailableError"
    assert kwargs["error_message"] == "lock timeout"
    assert kwargs["error_details"] == {"key": "user:1"}
    assert kwargs["retryable"] is True
    assert kwargs["exc_info"] is error


def test_log_error_plain_exception():
    mock_logger = MagicMock()
    extra = {"a": 1}

    log_error(mock_logger, ValueError("boom"), extra=extra)

    args, kwargs = mock_logger.error.call_args
    assert args[0] == "An error occurred"
    assert "error_details" not in kwargs
    assert extra == {"a": 1}

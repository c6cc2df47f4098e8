from unittest.mock import patch

from trainlog.config.settings import settings
from trainlog.core.logger import setup_logger


def test_defaults_come_from_settings(tmp_path):
    log_file = tmp_path / "logs" / "trainlog.log"
    with (
        patch.object(settings, "log_level", "WARNING"),
        patch.object(settings, "log_file", str(log_file)),
        patch.object(settings, "log_json", False),
        patch("trainlog.core.logger.logger") as mock_logger,
    ):
        setup_logger()

    console, file_sink = mock_logger.add.call_args_list
    assert console.kwargs["level"] == "WARNING"
    assert file_sink.args[0] == log_file
    assert file_sink.kwargs["level"] == "WARNING"
    assert log_file.parent.is_dir()


def test_explicit_arguments_override_settings():
    with (
        patch.object(settings, "log_level", "WARNING"),
        patch.object(settings, "log_file", None),
        patch.object(settings, "log_json", True),
        patch("trainlog.core.logger.logger") as mock_logger,
    ):
        setup_logger(level="DEBUG", json_logs=False)

    mock_logger.add.assert_called_once()
    assert mock_logger.add.call_args.kwargs["level"] == "DEBUG"
    assert "serialize" not in mock_logger.add.call_args.kwargs


def test_json_logs_serialize_console_output():
    with (
        patch.object(settings, "log_file", None),
        patch.object(settings, "log_json", True),
        patch("trainlog.core.logger.logger") as mock_logger,
    ):
        setup_logger(level="INFO")

    assert mock_logger.add.call_args.kwargs["serialize"] is True

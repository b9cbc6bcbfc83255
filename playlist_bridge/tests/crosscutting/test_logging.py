import json
import logging
import os
import tempfile
from unittest.mock import Mock

from playlist_bridge.crosscutting.logging import (
    CompositeObserver, CorrelationContext, LoggingObserver, SecretMasker, StructuredFormatter,
    conversion_id_var, log_error, log_with_fields, provider_var, setup_logging, stage_var,
)


def _record(message='Test message', fields=None, exc_info=None):
    record = Mock()
    record.levelname = 'INFO'
    record.name = 'test_logger'
    record.getMessage.return_value = message
    record.module = 'test_module'
    record.funcName = 'test_function'
    record.lineno = 42
    record.exc_info = exc_info
    record.fields = fields
    return record


class TestSecretMasker:
    """Tests for secret masking functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.masker = SecretMasker()

    def test_mask_api_token(self):
        masked = self.masker.mask_secrets("API token: abc123def456ghi789")
        assert masked == "API token: abc1**********i789"

    def test_mask_client_secret(self):
        masked = self.masker.mask_secrets("client_secret: my_super_secret_key_12345")
        assert masked == "client_secret: my_s*****************2345"

    def test_mask_api_key_query_param(self):
        text = "GET /youtube/v3/search?q=roads&key=AIzaSyA1234567890abcdefghij"
        masked = self.masker.mask_secrets(text)
        assert "AIzaSyA1234567890abcdefghij" not in masked
        assert "AIza" in masked

    def test_mask_refresh_token(self):
        text = "refresh_token=AbCdEfGhIjKlMnOpQrStUvWxYz0123"
        masked = self.masker.mask_secrets(text)
        assert "AbCdEfGhIjKlMnOpQrStUvWxYz0123" not in masked

    def test_no_secrets_in_text(self):
        text = "Matched 2/3 tracks on youtube (66.67%)"
        assert self.masker.mask_secrets(text) == text

    def test_short_secret_is_left_alone(self):
        assert self.masker.mask_secrets("token: abc123") == "token: abc123"

    def test_empty_text(self):
        assert self.masker.mask_secrets("") == ""
        assert self.masker.mask_secrets(None) is None

    def test_mask_dict_values(self):
        data = {
            'note': 'token: abcdefghijkl',
            'nested': {'header': 'bearer abcdefghijklmnopqrstuvwxyz'},
            'items': ['plain', 3],
            'count': 3,
        }
        masked = self.masker.mask_dict(data)

        assert 'abcdefghijkl' not in masked['note']
        assert 'abcdefghijklmnopqrstuvwxyz' not in masked['nested']['header']
        assert masked['items'] == ['plain', 3]
        assert masked['count'] == 3


class TestStructuredFormatter:
    """Tests for structured logging formatter."""

    def setup_method(self):
        """Set up test fixtures."""
        self.formatter = StructuredFormatter()

    def test_format_basic_log(self):
        data = json.loads(self.formatter.format(_record()))

        assert data['level'] == 'INFO'
        assert data['logger'] == 'test_logger'
        assert data['message'] == 'Test message'
        assert data['line'] == 42
        assert data['ts'].endswith('Z')
        assert 'conversionId' not in data

    def test_format_with_correlation(self):
        with CorrelationContext(conversion_id='conv_1', stage='matching', provider='youtube'):
            data = json.loads(self.formatter.format(_record()))

        assert data['conversionId'] == 'conv_1'
        assert data['stage'] == 'matching'
        assert data['provider'] == 'youtube'

    def test_format_masks_message(self):
        data = json.loads(self.formatter.format(_record('API token: secret123456')))
        assert data['message'] == 'API token: secr****3456'

    def test_format_with_fields(self):
        record = _record(fields={'user_id': 'user123', 'note': 'client_secret: abcdefghijklmnopqrstuvwxyz'})

        data = json.loads(self.formatter.format(record))

        assert data['fields']['user_id'] == 'user123'
        assert 'abcdefghijklmnopqrstuvwxyz' not in data['fields']['note']

    def test_format_with_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError as e:
            record = _record(exc_info=(ValueError, e, e.__traceback__))

        data = json.loads(self.formatter.format(record))

        assert 'ValueError' in data['exception']
        assert 'Test error' in data['exception']


class TestCorrelationContext:
    """Tests for correlation context management."""

    def test_values_restored_on_exit(self):
        with CorrelationContext(conversion_id='outer'):
            assert conversion_id_var.get() == 'outer'
            with CorrelationContext(stage='extracting'):
                assert conversion_id_var.get() == 'outer'
                assert stage_var.get() == 'extracting'
            assert stage_var.get() is None

        assert conversion_id_var.get() is None

    def test_partial_context(self):
        with CorrelationContext(provider='spotify'):
            assert provider_var.get() == 'spotify'
            assert conversion_id_var.get() is None


class TestLoggingIntegration:
    """Integration tests writing JSON lines to a log file."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.log_file = os.path.join(self.temp_dir, 'test.log')

    def teardown_method(self):
        """Clean up test fixtures."""
        logger = logging.getLogger('playlist_bridge')
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        if os.path.exists(self.log_file):
            os.remove(self.log_file)
        os.rmdir(self.temp_dir)

    def _lines(self):
        with open(self.log_file, 'r') as f:
            return [json.loads(line) for line in f if line.strip()]

    def test_setup_logging(self):
        logger = setup_logging(level='DEBUG', log_file=self.log_file)

        assert logger.name == 'playlist_bridge'
        assert logger.level == logging.DEBUG

        logger.info('Test message')
        assert self._lines()[0]['message'] == 'Test message'

    def test_log_with_fields(self):
        logger = setup_logging(level='INFO', log_file=self.log_file)

        log_with_fields(logger, 'INFO', 'Converted', {'track_count': 3}, target='youtube')

        fields = self._lines()[0]['fields']
        assert fields == {'track_count': 3, 'target': 'youtube'}

    def test_log_error(self):
        logger = setup_logging(level='INFO', log_file=self.log_file)

        try:
            raise ValueError("Test error message")
        except ValueError as e:
            log_error(logger, "Operation failed", e, operation="convert")

        data = self._lines()[0]
        assert data['level'] == 'ERROR'
        assert data['fields']['error_type'] == 'ValueError'
        assert data['fields']['operation'] == 'convert'
        assert 'Test error message' in data['exception']

    def test_logging_observer(self):
        setup_logging(level='INFO', log_file=self.log_file)
        observer = LoggingObserver()

        observer.emit('quota_exceeded', level='WARNING', provider='youtube')
        observer.emit('stage_changed', level='DEBUG', stage='matching')

        lines = self._lines()
        assert len(lines) == 1
        assert lines[0]['level'] == 'WARNING'
        assert lines[0]['message'] == 'quota_exceeded'
        assert lines[0]['fields'] == {'event': 'quota_exceeded', 'provider': 'youtube'}

    def test_logging_observer_unknown_level_defaults_to_info(self):
        setup_logging(level='INFO', log_file=self.log_file)

        LoggingObserver().emit('conversion_started', level='LOUD')

        assert self._lines()[0]['level'] == 'INFO'


class TestCompositeObserver:
    def test_fans_out(self):
        first, second = Mock(), Mock()

        CompositeObserver([first, second]).emit('track_matched', found=True)

        first.emit.assert_called_once_with('track_matched', 'INFO', found=True)
        second.emit.assert_called_once_with('track_matched', 'INFO', found=True)

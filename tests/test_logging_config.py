"""Tests for log masking and component logger setup."""

import logging

from common.logging_config import SensitiveDataFilter, get_logger, setup_logging


def make_record(msg, args=None):
    return logging.LogRecord("transfer.test", logging.INFO, __file__, 1, msg, args, None)


class TestSensitiveDataFilter:
    def test_masks_encryption_key(self):
        record = make_record('record {"encryptionKey": "abcdef0123"}')

        SensitiveDataFilter().filter(record)

        assert "abcdef0123" not in record.msg
        assert "***MASKED***" in record.msg

    def test_masks_bearer_token(self):
        record = make_record("sending Bearer eyJhbGciOi to pinata")

        SensitiveDataFilter().filter(record)

        assert "eyJhbGciOi" not in record.msg

    def test_masks_args(self):
        record = make_record("using %s", ("passphrase=hunter2",))

        SensitiveDataFilter().filter(record)

        assert record.args == ("passphrase=***MASKED***",)

    def test_leaves_root_digests_alone(self):
        message = "Upload complete [root=0xabc123]"
        record = make_record(message)

        SensitiveDataFilter().filter(record)

        assert record.msg == message


def test_setup_logging_installs_single_handler():
    logger = setup_logging('privshare-test-component', log_level='DEBUG')
    setup_logging('privshare-test-component', log_level='DEBUG')

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False
    assert get_logger('privshare-test-component.child').parent is logger

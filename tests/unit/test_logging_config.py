import io
import logging
import os

from i18n_ledger.logging_config import LOGGER_NAME, TqdmLoggingHandler, setup_logger


def teardown_function():
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()


def test_console_only_logger():
    logger = setup_logger('debug', None, True)

    assert logger.name == LOGGER_NAME
    assert logger.level == logging.DEBUG
    assert logger.propagate is False
    assert [type(h) for h in logger.handlers] == [TqdmLoggingHandler]


def test_file_handler_creates_the_log_directory(tmp_path):
    log_file = tmp_path / 'logs' / 'ledger.log'
    logger = setup_logger('INFO', str(log_file), False)

    logging.getLogger(LOGGER_NAME + '.engine').info("Loaded %d key(s)", 3)
    for handler in logger.handlers:
        handler.flush()

    assert os.path.isdir(tmp_path / 'logs')
    assert 'INFO - Loaded 3 key(s)' in log_file.read_text(encoding='utf-8')


def test_repeated_setup_does_not_duplicate_handlers():
    setup_logger('INFO', None, True)
    logger = setup_logger('INFO', None, True)
    assert len(logger.handlers) == 1


def test_unknown_level_falls_back_to_info():
    assert setup_logger('chatty', None, False).level == logging.INFO


def test_tqdm_handler_writes_formatted_records():
    stream = io.StringIO()
    handler = TqdmLoggingHandler(stream=stream)
    handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))

    handler.emit(logging.makeLogRecord({'levelname': 'WARNING', 'msg': 'careful'}))

    assert stream.getvalue() == 'WARNING - careful\n'

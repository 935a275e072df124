import logging

from locale_sync.logging_config import PACKAGE_LOGGER_NAME, TqdmLoggingHandler, setup_logger


def _reset(logger):
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True


def test_setup_logger_with_file_and_console(tmp_path):
    log_file = tmp_path / 'logs' / 'run.log'
    logger = setup_logger('debug', str(log_file), True)
    try:
        assert logger.name == PACKAGE_LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert any(isinstance(h, TqdmLoggingHandler) for h in logger.handlers)

        logging.getLogger('locale_sync.vcs').info("child message")
        for handler in logger.handlers:
            handler.flush()
        assert 'child message' in log_file.read_text(encoding='utf-8')
    finally:
        _reset(logger)


def test_repeated_setup_does_not_duplicate_handlers():
    setup_logger('INFO', '', True)
    logger = setup_logger('WARNING', '', True)
    try:
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
    finally:
        _reset(logger)


def test_unknown_level_defaults_to_info():
    logger = setup_logger('CHATTY', '', False)
    try:
        assert logger.level == logging.INFO
        assert logger.handlers == []
    finally:
        _reset(logger)


def test_unwritable_log_path_keeps_console(tmp_path, capsys):
    blocker = tmp_path / 'logs'
    blocker.write_text('not a directory', encoding='utf-8')

    logger = setup_logger('INFO', str(blocker / 'run.log'), True)
    try:
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], TqdmLoggingHandler)
        assert 'file logging disabled' in capsys.readouterr().err
    finally:
        _reset(logger)

import json
import logging

import pytest

from config.constants import LOG_LEVEL_ENV_VAR
from config.settings import (
    configure_logging,
    load_analysis_settings,
    resolve_log_level,
    save_analysis_settings,
)
from models.project import AnalysisConfig, ProjectValidator


@pytest.fixture
def settings_file(tmp_path):
    return tmp_path / "evm" / "analysis_config.json"


def test_missing_file_gives_defaults(settings_file):
    assert load_analysis_settings(settings_file) == AnalysisConfig()


def test_saved_settings_are_loaded(settings_file):
    config = AnalysisConfig(curve_type='s-curve', alpha=3.0, beta=2.5, currency_symbol='$')

    assert save_analysis_settings(config, settings_file) is True
    assert load_analysis_settings(settings_file) == config


def test_partial_file_is_merged_over_defaults(settings_file):
    settings_file.parent.mkdir(parents=True)
    settings_file.write_text(json.dumps({'currency_postfix': 'Million', 'theme': 'dark'}))

    config = load_analysis_settings(settings_file)

    assert config.currency_postfix == 'Million'
    assert config.curve_type == 'linear'


@pytest.mark.parametrize("content", [
    "{not json",
    json.dumps(["linear"]),
    json.dumps({'curve_type': 'exponential'}),
    json.dumps({'alpha': 0}),
    json.dumps({'status_threshold_low': 1.2, 'status_threshold_high': 1.0}),
])
def test_invalid_file_falls_back_to_defaults(settings_file, caplog, content):
    settings_file.parent.mkdir(parents=True)
    settings_file.write_text(content)

    assert load_analysis_settings(settings_file) == AnalysisConfig()
    assert "using defaults" in caplog.text


def test_invalid_settings_are_not_saved(settings_file, caplog):
    assert save_analysis_settings(AnalysisConfig(curve_type='cubic'), settings_file) is False
    assert not settings_file.exists()
    assert "not saving" in caplog.text


def test_validate_config():
    validator = ProjectValidator()

    assert validator.validate_config(AnalysisConfig()) == []
    assert len(validator.validate_config(AnalysisConfig(alpha=-1, beta=0))) == 2


def test_config_from_dict_ignores_unknown_keys():
    config = AnalysisConfig.from_dict({'curve_type': 's-curve', 'colour': 'blue'})

    assert config.curve_type == 's-curve'
    assert 'colour' not in config.to_dict()


class TestLogLevel:

    def test_explicit_level(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, 'ERROR')

        assert resolve_log_level('debug') == logging.DEBUG

    def test_environment_level(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, 'warning')

        assert resolve_log_level() == logging.WARNING

    def test_default_level(self, monkeypatch):
        monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)

        assert resolve_log_level() == logging.INFO

    def test_unknown_level(self, caplog):
        assert resolve_log_level('chatty') == logging.INFO
        assert "Unknown log level 'CHATTY'" in caplog.text

    def test_configure_logging_sets_root_level(self):
        root = logging.getLogger()
        previous = root.level
        try:
            configure_logging('DEBUG')
            assert root.level == logging.DEBUG
        finally:
            root.setLevel(previous)

import pytest

import settings


@pytest.fixture(autouse=True)
def fresh_cache(monkeypatch):
    monkeypatch.setattr(settings, '_ENV_CACHE', {})


def test_get_setting_reads_environment(monkeypatch):
    monkeypatch.setenv('RANK_TEST_SETTING', 'from-env')
    assert settings.get_setting('RANK_TEST_SETTING', 'fallback') == 'from-env'


def test_get_setting_default(monkeypatch):
    monkeypatch.delenv('RANK_TEST_SETTING', raising=False)
    assert settings.get_setting('RANK_TEST_SETTING', 'fallback') == 'fallback'


def test_get_setting_is_read_once(monkeypatch):
    monkeypatch.setenv('RANK_TEST_SETTING', 'first')
    settings.get_setting('RANK_TEST_SETTING')

    monkeypatch.setenv('RANK_TEST_SETTING', 'second')
    assert settings.get_setting('RANK_TEST_SETTING') == 'first'


@pytest.mark.parametrize('raw, expected', [
    ('yes', True),
    ('True', True),
    ('1', True),
    ('0', False),
    ('off', False),
])
def test_get_bool_setting(monkeypatch, raw, expected):
    monkeypatch.setenv('RANK_TEST_FLAG', raw)
    assert settings.get_bool_setting('RANK_TEST_FLAG') is expected

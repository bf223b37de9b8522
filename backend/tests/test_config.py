import pytest

from loan_triangulation.config import Config, _split_list


def test_defaults_validate():
    assert Config.validate() is True
    assert Config.STAGE_CATALOG[0] == 'DocumentLoaderAgent'


@pytest.mark.parametrize("attribute,value", [
    ('PIPELINE_API_BASE_URL', ''),
    ('PIPELINE_API_BASE_URL', 'ftp://pipeline.test'),
    ('POLL_INTERVAL_MS', 0),
    ('MAX_WAIT_SECONDS', -1.0),
    ('SUBMIT_RETRIES', -1),
    ('DEFAULT_LANGUAGE', 'de'),
    ('STAGE_CATALOG', []),
    ('RELAY_RETENTION_SECONDS', -1.0),
])
def test_invalid_settings_raise(monkeypatch, attribute, value):
    monkeypatch.setattr(Config, attribute, value)

    with pytest.raises(ValueError):
        Config.validate()


def test_derived_settings(monkeypatch):
    monkeypatch.setattr(Config, 'POLL_INTERVAL_MS', 250)
    monkeypatch.setattr(Config, 'PIPELINE_API_BASE_URL', 'https://pipeline.test/')

    assert Config.poll_interval_seconds() == 0.25
    assert Config.api_base_url() == 'https://pipeline.test'


def test_split_list():
    assert _split_list(None, ['a']) == ['a']
    assert _split_list(' A , B ,, C ', ['a']) == ['A', 'B', 'C']

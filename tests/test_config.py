# -*- coding: utf-8 -*-
"""
Testes da configuração por variáveis de ambiente e da montagem do contêiner.
"""
import pytest

from marcelina.app_container import AppContainer
from marcelina.config import Config, ConfigError, env_flag
from marcelina.repositories import JsonTable, SupabaseTable


def test_from_env_defaults(tmp_path):
    config = Config.from_env({'MARCELINA_DATA_DIR': str(tmp_path)})
    assert config.backend == 'json'
    assert config.data_dir == str(tmp_path)
    assert config.admin_user == 'admin'
    assert config.admin_password is None
    assert config.profiling is True
    assert config.backups is True
    assert config.port == 5000
    assert config.logs_dir.endswith('logs')


def test_from_env_reads_flags():
    config = Config.from_env({
        'MARCELINA_SECRET_KEY': 's3cr3t',
        'MARCELINA_PROFILING': '0',
        'MARCELINA_BACKUPS': 'false',
        'FLASK_DEBUG': '1',
        'FLASK_PORT': '8080',
    })
    assert config.secret_key == 's3cr3t'
    assert config.profiling is False
    assert config.backups is False
    assert config.debug is True
    assert config.port == 8080


def test_supabase_backend_requires_credentials():
    with pytest.raises(ConfigError) as exc:
        Config.from_env({'MARCELINA_BACKEND': 'supabase', 'SUPABASE_KEY': 'k'})
    assert str(exc.value) == 'Variável de ambiente SUPABASE_URL não definida.'

    with pytest.raises(ConfigError) as exc:
        Config.from_env({'MARCELINA_BACKEND': 'supabase', 'SUPABASE_URL': 'https://x.supabase.co'})
    assert str(exc.value) == 'Variável de ambiente SUPABASE_KEY não definida.'


def test_invalid_backend_and_port():
    with pytest.raises(ConfigError):
        Config.from_mapping({'backend': 'mysql'})
    with pytest.raises(ConfigError):
        Config.from_env({'FLASK_PORT': 'abc'})


def test_env_flag():
    assert env_flag('Sim')
    assert env_flag(None, True)
    assert not env_flag('0', True)


def test_container_uses_json_tables(tmp_path):
    AppContainer.reset_instance()
    try:
        container = AppContainer.get_instance(Config.from_mapping({'data_dir': str(tmp_path)}))
        assert isinstance(container.supply_repo.table, JsonTable)
        assert container.backup_service is not None
        assert container.sales_service is container.sales_service
    finally:
        AppContainer.reset_instance()


def test_container_uses_supabase_tables(monkeypatch):
    created = []

    def fake_client(url, key):
        created.append((url, key))
        return object()

    monkeypatch.setattr('marcelina.app_container.create_supabase_client', fake_client)
    AppContainer.reset_instance()
    try:
        container = AppContainer.get_instance(Config.from_mapping({
            'backend': 'supabase',
            'supabase_url': 'https://x.supabase.co',
            'supabase_key': 'anon',
        }))
        assert isinstance(container.account_repo.table, SupabaseTable)
        assert container.account_repo.table.name == 'contas'
        assert container.backup_service is None
        container.movement_repo
        assert created == [('https://x.supabase.co', 'anon')]
    finally:
        AppContainer.reset_instance()

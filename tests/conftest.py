# -*- coding: utf-8 -*-
"""
Fixtures compartilhadas: app isolada numa pasta temporária (backend JSON),
cliente Flask logado como admin e um cardápio mínimo de confeitaria.
"""
import pytest

from marcelina.app_container import AppContainer
from marcelina.config import Config
from marcelina.main import create_app

ADMIN_USER = 'admin'
ADMIN_PASSWORD = '1234'


@pytest.fixture
def config(tmp_path):
    return Config.from_mapping({
        'secret_key': 'test-secret',
        'data_dir': str(tmp_path / 'data'),
        'admin_user': ADMIN_USER,
        'admin_password': ADMIN_PASSWORD,
        'profiling': False,
        'backups': False,
        'testing': True,
    })


@pytest.fixture
def app(config):
    app = create_app(config)
    yield app
    AppContainer.reset_instance()


@pytest.fixture
def container(app):
    return AppContainer.get_instance()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


def login(client, username=ADMIN_USER, password=ADMIN_PASSWORD):
    """Faz login e devolve o token CSRF da sessão."""
    r = client.post('/api/login', json={'username': username, 'password': password})
    assert r.status_code == 200, r.get_json()
    return r.get_json()['csrf_token']


@pytest.fixture
def admin_client(client):
    token = login(client)
    client.environ_base['HTTP_X_CSRF_TOKEN'] = token
    return client


@pytest.fixture
def bakery(container):
    """
    Farinha (10 kg a 5,00) e Ovo (12 un a 0,50);
    Bolo = 0,5 kg de farinha + 3 ovos (custo 4,00), vendido a 20,00.
    """
    supplies = container.supply_service
    flour = supplies.create_supply('Farinha', 10, 5, 'kg')['supply']
    eggs = supplies.create_supply('Ovo', 12, '0,50', None)['supply']
    cake = container.product_service.create_product(
        'Bolo',
        20,
        [{'supply_id': flour.id, 'quantity': 0.5}, {'supply_id': eggs.id, 'quantity': 3}],
    )['product']
    return {'flour': flour, 'eggs': eggs, 'cake': cake}

# -*- coding: utf-8 -*-
"""
Testes de usuários (werkzeug.security) e do registro de atividades.
"""
from werkzeug.security import check_password_hash

from marcelina.services.audit_service import format_money, format_quantity

ADMIN_USER = 'admin'
ADMIN_PASSWORD = '1234'


def test_default_admin_is_created_once(container):
    users = container.user_service
    admin = container.user_repo.get_by_username(ADMIN_USER)
    assert admin.is_admin()
    assert check_password_hash(admin.password_hash, ADMIN_PASSWORD)
    assert users.ensure_default_admin(ADMIN_USER, 'outra') is False


def test_authenticate(container):
    users = container.user_service
    assert users.authenticate(ADMIN_USER, ADMIN_PASSWORD) == {'username': ADMIN_USER, 'role': 'admin'}
    assert users.authenticate(ADMIN_USER, 'errada') is None
    assert users.authenticate('ninguem', ADMIN_PASSWORD) is None
    assert container.audit_service.search_logs('Início de sessão', log_type='SISTEMA')


def test_create_user_rules(container):
    users = container.user_service
    assert users.create_user('ab', '1234')['ok'] is False
    assert users.create_user('caixa', '12')['ok'] is False

    result = users.create_user('caixa', '1234', 'gerente', admin_user=ADMIN_USER)
    assert result == {'ok': True, 'user': {'id': 2, 'username': 'caixa', 'role': 'operador'}}
    assert users.create_user('caixa', '9999')['error'] == 'O usuário já existe'
    assert 'password_hash' not in users.list_users()[0]


def test_change_password(container):
    users = container.user_service
    assert users.change_password(ADMIN_USER, 'errada', 'nova1')['error'] == 'Senha atual incorreta'
    assert users.change_password(ADMIN_USER, ADMIN_PASSWORD, 'nova1')['ok']
    assert users.authenticate(ADMIN_USER, 'nova1')
    assert users.change_password('ninguem', 'x', 'y')['not_found']


def test_search_logs_by_text_and_type(container):
    audit = container.audit_service
    audit.log_supply_created('maria', 1, 'Farinha', 10)
    audit.log_sale_created('joao', 7, 1234.5, 'paga', 3)

    sale_logs = audit.search_logs(log_type='VENDA')
    assert len(sale_logs) == 1
    assert sale_logs[0].message == 'Venda #7 registrada por joao - Total: R$ 1.234,50 - 3 itens - Status: paga'
    assert sale_logs[0].related_id == '7'

    assert [log.user for log in audit.search_logs('MARIA')] == ['maria']
    assert len(audit.search_logs(limit=1)) == 1


def test_format_helpers():
    assert format_money(0) == 'R$ 0,00'
    assert format_money(1234567.891) == 'R$ 1.234.567,89'
    assert format_quantity(3) == '3'
    assert format_quantity(2.5) == '2,5'

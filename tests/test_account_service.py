# -*- coding: utf-8 -*-
"""
Testes de contas a pagar/receber: validação, baixa, métricas e recorrência.
"""
from datetime import date

import pytest

from marcelina.services.account_service import clamp_day


@pytest.fixture
def accounts(container):
    return container.account_service


def test_create_account_defaults(accounts):
    result = accounts.create_account(None, ' Encomenda casamento ', '350,00', '2024-06-20', user='admin')
    assert result['ok'], result
    account = result['account']
    assert account.type == 'receber'
    assert account.status == 'aberta'
    assert account.title == 'Encomenda casamento'
    assert account.amount == 350
    assert account.is_recurring is False
    assert account.recurrence_type is None
    assert account.recurrence_day is None
    assert account.active is True
    assert account.payment_date is None


def test_create_concluded_account_sets_payment_date(accounts):
    account = accounts.create_account('pagar', 'Gás', 90, '2024-06-01', status='concluida')['account']
    assert account.payment_date == date.today().isoformat()


@pytest.mark.parametrize('kwargs, error', [
    ({'title': ''}, 'Informe um titulo para a conta.'),
    ({'amount': 'abc'}, 'Informe um valor valido.'),
    ({'due_date': ''}, 'Informe a data de vencimento.'),
    ({'due_date': '31/12/2024'}, 'Data de vencimento inválida.'),
    ({'type': 'doar'}, 'Tipo de conta inválido.'),
    ({'is_recurring': True, 'recurrence_day': 32}, 'Informe um dia de recorrencia entre 1 e 31.'),
    ({'is_recurring': True, 'recurrence_day': 'abc'}, 'Informe um dia de recorrencia entre 1 e 31.'),
])
def test_create_account_validation(accounts, kwargs, error):
    values = {'type': 'pagar', 'title': 'Luz', 'amount': 100, 'due_date': '2024-06-10'}
    values.update(kwargs)
    assert accounts.create_account(**values)['error'] == error
    assert accounts.list_accounts() == []


def test_recurring_day_defaults_to_due_day(accounts):
    account = accounts.create_account('pagar', 'Aluguel', 1200, '2024-01-31', is_recurring=True)['account']
    assert account.is_recurring is True
    assert account.recurrence_type == 'mensal'
    assert account.recurrence_day == 31


def test_list_accounts_ordered_and_filtered(accounts):
    accounts.create_account('pagar', 'B', 10, '2024-05-10')
    accounts.create_account('receber', 'A', 20, '2024-04-10')
    accounts.create_account('pagar', 'C', 30, '2024-03-10', status='pendente')

    assert [a.title for a in accounts.list_accounts()] == ['C', 'A', 'B']
    assert [a.title for a in accounts.list_accounts(type='pagar')] == ['C', 'B']
    assert [a.title for a in accounts.list_accounts(status='pendente')] == ['C']


def test_update_account_recurrence(accounts):
    account = accounts.create_account('pagar', 'Internet', 100, '2024-02-15', is_recurring=True)['account']

    changed = accounts.update_account(account.id, {'recurrence_day': 5})['account']
    assert changed.recurrence_day == 5
    assert changed.recurrence_type == 'mensal'

    cleared = accounts.update_account(account.id, {'is_recurring': False})['account']
    assert cleared.is_recurring is False
    assert cleared.recurrence_type is None
    assert cleared.recurrence_day is None

    again = accounts.update_account(account.id, {'is_recurring': True})['account']
    assert again.recurrence_day == 15


def test_update_account_rejects_invalid_recurrence_day(accounts):
    account = accounts.create_account('pagar', 'Gás', 80, '2024-02-15', is_recurring=True)['account']
    error = 'Informe um dia de recorrencia entre 1 e 31.'

    assert accounts.update_account(account.id, {'recurrence_day': 'abc'})['error'] == error
    assert accounts.update_account(account.id, {'recurrence_day': 0})['error'] == error
    assert accounts.update_account(account.id, {'is_recurring': True, 'recurrence_day': 'dez'})['error'] == error
    assert accounts.update_account(account.id, {'type': ['pagar']})['error'] == 'Tipo de conta inválido.'
    assert accounts.get_account(account.id).recurrence_day == 15

    assert accounts.update_account(account.id, {'recurrence_day': ''})['account'].recurrence_day is None


def test_update_account_conclude_fills_payment_date(accounts):
    account = accounts.create_account('receber', 'Festa', 500, '2024-02-15')['account']
    result = accounts.update_account(account.id, {'status': 'concluida'}, today=date(2024, 2, 20))
    assert result['account'].status == 'concluida'
    assert result['account'].payment_date == '2024-02-20'

    assert accounts.update_account(999, {'title': 'x'})['not_found']
    assert accounts.update_account(account.id, {'amount': ''})['error'] == 'Informe um valor valido.'


def test_metrics(accounts):
    accounts.create_account('pagar', 'Luz', 100, '2024-01-10')
    accounts.create_account('receber', 'Encomenda', 250, '2024-05-01', status='pendente')
    accounts.create_account('pagar', 'Água', 50, '2024-01-05', status='concluida')

    metrics = accounts.metrics(accounts.list_accounts(), today=date(2024, 2, 1))
    assert metrics == {
        'total': 3,
        'aberta': 1,
        'pendente': 1,
        'concluida': 1,
        'to_pay': 100,
        'to_receive': 250,
        'balance': 150,
        'overdue': 1,
    }


def test_generate_recurring_catches_up_month_by_month(accounts):
    base = accounts.create_account('pagar', 'Aluguel', 1200, '2024-01-31', is_recurring=True)['account']

    created = accounts.generate_recurring(today=date(2024, 3, 10), user='admin')

    assert [a.due_date for a in created] == ['2024-02-29', '2024-03-31']
    assert all(a.status == 'aberta' and not a.is_recurring for a in created)
    assert all(a.title == 'Aluguel' and a.amount == 1200 for a in created)
    assert accounts.get_account(base.id).last_generated_date == '2024-03-31'

    assert accounts.generate_recurring(today=date(2024, 3, 28)) == []
    assert len(accounts.generate_recurring(today=date(2024, 4, 1))) == 1


def test_inactive_recurring_accounts_are_skipped(accounts):
    account = accounts.create_account('pagar', 'Seguro', 80, '2024-01-05', is_recurring=True)['account']
    accounts.update_account(account.id, {'active': False})
    assert accounts.generate_recurring(today=date(2024, 6, 1)) == []


def test_clamp_day():
    assert clamp_day(2023, 2, 31) == date(2023, 2, 28)
    assert clamp_day(2024, 4, 31) == date(2024, 4, 30)
    assert clamp_day(2024, 5, 15) == date(2024, 5, 15)

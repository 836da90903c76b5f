# -*- coding: utf-8 -*-
"""
Testes da análise de vendas por produto e do painel.
"""
from datetime import date

import pytest

from marcelina.services import StatsService


@pytest.fixture
def two_sales(container, bakery):
    """Bolo: 2 × 20 (pix, paga, 01/03). Pão: 3 × 5 (dinheiro, aberta, 02/03)."""
    bread = container.product_service.create_product(
        'Pão', 5, [{'supply_id': bakery['flour'].id, 'quantity': 0.2}]
    )['product']
    sales = container.sales_service
    first = sales.create_sale(
        [{'product_id': bakery['cake'].id, 'quantity': 2}],
        payment_method='pix', status='paga', sale_date='2024-03-01T10:00:00+00:00',
    )['sale']
    second = sales.create_sale(
        [{'product_id': bread.id, 'quantity': 3}],
        payment_method='dinheiro', sale_date='2024-03-02T09:00:00+00:00',
    )['sale']
    return {'bread': bread, 'first': first, 'second': second}


def test_overview_groups_by_product(container, two_sales):
    overview = container.stats_service.overview()

    assert overview['totals'] == {'revenue': 55, 'cost': 11, 'margin': 44, 'quantity': 5}
    assert [p['name'] for p in overview['top_products']] == ['Bolo', 'Pão']
    assert overview['top_products'][0] == {'name': 'Bolo', 'revenue': 40, 'cost': 8, 'margin': 32}
    assert overview['chart'] == {
        'categories': ['Bolo', 'Pão'],
        'series': [
            {'name': 'Receita', 'data': [40, 15]},
            {'name': 'Custo', 'data': [8, 3]},
        ],
    }
    assert overview['daily_breakdown'] == [
        {'date': '2024-03-01', 'revenue': 40, 'cost': 8, 'margin': 32},
        {'date': '2024-03-02', 'revenue': 15, 'cost': 3, 'margin': 12},
    ]


def test_overview_filters(container, two_sales):
    stats = container.stats_service

    by_payment = stats.overview(payment='pix')
    assert [p['name'] for p in by_payment['products']] == ['Bolo']

    by_status = stats.overview(status='aberta')
    assert [p['name'] for p in by_status['products']] == ['Pão']

    # Fim só com data inclui o dia inteiro
    until_first_day = stats.overview(end_date='2024-03-01')
    assert until_first_day['totals']['revenue'] == 40

    from_second_day = stats.overview(start_date='2024-03-02')
    assert from_second_day['totals']['revenue'] == 15


def test_overview_with_period_shortcut(container, two_sales):
    overview = container.stats_service.overview(period='month', today=date(2024, 3, 6))
    assert overview['filters']['start_date'] == '2024-03-01'
    assert overview['filters']['end_date'] == '2024-03-06'
    assert overview['totals']['quantity'] == 5

    empty = container.stats_service.overview(period='today', today=date(2024, 4, 1))
    assert empty['products'] == []
    assert empty['totals']['revenue'] == 0


def test_detailed_items_newest_sale_first(container, two_sales):
    items = container.stats_service.list_detailed_items()
    assert [i.sale_id for i in items] == [two_sales['second'].id, two_sales['first'].id]
    assert items[0].sale_payment == 'dinheiro'
    assert items[1].sale_status == 'paga'


@pytest.mark.parametrize('period, expected', [
    ('today', ('2024-03-06', '2024-03-06')),
    ('week', ('2024-03-04', '2024-03-06')),
    ('month', ('2024-03-01', '2024-03-06')),
    ('custom', ('2024-01-01', '2024-01-31')),
    (None, (None, None)),
])
def test_resolve_period(period, expected):
    assert StatsService.resolve_period(period, '2024-01-01', '2024-01-31', today=date(2024, 3, 6)) == expected


def test_items_without_sale_date_are_kept():
    assert StatsService._in_range(None, '2024-01-01', '2024-01-31')
    assert not StatsService._in_range('2024-02-01T00:00:00', '2024-01-01', '2024-01-31')


def test_dashboard(container, two_sales):
    container.supply_service.create_supply('Chocolate', 0, 30, 'kg')
    container.account_service.create_account('pagar', 'Aluguel', 1200, '2024-03-10')

    dashboard = container.stats_service.dashboard(today=date(2024, 3, 15))

    assert dashboard['supplies'] == 3
    assert dashboard['products'] == 2
    assert dashboard['active_products'] == 2
    assert dashboard['sales_month'] == 2
    assert dashboard['revenue_month'] == 55
    assert dashboard['paid_sales_month'] == 1
    assert dashboard['accounts']['to_pay'] == 1200
    assert dashboard['accounts']['overdue'] == 1
    assert [s['name'] for s in dashboard['low_stock']] == ['Chocolate']

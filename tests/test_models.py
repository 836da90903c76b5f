# -*- coding: utf-8 -*-
"""
Testes das entidades: conversão das linhas do banco e normalização de números.
"""
from datetime import date

import pytest

from marcelina.models import (
    Account,
    Movement,
    Product,
    Sale,
    Supply,
    normalize_number,
    parse_decimal,
    parse_int,
    parse_iso_date,
    round_quantity,
)


@pytest.mark.parametrize('raw, expected', [
    (12, 12),
    (2.5, 2.5),
    ('12,50', 12.5),
    ('3.75', 3.75),
    ('abc', 0),
    ('', 0),
    (None, 0),
])
def test_normalize_number(raw, expected):
    assert normalize_number(raw) == expected


def test_parse_decimal_rejects_invalid_values():
    assert parse_decimal('3,5') == 3.5
    assert parse_decimal(' 10 ') == 10.0
    assert parse_decimal('') is None
    assert parse_decimal('dez') is None
    assert parse_decimal('nan') is None
    assert parse_decimal('inf') is None
    assert parse_decimal(True) is None


def test_parse_int_and_dates():
    assert parse_int('7') == 7
    assert parse_int('7.5') is None
    assert parse_int(None) is None
    assert parse_iso_date('2024-03-15T10:00:00+00:00') == date(2024, 3, 15)
    assert parse_iso_date('15/03/2024') is None
    assert parse_iso_date(None) is None


def test_round_quantity_keeps_integers():
    assert round_quantity(3.0) == 3
    assert isinstance(round_quantity(3.0), int)
    assert round_quantity(0.1 + 0.2) == 0.3


def test_supply_from_record_maps_portuguese_columns():
    supply = Supply.from_record({'id': 1, 'nome': 'Farinha', 'quantidade': '10', 'valor': '5,5', 'unidade': 'kg'})
    assert supply.name == 'Farinha'
    assert supply.quantity == 10
    assert supply.price == 5.5
    assert supply.stock_value == 55
    assert supply.to_dict()['createdAt'] is None


def test_product_active_defaults_to_true():
    product = Product.from_record({'id': 3, 'nome': 'Bolo', 'custo': 4, 'preco_base': 20, 'ativo': None})
    assert product.active is True
    assert product.margin == 16
    assert product.to_dict()['basePrice'] == 20


def test_sale_reads_embedded_items():
    sale = Sale.from_record({
        'id': 1,
        'valor_total': '40',
        'status': 'cancelada',
        'venda_itens': [
            {'id': 1, 'venda_id': 1, 'produto_id': 2, 'quantidade': 2, 'preco_unitario': 20, 'subtotal': 40},
        ],
    })
    assert sale.total == 40
    assert sale.is_cancelled
    assert sale.items[0].product_id == 2
    assert sale.to_dict()['items'][0]['unitPrice'] == 20


def test_account_overdue_ignores_concluded():
    row = {'id': 1, 'tipo': 'pagar', 'status': 'aberta', 'titulo': 'Luz', 'valor': 100,
           'data_vencimento': '2024-01-10'}
    assert Account.from_record(row).is_overdue(date(2024, 1, 11))
    assert not Account.from_record(row).is_overdue(date(2024, 1, 10))
    assert not Account.from_record({**row, 'status': 'concluida'}).is_overdue(date(2024, 2, 1))


def test_movement_value_without_unit_value():
    movement = Movement.from_record({'id': 1, 'tipo': 'ajuste', 'quantidade': 4, 'valor_unitario': None})
    assert movement.unit_value is None
    assert movement.value == 0

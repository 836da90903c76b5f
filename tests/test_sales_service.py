# -*- coding: utf-8 -*-
"""
Testes de vendas: itens, total, custo e baixa/estorno dos insumos.
"""
import pytest


def stock(container, supply):
    return container.supply_service.get_supply(supply.id).quantity


@pytest.fixture
def sales(container):
    return container.sales_service


def test_create_sale_consumes_supplies(container, sales, bakery):
    cake = bakery['cake']
    result = sales.create_sale(
        [{'product_id': cake.id, 'quantity': 2}],
        customer_name='  Dona Maria ',
        payment_method='pix',
        user='admin',
    )
    assert result['ok'], result
    sale = result['sale']

    assert sale.status == 'aberta'
    assert sale.customer_name == 'Dona Maria'
    assert sale.notes is None
    assert sale.total == 40
    assert sale.sale_date
    item = sale.items[0]
    assert (item.quantity, item.unit_price, item.subtotal) == (2, 20, 40)
    assert (item.cost_unit, item.cost_total) == (4.0, 8.0)

    assert stock(container, bakery['flour']) == 9
    assert stock(container, bakery['eggs']) == 6

    movements = container.movement_service.list_movements(type='saida_por_venda', sale_id=sale.id)
    assert sorted((m.supply_id, m.quantity) for m in movements) == sorted([
        (bakery['flour'].id, 1), (bakery['eggs'].id, 6)
    ])
    assert all(m.product_id == cake.id and m.note == f'Venda #{sale.id}' for m in movements)
    assert container.audit_service.search_logs(f'Venda #{sale.id}', log_type='VENDA')


def test_sale_with_insufficient_stock_writes_nothing(container, sales, bakery):
    result = sales.create_sale([{'product_id': bakery['cake'].id, 'quantity': 5}])

    assert result == {'ok': False, 'error': 'Estoque insuficiente de Ovo: necessário 15, disponível 12.'}
    assert sales.list_sales() == []
    assert stock(container, bakery['flour']) == 10
    assert container.movement_service.list_movements(type='saida_por_venda') == []


def test_purchase_during_sale_keeps_stock_and_ledger_in_step(container, sales, bakery, monkeypatch):
    eggs = bakery['eggs']
    check_stock = sales._check_stock

    def check_then_buy(plan):
        checked = check_stock(plan)
        container.supply_service.register_entry(eggs.id, 10)
        return checked

    monkeypatch.setattr(sales, '_check_stock', check_then_buy)
    assert sales.create_sale([{'product_id': bakery['cake'].id, 'quantity': 2}])['ok']

    movements = container.movement_service.list_movements(supply_id=eggs.id)
    ledger = sum(
        m.quantity if m.type in ('entrada_insumo', 'ajuste') else -m.quantity
        for m in movements
    )
    assert stock(container, eggs) == 16
    assert ledger == 16


def test_repeated_products_are_merged(sales, bakery):
    cake = bakery['cake']
    sale = sales.create_sale([
        {'productId': cake.id, 'quantity': 1, 'unitPrice': 18},
        {'product_id': cake.id, 'quantity': '1', 'unit_price': '19,00'},
    ])['sale']

    assert len(sale.items) == 1
    assert sale.items[0].quantity == 2
    assert sale.items[0].unit_price == 19
    assert sale.total == 38


def test_sale_validation(sales, bakery):
    cake_item = [{'product_id': bakery['cake'].id, 'quantity': 1}]
    assert sales.create_sale([])['error'] == 'Inclua ao menos um produto na venda.'
    assert sales.create_sale([{'product_id': 999, 'quantity': 1}])['error'] == 'Produto inválido: #999.'
    assert sales.create_sale([{'product_id': bakery['cake'].id, 'quantity': 0}])['ok'] is False
    assert sales.create_sale(cake_item, payment_method='cheque')['error'] == 'Forma de pagamento inválida.'
    assert sales.create_sale(cake_item, status='fechada')['error'] == 'Status de venda inválido.'
    assert sales.list_sales() == []


def test_cancelled_sale_consumes_nothing(container, sales, bakery):
    result = sales.create_sale([{'product_id': bakery['cake'].id, 'quantity': 1}], status='cancelada')
    assert result['ok']
    assert stock(container, bakery['eggs']) == 12


def test_cancel_and_reopen_sale(container, sales, bakery):
    sale = sales.create_sale([{'product_id': bakery['cake'].id, 'quantity': 2}])['sale']

    cancelled = sales.update_sale(sale.id, {'status': 'cancelada'}, user='admin')
    assert cancelled['ok']
    assert cancelled['sale'].status == 'cancelada'
    assert stock(container, bakery['flour']) == 10
    assert stock(container, bakery['eggs']) == 12

    refunds = container.movement_service.list_movements(type='ajuste', sale_id=sale.id)
    assert {m.note for m in refunds} == {f'Estorno da venda #{sale.id}'}

    reopened = sales.update_sale(sale.id, {'status': 'paga'})
    assert reopened['ok']
    assert stock(container, bakery['eggs']) == 6

    # Cancelar de novo devolve só o consumo líquido
    sales.update_sale(sale.id, {'status': 'cancelada'})
    assert stock(container, bakery['eggs']) == 12


def test_reopen_without_stock_is_refused(container, sales, bakery):
    sale = sales.create_sale([{'product_id': bakery['cake'].id, 'quantity': 3}], status='cancelada')['sale']
    container.supply_service.register_exit(bakery['eggs'].id, 5)

    result = sales.update_sale(sale.id, {'status': 'aberta'})
    assert not result['ok']
    assert result['error'].startswith('Estoque insuficiente de Ovo')
    assert sales.get_sale(sale.id).status == 'cancelada'


def test_update_sale_header(sales, bakery):
    sale = sales.create_sale([{'product_id': bakery['cake'].id, 'quantity': 1}])['sale']
    result = sales.update_sale(sale.id, {'notes': ' Entregar às 15h ', 'payment_method': 'dinheiro'})
    assert result['sale'].notes == 'Entregar às 15h'
    assert result['sale'].payment_method == 'dinheiro'
    assert result['sale'].updated_at
    assert sales.update_sale(999, {'notes': 'x'})['not_found']


def test_delete_sale_returns_supplies(container, sales, bakery):
    sale = sales.create_sale([{'product_id': bakery['cake'].id, 'quantity': 2}])['sale']

    assert sales.delete_sale(sale.id, user='admin')['ok']
    assert sales.get_sale(sale.id) is None
    assert stock(container, bakery['flour']) == 10
    assert stock(container, bakery['eggs']) == 12
    assert container.sales_repo.list_items() == []


def test_item_cost_follows_current_supply_price(container, sales, bakery):
    container.supply_service.update_supply(bakery['flour'].id, {'price': 6})
    sale = sales.create_sale([{'product_id': bakery['cake'].id, 'quantity': 1}])['sale']
    assert sale.items[0].cost_unit == 4.5


def test_export_rows_one_line_per_item(sales, bakery):
    sales.create_sale([{'product_id': bakery['cake'].id, 'quantity': 1}], customer_name='Ana')
    rows = sales.export_rows()
    assert rows[0][0] == 'venda_id'
    assert len(rows) == 2
    assert rows[1][2] == 'Ana'
    assert rows[1][5] == 'Bolo'
    assert rows[1][7] == '20.00'

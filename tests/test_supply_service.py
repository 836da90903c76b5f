# -*- coding: utf-8 -*-
"""
Testes de insumos e produtos: validações, movimentações e custo da composição.
"""
from marcelina.services.product_service import describe_composition


# =============================================================================
# INSUMOS
# =============================================================================

def test_create_supply_records_initial_stock(container):
    result = container.supply_service.create_supply('  Leite  ', '7,9', '4,5', ' l ')
    assert result['ok']
    supply = result['supply']
    assert supply.name == 'Leite'
    assert supply.quantity == 7
    assert supply.unit == 'l'

    movements = container.movement_service.list_movements(supply_id=supply.id)
    assert len(movements) == 1
    assert movements[0].type == 'entrada_insumo'
    assert movements[0].quantity == 7
    assert movements[0].unit_value == 4.5
    assert movements[0].note == 'Estoque inicial'


def test_create_supply_without_stock_has_no_movement(container):
    supply = container.supply_service.create_supply('Fermento', 0, 2, '')['supply']
    assert supply.unit is None
    assert container.movement_service.list_movements(supply_id=supply.id) == []


def test_create_supply_validation(container):
    service = container.supply_service
    assert service.create_supply(' ', 1, 1)['error'] == 'Informe o nome do insumo.'
    assert service.create_supply('Sal', -1, 1)['error'] == 'Informe uma quantidade valida.'
    assert service.create_supply('Sal', 'x', 1)['error'] == 'Informe uma quantidade valida.'
    assert service.create_supply('Sal', 1, -2)['error'] == 'Informe um valor valido.'
    assert service.list_supplies() == []


def test_update_supply_quantity_records_adjustment(container, bakery):
    flour = bakery['flour']
    result = container.supply_service.update_supply(flour.id, {'quantity': 6, 'price': '5,5'})
    assert result['ok']
    assert result['supply'].quantity == 6
    assert result['supply'].price == 5.5

    adjustments = container.movement_service.list_movements(type='ajuste', supply_id=flour.id)
    assert [m.quantity for m in adjustments] == [-4]


def test_update_supply_truncates_quantity_like_create(container, bakery):
    eggs = bakery['eggs']
    result = container.supply_service.update_supply(eggs.id, {'quantity': '7,9'})
    assert result['supply'].quantity == 7

    adjustments = container.movement_service.list_movements(type='ajuste', supply_id=eggs.id)
    assert [m.quantity for m in adjustments] == [-5]


def test_update_unknown_supply(container):
    result = container.supply_service.update_supply(42, {'name': 'X'})
    assert result['not_found']


def test_delete_supply_used_in_composition_is_refused(container, bakery):
    result = container.supply_service.delete_supply(bakery['flour'].id)
    assert not result['ok']
    assert 'composição' in result['error']
    assert container.supply_service.get_supply(bakery['flour'].id) is not None


def test_delete_unused_supply(container):
    supply = container.supply_service.create_supply('Canela', 1, 3)['supply']
    assert container.supply_service.delete_supply(supply.id, user='admin')['ok']
    assert container.supply_service.get_supply(supply.id) is None
    assert container.audit_service.search_logs('Canela')


def test_register_entry_and_exit(container, bakery):
    service = container.supply_service
    eggs = bakery['eggs']

    entry = service.register_entry(eggs.id, 6, '0,60', 'Compra feira', user='admin')
    assert entry['ok']
    assert entry['supply'].quantity == 18
    assert entry['movement'].unit_value == 0.6

    exit_ = service.register_exit(eggs.id, 2, 'Quebrados')
    assert exit_['ok']
    assert exit_['supply'].quantity == 16
    assert exit_['movement'].type == 'saida_insumo'

    refused = service.register_exit(eggs.id, 100)
    assert refused['error'] == 'Estoque insuficiente de Ovo (disponível: 16).'
    assert service.get_supply(eggs.id).quantity == 16


def test_supply_metrics_and_low_stock(container, bakery):
    service = container.supply_service
    service.create_supply('Chocolate', 0, 30, 'kg')

    metrics = service.metrics(service.list_supplies())
    assert metrics == {'registered': 3, 'stock_value': 56.0}
    assert [s.name for s in service.get_low_stock()] == ['Chocolate']


# =============================================================================
# PRODUTOS
# =============================================================================

def test_create_product_computes_cost_and_description(container, bakery):
    cake = bakery['cake']
    assert cake.cost == 4.0
    assert cake.base_price == 20
    assert cake.description == '0.5 kg de Farinha; 3 de Ovo'
    assert cake.active is True

    rows = container.product_service.list_composition(cake.id)
    assert [(r.supply_id, r.quantity) for r in rows] == [(bakery['flour'].id, 0.5), (bakery['eggs'].id, 3)]


def test_create_product_merges_repeated_supplies(container, bakery):
    flour = bakery['flour']
    result = container.product_service.create_product(
        'Pão', '8,00', [{'supplyId': flour.id, 'quantity': 0.2}, {'supply_id': flour.id, 'quantity': '0,3'}]
    )
    assert result['ok']
    assert [(r.supply_id, r.quantity) for r in result['composition']] == [(flour.id, 0.5)]
    assert result['product'].cost == 2.5


def test_create_product_validation(container, bakery):
    service = container.product_service
    flour_item = [{'supply_id': bakery['flour'].id, 'quantity': 1}]
    assert service.create_product('', 10, flour_item)['error'] == 'Informe o nome do produto.'
    assert service.create_product('Torta', 'abc', flour_item)['error'] == 'Preço base precisa ser um número válido.'
    assert service.create_product('Torta', 10, [])['error'] == 'Adicione pelo menos um insumo ao produto.'
    assert service.create_product('Torta', 10, [{'supply_id': 999, 'quantity': 1}])['error'] == 'Insumo inválido: #999.'
    assert service.create_product('Torta', 10, [{'supply_id': bakery['flour'].id, 'quantity': 0}])['ok'] is False


def test_set_composition_recomputes_and_clears(container, bakery):
    service = container.product_service
    cake = bakery['cake']

    result = service.set_composition(cake.id, [{'supply_id': bakery['eggs'].id, 'quantity': 4}])
    assert result['product'].cost == 2.0
    assert result['product'].description == '4 de Ovo'

    cleared = service.set_composition(cake.id, [])
    assert cleared['product'].cost == 0
    assert cleared['product'].description is None
    assert service.list_composition(cake.id) == []


def test_update_and_delete_product(container, bakery):
    service = container.product_service
    cake = bakery['cake']

    updated = service.update_product(cake.id, {'base_price': '22,5', 'active': False})['product']
    assert updated.base_price == 22.5
    assert updated.active is False

    assert service.delete_product(cake.id)['ok']
    assert service.get_product(cake.id) is None
    assert service.list_composition(cake.id) == []
    assert service.delete_product(cake.id)['not_found']


def test_product_metrics(container, bakery):
    metrics = container.product_service.metrics(container.product_service.list_products())
    assert metrics['registered'] == 1
    assert metrics['active'] == 1
    assert metrics['total_cost'] == 4.0
    assert metrics['average_margin'] == 16.0


def test_describe_composition_skips_unknown_supplies(bakery):
    flour = bakery['flour']
    text = describe_composition(
        [{'supply_id': flour.id, 'quantity': 2}, {'supply_id': 999, 'quantity': 1}],
        {flour.id: flour},
    )
    assert text == '2 kg de Farinha'

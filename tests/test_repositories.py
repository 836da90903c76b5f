# -*- coding: utf-8 -*-
"""
Testes das tabelas (JSON local e Supabase) e dos repositórios de domínio.
"""
import json
import os
import threading
from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

from marcelina.repositories import (
    ITable,
    JsonTable,
    MovementRepository,
    ProductRepository,
    RepositoryError,
    SalesRepository,
    SupabaseTable,
    SupplyRepository,
)


# =============================================================================
# JsonTable
# =============================================================================

def test_json_table_insert_assigns_ids(tmp_path):
    table = JsonTable(str(tmp_path), 'insumos')
    first, second = table.insert([{'nome': 'Farinha'}, {'nome': 'Ovo'}])
    assert (first['id'], second['id']) == (1, 2)
    assert first['created_at']

    with open(os.path.join(str(tmp_path), 'insumos.json'), 'r', encoding='utf-8') as f:
        stored = json.load(f)
    assert [r['nome'] for r in stored] == ['Farinha', 'Ovo']


def test_json_table_select_filters_and_order(tmp_path):
    table = JsonTable(str(tmp_path), 'movimentacoes')
    table.insert([
        {'tipo': 'ajuste', 'data_movimentacao': '2024-01-02'},
        {'tipo': 'entrada_insumo', 'data_movimentacao': '2024-01-05'},
        {'tipo': 'ajuste', 'data_movimentacao': '2024-01-09'},
    ])

    rows = table.select(filters={'tipo': 'ajuste'}, order=[('data_movimentacao', True)])
    assert [r['id'] for r in rows] == [3, 1]

    rows = table.select(filters={'id': [1, 2]})
    assert {r['id'] for r in rows} == {1, 2}

    rows = table.select(gte={'data_movimentacao': '2024-01-03'}, lte={'data_movimentacao': '2024-01-05'})
    assert [r['id'] for r in rows] == [2]


def test_json_table_update_and_delete(tmp_path):
    table = JsonTable(str(tmp_path), 'produto_insumos')
    table.insert([{'produto_id': 1}, {'produto_id': 1}, {'produto_id': 2}])

    assert table.update(3, {'produto_id': 5})['produto_id'] == 5
    assert table.update(99, {'produto_id': 5}) is None
    assert table.delete_where('produto_id', 1) == 2
    assert [r['id'] for r in table.select()] == [3]


def test_json_table_increment_from_many_threads(tmp_path):
    JsonTable(str(tmp_path), 'insumos').insert({'nome': 'Ovo', 'quantidade': 12})

    def buy_one():
        # Cada thread com sua instância, como repositórios diferentes
        JsonTable(str(tmp_path), 'insumos').increment(1, 'quantidade', 1)

    threads = [threading.Thread(target=buy_one) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    table = JsonTable(str(tmp_path), 'insumos')
    assert table.get(1)['quantidade'] == 32
    assert table.increment(1, 'quantidade', -0.25)['quantidade'] == 31.75
    assert table.increment(99, 'quantidade', 1) is None


def test_json_table_corrupted_file_reads_empty(tmp_path):
    path = tmp_path / 'vendas.json'
    path.write_text('{not json', encoding='utf-8')
    assert JsonTable(str(tmp_path), 'vendas').select() == []


# =============================================================================
# SupabaseTable (cliente falso com a mesma API encadeável)
# =============================================================================

class FakeQuery:
    def __init__(self, client, table, action, payload=None):
        self.client = client
        self.calls = [(action, table, payload)]

    def __getattr__(self, name):
        if name in ('select', 'eq', 'is_', 'in_', 'gte', 'lte', 'order'):
            def method(*args, **kwargs):
                self.calls.append((name, args, kwargs))
                return self
            return method
        raise AttributeError(name)

    def execute(self):
        self.client.executed.append(self.calls)
        if self.client.error:
            raise APIError({'message': self.client.error, 'code': '500', 'hint': None, 'details': None})
        if self.client.responses:
            return SimpleNamespace(data=self.client.responses.pop(0))
        return SimpleNamespace(data=self.client.data)


class FakeTableBuilder:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    def select(self, columns):
        return FakeQuery(self.client, self.name, 'select', columns)

    def insert(self, payload):
        return FakeQuery(self.client, self.name, 'insert', payload)

    def update(self, payload):
        return FakeQuery(self.client, self.name, 'update', payload)

    def delete(self):
        return FakeQuery(self.client, self.name, 'delete')


class FakeSupabase:
    def __init__(self, data=None, error=None, responses=None):
        self.data = data or []
        self.error = error
        # Respostas consumidas em ordem, uma por execute()
        self.responses = list(responses or [])
        self.executed = []

    def table(self, name):
        return FakeTableBuilder(self, name)


def test_tables_follow_the_table_contract(tmp_path):
    assert isinstance(JsonTable(str(tmp_path), 'insumos'), ITable)
    assert isinstance(SupabaseTable(FakeSupabase(), 'insumos'), ITable)


def test_supabase_select_builds_query():
    client = FakeSupabase(data=[{'id': 2, 'nome': 'Ovo'}])
    table = SupabaseTable(client, 'insumos')

    rows = table.select(filters={'id': [1, 2], 'unidade': 'un'}, order=[('id', False)], gte={'quantidade': 1})

    assert rows == [{'id': 2, 'nome': 'Ovo'}]
    calls = client.executed[0]
    assert calls[0] == ('select', 'insumos', '*')
    assert ('in_', ('id', [1, 2]), {}) in calls
    assert ('eq', ('unidade', 'un'), {}) in calls
    assert ('gte', ('quantidade', 1), {}) in calls
    assert calls[-1] == ('order', ('id',), {'desc': False})


def test_supabase_empty_in_filter_skips_request():
    client = FakeSupabase()
    assert SupabaseTable(client, 'insumos').select(filters={'id': []}) == []
    assert client.executed == []


def test_supabase_api_error_becomes_repository_error():
    client = FakeSupabase(error='permission denied for table insumos')
    repo = SupplyRepository(SupabaseTable(client, 'insumos'))

    with pytest.raises(RepositoryError) as exc:
        repo.list()
    assert str(exc.value) == 'Erro ao listar insumos: permission denied for table insumos'


def test_supabase_insert_without_return_raises():
    client = FakeSupabase(data=[])
    repo = SupplyRepository(SupabaseTable(client, 'insumos'))

    with pytest.raises(RepositoryError) as exc:
        repo.create('Farinha', 1, 2, 'kg')
    assert str(exc.value) == 'Erro ao criar insumo: sem retorno'


def test_supabase_increment_retries_when_row_changed():
    client = FakeSupabase(responses=[
        [{'id': 1, 'quantidade': 12}],
        [],
        [{'id': 1, 'quantidade': 22}],
        [{'id': 1, 'quantidade': 16}],
    ])

    row = SupabaseTable(client, 'insumos').increment(1, 'quantidade', -6)

    assert row == {'id': 1, 'quantidade': 16}
    assert len(client.executed) == 4
    first_try, second_try = client.executed[1], client.executed[3]
    assert first_try[0] == ('update', 'insumos', {'quantidade': 6})
    assert ('eq', ('quantidade', 12), {}) in first_try
    assert second_try[0] == ('update', 'insumos', {'quantidade': 16})
    assert ('eq', ('quantidade', 22), {}) in second_try


def test_supabase_increment_gives_up_after_conflicts():
    client = FakeSupabase(responses=[[{'id': 1, 'quantidade': 1}], []] * SupabaseTable.MAX_INCREMENT_ATTEMPTS)
    repo = SupplyRepository(SupabaseTable(client, 'insumos'))

    with pytest.raises(RepositoryError) as exc:
        repo.adjust_quantity(1, 1)
    assert str(exc.value).startswith('Erro ao atualizar estoque: Registro #1 de insumos')


# =============================================================================
# Repositórios de domínio sobre JSON
# =============================================================================

def test_supply_repository_roundtrip(tmp_path):
    repo = SupplyRepository(JsonTable(str(tmp_path), 'insumos'))
    supply = repo.create('Açúcar', 4, 3.2, 'kg')

    assert repo.get(supply.id).name == 'Açúcar'
    assert repo.adjust_quantity(supply.id, -2.5).quantity == 1.5
    assert repo.adjust_quantity(999, 1) is None
    assert repo.update(supply.id, {'price': 4, 'unknown': 1}).price == 4
    assert repo.update(999, {'price': 4}) is None
    assert repo.delete(supply.id) == 1
    assert repo.get(supply.id) is None


def test_product_composition_is_replaced(tmp_path):
    repo = ProductRepository(JsonTable(str(tmp_path), 'produtos'), JsonTable(str(tmp_path), 'produto_insumos'))
    product = repo.create('Pão', None, 1.2, 3.0)

    repo.set_composition(product.id, [{'supply_id': 1, 'quantity': 0.2}, {'supply_id': 2, 'quantity': 1}])
    repo.set_composition(product.id, [{'supply_id': 2, 'quantity': 2}])

    rows = repo.list_composition(product.id)
    assert [(r.supply_id, r.quantity) for r in rows] == [(2, 2)]
    assert repo.is_supply_used(2)
    assert not repo.is_supply_used(1)

    repo.delete(product.id)
    assert repo.list_composition() == []


def test_sales_repository_orders_and_embeds_items(tmp_path):
    repo = SalesRepository(JsonTable(str(tmp_path), 'vendas'), JsonTable(str(tmp_path), 'venda_itens'))
    header = {'customer_name': None, 'notes': None, 'payment_method': 'pix', 'status': 'aberta'}
    item = {'product_id': 1, 'quantity': 1, 'unit_price': 5, 'subtotal': 5, 'cost_unit': 2, 'cost_total': 2}

    older = repo.create({**header, 'total': 5, 'sale_date': '2024-01-01T10:00:00'}, [item])
    newer = repo.create({**header, 'total': 10, 'sale_date': '2024-02-01T10:00:00'}, [item, item])

    sales = repo.list()
    assert [s.id for s in sales] == [newer.id, older.id]
    assert len(sales[0].items) == 2

    repo.delete(newer.id)
    assert [i.sale_id for i in repo.list_items()] == [older.id]


def test_movement_repository_date_bounds(tmp_path):
    repo = MovementRepository(JsonTable(str(tmp_path), 'movimentacoes'))
    repo.create({'type': 'ajuste', 'quantity': 1, 'movement_date': '2024-03-01T08:00:00'})
    repo.create({'type': 'ajuste', 'quantity': 2, 'movement_date': '2024-03-02T08:00:00'})
    repo.create({'type': 'entrada_insumo', 'quantity': 3, 'movement_date': '2024-03-03T08:00:00'})

    movements = repo.list({'type': 'ajuste', 'supply_id': None}, '2024-03-01', '2024-03-02T23:59:59')
    assert [m.quantity for m in movements] == [2, 1]

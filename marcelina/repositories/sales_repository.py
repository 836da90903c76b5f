# ==============================================================================
# REPOSITÓRIO DE VENDAS
# ==============================================================================
# Encapsula o acesso às tabelas `vendas` (cabeçalho) e `venda_itens`.
# Os itens são buscados à parte e anexados ao cabeçalho na leitura.
# ==============================================================================

from collections import defaultdict
from typing import Any, Dict, List, Optional

from marcelina.models import Sale, SaleItem, utc_now_iso
from marcelina.repositories.base import RepositoryError, TableRepository
from marcelina.repositories.interfaces import ITable

FIELD_MAP = {
    'customer_name': 'cliente_nome',
    'notes': 'observacao',
    'total': 'valor_total',
    'payment_method': 'forma_pagamento',
    'status': 'status',
    'sale_date': 'data_venda',
}

# Mais recentes primeiro; empate resolvido pelo id
SALE_ORDER = [('data_venda', True), ('id', True)]


class SalesRepository(TableRepository):
    """
    Repositório de vendas.

    Formato das linhas:
        vendas:      {"id", "cliente_nome", "observacao", "valor_total",
                      "forma_pagamento", "status", "data_venda", "updated_at"}
        venda_itens: {"id", "venda_id", "produto_id", "quantidade",
                      "preco_unitario", "subtotal", "custo_unitario", "custo_total"}
    """

    def __init__(self, table: ITable, items_table: ITable):
        super().__init__(table)
        self.items_table = items_table

    def _items_by_sale(self, sale_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
        grouped: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        if not sale_ids:
            return grouped
        rows = self.items_table.select(filters={'venda_id': sale_ids}, order=[('id', False)])
        for row in rows:
            grouped[row['venda_id']].append(row)
        return grouped

    def list(self) -> List[Sale]:
        """Vendas com itens, da mais recente para a mais antiga."""
        with self._action('listar vendas'):
            rows = self.table.select(order=SALE_ORDER)
            items = self._items_by_sale([r['id'] for r in rows])
        return [Sale.from_record(r, items.get(r['id'], [])) for r in rows]

    def list_headers(self) -> List[Sale]:
        """Só os cabeçalhos (sem itens)."""
        with self._action('listar vendas'):
            rows = self.table.select(order=SALE_ORDER)
        return [Sale.from_record(r, []) for r in rows]

    def get(self, sale_id: int) -> Optional[Sale]:
        with self._action('buscar venda'):
            row = self.table.get(sale_id)
            if not row:
                return None
            items = self._items_by_sale([sale_id])
        return Sale.from_record(row, items.get(sale_id, []))

    def list_items(self) -> List[SaleItem]:
        """Todos os itens de venda, em ordem de inserção."""
        with self._action('listar itens de venda'):
            rows = self.items_table.select(order=[('id', False)])
        return [SaleItem.from_record(r) for r in rows]

    def create(self, header: Dict[str, Any], items: List[Dict[str, Any]]) -> Sale:
        """
        Grava o cabeçalho e depois os itens.

        Se a gravação dos itens falhar, o cabeçalho recém-criado é removido
        para não sobrar venda sem itens.

        Args:
            header: Campos do modelo (customer_name, notes, total, ...)
            items: [{'product_id', 'quantity', 'unit_price', 'subtotal',
                     'cost_unit', 'cost_total'}, ...]

        Returns:
            Venda criada com os itens
        """
        payload = {FIELD_MAP[k]: v for k, v in header.items() if k in FIELD_MAP}
        payload['updated_at'] = utc_now_iso()
        with self._action('criar venda'):
            rows = self.table.insert(payload)
        sale_row = self._first(rows, 'criar venda')

        item_rows = [
            {
                'venda_id': sale_row['id'],
                'produto_id': item['product_id'],
                'quantidade': item['quantity'],
                'preco_unitario': item['unit_price'],
                'subtotal': item['subtotal'],
                'custo_unitario': item.get('cost_unit'),
                'custo_total': item.get('cost_total'),
            }
            for item in items
        ]
        try:
            with self._action('salvar itens da venda'):
                inserted = self.items_table.insert(item_rows)
            self._first(inserted, 'salvar itens da venda')
        except RepositoryError:
            with self._action('desfazer venda'):
                self.table.delete_where('id', sale_row['id'])
            raise

        return Sale.from_record(sale_row, inserted)

    def update(self, sale_id: int, changes: Dict[str, Any]) -> Optional[Sale]:
        """Atualiza só o cabeçalho; `updated_at` sempre é renovado."""
        payload = {FIELD_MAP[k]: v for k, v in changes.items() if k in FIELD_MAP}
        payload['updated_at'] = utc_now_iso()
        with self._action('atualizar venda'):
            row = self.table.update(sale_id, payload)
        if not row:
            return None
        return self.get(sale_id)

    def delete(self, sale_id: int) -> int:
        """Remove os itens e depois a venda."""
        with self._action('remover venda'):
            self.items_table.delete_where('venda_id', sale_id)
            return self.table.delete_where('id', sale_id)

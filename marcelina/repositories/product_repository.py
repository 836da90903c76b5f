# ==============================================================================
# REPOSITÓRIO DE PRODUTOS E COMPOSIÇÃO
# ==============================================================================
# Encapsula o acesso às tabelas `produtos` e `produto_insumos`.
# A composição diz quanto de cada insumo entra em uma unidade do produto.
# ==============================================================================

from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence

from marcelina.models import Product, ProductSupply, utc_now_iso
from marcelina.repositories.base import TableRepository
from marcelina.repositories.interfaces import ITable

FIELD_MAP = {
    'name': 'nome',
    'description': 'descricao',
    'cost': 'custo',
    'base_price': 'preco_base',
    'active': 'ativo',
}


class ProductRepository(TableRepository):
    """
    Repositório de produtos.

    Formato das linhas:
        produtos:         {"id", "nome", "descricao", "custo", "preco_base", "ativo", "updated_at"}
        produto_insumos:  {"id", "produto_id", "insumo_id", "quantidade", "created_at"}
    """

    def __init__(self, table: ITable, composition_table: ITable):
        super().__init__(table)
        self.composition_table = composition_table

    # =========================================================================
    # PRODUTOS
    # =========================================================================

    def list(self) -> List[Product]:
        with self._action('listar produtos'):
            rows = self.table.select(order=[('id', False)])
        return [Product.from_record(r) for r in rows]

    def get(self, product_id: int) -> Optional[Product]:
        with self._action('buscar produto'):
            row = self.table.get(product_id)
        return Product.from_record(row) if row else None

    def get_many(self, product_ids: Sequence[int]) -> Dict[int, Product]:
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        with self._action('listar produtos'):
            rows = self.table.select(filters={'id': ids})
        return {r['id']: Product.from_record(r) for r in rows}

    def create(
        self,
        name: str,
        description: Optional[str],
        cost: float,
        base_price: float,
        active: bool = True,
    ) -> Product:
        payload = {
            'nome': name,
            'descricao': description,
            'custo': round(cost, 2),
            'preco_base': round(base_price, 2),
            'ativo': active,
            'updated_at': utc_now_iso(),
        }
        with self._action('criar produto'):
            rows = self.table.insert(payload)
        return Product.from_record(self._first(rows, 'criar produto'))

    def update(self, product_id: int, changes: Dict[str, Any]) -> Optional[Product]:
        """
        Atualização parcial.

        Args:
            changes: Campos do modelo (name, description, cost, base_price, active)
        """
        payload = {FIELD_MAP[k]: v for k, v in changes.items() if k in FIELD_MAP}
        for column in ('custo', 'preco_base'):
            if column in payload:
                payload[column] = round(payload[column], 2)
        payload['updated_at'] = utc_now_iso()
        with self._action('atualizar produto'):
            row = self.table.update(product_id, payload)
        return Product.from_record(row) if row else None

    def delete(self, product_id: int) -> int:
        """Remove o produto e sua composição."""
        with self._action('remover produto'):
            self.composition_table.delete_where('produto_id', product_id)
            return self.table.delete_where('id', product_id)

    # =========================================================================
    # COMPOSIÇÃO
    # =========================================================================

    def list_composition(self, product_id: Optional[int] = None) -> List[ProductSupply]:
        """Linhas de composição (de um produto ou de todos)."""
        filters = {'produto_id': product_id} if product_id else None
        with self._action('listar composição'):
            rows = self.composition_table.select(filters=filters, order=[('id', False)])
        return [ProductSupply.from_record(r) for r in rows]

    def compositions_for(self, product_ids: Sequence[int]) -> Dict[int, List[ProductSupply]]:
        """
        Composição de vários produtos.

        Returns:
            {produto_id: [ProductSupply, ...]}
        """
        ids = sorted(set(product_ids))
        result: Dict[int, List[ProductSupply]] = defaultdict(list)
        if not ids:
            return result
        with self._action('listar composição'):
            rows = self.composition_table.select(
                filters={'produto_id': ids}, order=[('id', False)]
            )
        for row in rows:
            result[row['produto_id']].append(ProductSupply.from_record(row))
        return result

    def is_supply_used(self, supply_id: int) -> bool:
        """Verifica se algum produto usa o insumo na composição."""
        with self._action('listar composição'):
            rows = self.composition_table.select(filters={'insumo_id': supply_id})
        return bool(rows)

    def set_composition(self, product_id: int, items: List[Dict[str, Any]]) -> List[ProductSupply]:
        """
        Substitui a composição: remove as linhas anteriores e insere as novas.

        Args:
            product_id: Id do produto
            items: [{'supply_id': int, 'quantity': float}, ...] (lista vazia limpa)
        """
        with self._action('limpar composição'):
            self.composition_table.delete_where('produto_id', product_id)

        if not items:
            return []

        payload = [
            {
                'produto_id': product_id,
                'insumo_id': item['supply_id'],
                'quantidade': item['quantity'],
            }
            for item in items
        ]
        with self._action('salvar composição'):
            rows = self.composition_table.insert(payload)
        self._first(rows, 'salvar composição')
        return [ProductSupply.from_record(r) for r in rows]

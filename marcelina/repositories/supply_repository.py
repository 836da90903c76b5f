# ==============================================================================
# REPOSITÓRIO DE INSUMOS
# ==============================================================================
# Encapsula todo o acesso à tabela `insumos`.
# ==============================================================================

import threading
from typing import Any, Dict, List, Optional, Sequence

from marcelina.models import Supply, round_quantity
from marcelina.repositories.base import TableRepository

# Campos do modelo -> colunas da tabela
FIELD_MAP = {
    'name': 'nome',
    'quantity': 'quantidade',
    'price': 'valor',
    'unit': 'unidade',
}


class SupplyRepository(TableRepository):
    """
    Repositório de insumos.

    Formato da linha:
        {"id": 1, "nome": "Farinha", "quantidade": 10, "valor": 5.5,
         "unidade": "kg", "created_at": "..."}
    """

    # Serializa verificação e baixa de estoque dentro do processo
    stock_lock = threading.RLock()

    def list(self) -> List[Supply]:
        """Todos os insumos, por id crescente."""
        with self._action('listar insumos'):
            rows = self.table.select(order=[('id', False)])
        return [Supply.from_record(r) for r in rows]

    def get(self, supply_id: int) -> Optional[Supply]:
        with self._action('buscar insumo'):
            row = self.table.get(supply_id)
        return Supply.from_record(row) if row else None

    def get_many(self, supply_ids: Sequence[int]) -> Dict[int, Supply]:
        """
        Busca vários insumos de uma vez.

        Returns:
            Dicionário {id: Supply} (ids inexistentes ficam de fora)
        """
        ids = sorted(set(supply_ids))
        if not ids:
            return {}
        with self._action('listar insumos'):
            rows = self.table.select(filters={'id': ids})
        return {r['id']: Supply.from_record(r) for r in rows}

    def create(self, name: str, quantity: float, price: float, unit: Optional[str]) -> Supply:
        """
        Cadastra um insumo.

        Args:
            name: Nome
            quantity: Estoque inicial (truncado para inteiro)
            price: Valor unitário
            unit: Unidade de medida (ou None)
        """
        payload = {
            'nome': name,
            'quantidade': int(quantity),
            'valor': price,
            'unidade': unit,
        }
        with self._action('criar insumo'):
            rows = self.table.insert(payload)
        return Supply.from_record(self._first(rows, 'criar insumo'))

    def update(self, supply_id: int, changes: Dict[str, Any]) -> Optional[Supply]:
        """
        Atualização parcial; só os campos informados são gravados.

        Args:
            supply_id: Id do insumo
            changes: Campos do modelo (name, quantity, price, unit)

        Returns:
            Insumo atualizado, ou None se não existe
        """
        payload = {FIELD_MAP[k]: v for k, v in changes.items() if k in FIELD_MAP}
        if 'quantidade' in payload:
            payload['quantidade'] = round_quantity(payload['quantidade'])
        with self._action('atualizar insumo'):
            row = self.table.update(supply_id, payload)
        return Supply.from_record(row) if row else None

    def adjust_quantity(self, supply_id: int, delta: float) -> Optional[Supply]:
        """
        Soma delta ao estoque (negativo para baixar) direto na tabela.

        Returns:
            Insumo com o estoque novo, ou None se não existe
        """
        with self._action('atualizar estoque'):
            row = self.table.increment(supply_id, 'quantidade', delta)
        return Supply.from_record(row) if row else None

    def delete(self, supply_id: int) -> int:
        with self._action('remover insumo'):
            return self.table.delete_where('id', supply_id)

# ==============================================================================
# REPOSITÓRIO DE MOVIMENTAÇÕES DE ESTOQUE
# ==============================================================================
# Encapsula o acesso à tabela `movimentacoes`. Registros só são inseridos,
# nunca alterados: o histórico de estoque é a soma deles.
# ==============================================================================

from typing import Any, Dict, List, Optional

from marcelina.models import Movement, utc_now_iso
from marcelina.repositories.base import TableRepository

FIELD_MAP = {
    'type': 'tipo',
    'supply_id': 'insumo_id',
    'product_id': 'produto_id',
    'sale_id': 'venda_id',
    'quantity': 'quantidade',
    'unit': 'unidade',
    'unit_value': 'valor_unitario',
    'note': 'observacao',
    'movement_date': 'data_movimentacao',
}


def _to_row(fields: Dict[str, Any]) -> Dict[str, Any]:
    row = {FIELD_MAP[k]: v for k, v in fields.items() if k in FIELD_MAP}
    if not row.get('data_movimentacao'):
        row['data_movimentacao'] = utc_now_iso()
    return row


class MovementRepository(TableRepository):
    """
    Repositório de movimentações.

    Formato da linha:
        {"id", "tipo", "insumo_id", "produto_id", "venda_id", "quantidade",
         "unidade", "valor_unitario", "observacao", "data_movimentacao"}
    """

    def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Movement]:
        """
        Movimentações da mais recente para a mais antiga.

        Args:
            filters: Campos do modelo para igualdade (type, supply_id, ...)
            start_date: Limite inferior inclusivo (texto ISO)
            end_date: Limite superior inclusivo (texto ISO)
        """
        row_filters = {
            FIELD_MAP[k]: v for k, v in (filters or {}).items()
            if k in FIELD_MAP and v is not None
        }
        gte = {'data_movimentacao': start_date} if start_date else None
        lte = {'data_movimentacao': end_date} if end_date else None
        with self._action('listar movimentações'):
            rows = self.table.select(
                filters=row_filters,
                order=[('data_movimentacao', True), ('id', True)],
                gte=gte,
                lte=lte,
            )
        return [Movement.from_record(r) for r in rows]

    def create(self, fields: Dict[str, Any]) -> Movement:
        with self._action('registrar movimentação'):
            rows = self.table.insert(_to_row(fields))
        return Movement.from_record(self._first(rows, 'registrar movimentação'))

    def create_many(self, entries: List[Dict[str, Any]]) -> List[Movement]:
        """Insere várias movimentações de uma vez (ex: consumo de uma venda)."""
        if not entries:
            return []
        with self._action('registrar movimentações'):
            rows = self.table.insert([_to_row(e) for e in entries])
        self._first(rows, 'registrar movimentações')
        return [Movement.from_record(r) for r in rows]

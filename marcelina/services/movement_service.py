# ==============================================================================
# SERVIÇO DE MOVIMENTAÇÕES
# ==============================================================================
# Histórico de entradas, saídas e ajustes de estoque dos insumos.
# ==============================================================================

from typing import Any, Dict, List, Optional

from marcelina.models import MOVEMENT_TYPES, Movement, MovementType, parse_decimal
from marcelina.repositories.movement_repository import MovementRepository

# Sufixo que torna inclusivo um limite final informado só como data
END_OF_DAY = 'T23:59:59.999999'


def clean_text(value: Optional[str]) -> Optional[str]:
    """Texto sem espaços nas pontas; vazio vira None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def inclusive_end(end_date: Optional[str]) -> Optional[str]:
    """
    Limite final para comparar com timestamps ISO.

    "2024-03-31" vira "2024-03-31T23:59:59.999999" para incluir o dia todo.
    """
    if end_date and len(end_date) == 10:
        return end_date + END_OF_DAY
    return end_date


class MovementService:
    """
    Serviço de movimentações de estoque.

    Responsabilidades:
    - Consulta com filtros (tipo, insumo, produto, venda, período)
    - Registro de movimentações avulsas
    - Resumo de valores de entrada e saída
    """

    def __init__(self, movement_repo: MovementRepository):
        self.movement_repo = movement_repo

    def list_movements(
        self,
        type: Optional[str] = None,
        supply_id: Optional[int] = None,
        product_id: Optional[int] = None,
        sale_id: Optional[int] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Movement]:
        """
        Lista movimentações da mais recente para a mais antiga.

        Args:
            type: Tipo de movimentação
            supply_id: Id do insumo
            product_id: Id do produto
            sale_id: Id da venda
            start_date: Início (ISO, inclusivo)
            end_date: Fim (ISO, inclusivo; só a data inclui o dia todo)
        """
        filters = {
            'type': type or None,
            'supply_id': supply_id or None,
            'product_id': product_id or None,
            'sale_id': sale_id or None,
        }
        return self.movement_repo.list(filters, start_date or None, inclusive_end(end_date))

    def create_movement(
        self,
        type: str,
        quantity: Any,
        supply_id: Optional[int] = None,
        product_id: Optional[int] = None,
        sale_id: Optional[int] = None,
        unit: Optional[str] = None,
        unit_value: Any = None,
        note: Optional[str] = None,
        movement_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Registra uma movimentação.

        Returns:
            {'ok': True, 'movement': Movement} ou {'ok': False, 'error': ...}
        """
        type = clean_text(type)
        if type not in MOVEMENT_TYPES:
            return {'ok': False, 'error': 'Tipo de movimentação inválido.'}

        parsed_quantity = parse_decimal(quantity)
        if parsed_quantity is None:
            return {'ok': False, 'error': 'Informe uma quantidade valida.'}

        parsed_value = None
        if unit_value is not None and unit_value != '':
            parsed_value = parse_decimal(unit_value)
            if parsed_value is None:
                return {'ok': False, 'error': 'Informe um valor valido.'}

        movement = self.movement_repo.create({
            'type': type,
            'supply_id': supply_id,
            'product_id': product_id,
            'sale_id': sale_id,
            'quantity': parsed_quantity,
            'unit': clean_text(unit),
            'unit_value': parsed_value,
            'note': clean_text(note),
            'movement_date': movement_date,
        })
        return {'ok': True, 'movement': movement}

    def record(self, **fields: Any) -> Movement:
        """Registro interno, usado pelos serviços de insumos e vendas (sem validação)."""
        if 'note' in fields:
            fields['note'] = clean_text(fields['note'])
        return self.movement_repo.create(fields)

    def record_many(self, entries: List[Dict[str, Any]]) -> List[Movement]:
        return self.movement_repo.create_many(entries)

    @staticmethod
    def summary(movements: List[Movement]) -> Dict[str, Any]:
        """
        Totais do período exibido.

        Entradas somam quantidade × valor unitário das `entrada_insumo`;
        saídas somam o mesmo para todos os demais tipos.

        Returns:
            {'entries_value', 'exits_value', 'count'}
        """
        entries_value = 0.0
        exits_value = 0.0
        for movement in movements:
            if movement.type == MovementType.ENTRADA_INSUMO.value:
                entries_value += movement.value
            else:
                exits_value += movement.value
        return {
            'entries_value': round(entries_value, 2),
            'exits_value': round(exits_value, 2),
            'count': len(movements),
        }

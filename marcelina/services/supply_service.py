# ==============================================================================
# SERVIÇO DE INSUMOS
# ==============================================================================
# Cadastro de insumos e controle do estoque (entradas, saídas e ajustes).
# Toda alteração de estoque gera uma movimentação.
# ==============================================================================

from typing import Any, Dict, List, Optional

from marcelina.models import MovementType, Supply, parse_decimal, round_quantity
from marcelina.repositories.product_repository import ProductRepository
from marcelina.repositories.supply_repository import SupplyRepository
from marcelina.services.audit_service import AuditService
from marcelina.services.movement_service import MovementService, clean_text


class SupplyService:
    """
    Serviço de insumos.

    Responsabilidades:
    - CRUD de insumos com validação
    - Entradas (compras) e saídas manuais de estoque
    - Métricas da tela de cadastro
    """

    def __init__(
        self,
        supply_repo: SupplyRepository,
        product_repo: ProductRepository,
        movement_service: MovementService,
        audit_service: AuditService = None
    ):
        self.supply_repo = supply_repo
        self.product_repo = product_repo
        self.movement_service = movement_service
        self.audit_service = audit_service

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def list_supplies(self) -> List[Supply]:
        return self.supply_repo.list()

    def get_supply(self, supply_id: int) -> Optional[Supply]:
        return self.supply_repo.get(supply_id)

    def get_low_stock(self, threshold: float = 0) -> List[Supply]:
        """Insumos com estoque menor ou igual ao limite."""
        return [s for s in self.supply_repo.list() if s.quantity <= threshold]

    @staticmethod
    def metrics(supplies: List[Supply]) -> Dict[str, Any]:
        """
        Returns:
            {'registered': quantidade de insumos, 'stock_value': Σ quantidade × valor}
        """
        return {
            'registered': len(supplies),
            'stock_value': round(sum(s.stock_value for s in supplies), 2),
        }

    # =========================================================================
    # CADASTRO
    # =========================================================================

    def create_supply(
        self,
        name: str,
        quantity: Any,
        price: Any,
        unit: Optional[str] = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Cadastra um insumo.

        Args:
            name: Nome (obrigatório)
            quantity: Estoque inicial (truncado para inteiro, não negativo)
            price: Valor unitário (não negativo)
            unit: Unidade de medida
            user: Usuário (para auditoria)

        Returns:
            {'ok': True, 'supply': Supply} ou {'ok': False, 'error': ...}
        """
        name = clean_text(name)
        if not name:
            return {'ok': False, 'error': 'Informe o nome do insumo.'}

        parsed_quantity = parse_decimal(quantity)
        if parsed_quantity is None or parsed_quantity < 0:
            return {'ok': False, 'error': 'Informe uma quantidade valida.'}

        parsed_price = parse_decimal(price)
        if parsed_price is None or parsed_price < 0:
            return {'ok': False, 'error': 'Informe um valor valido.'}

        supply = self.supply_repo.create(name, int(parsed_quantity), parsed_price, clean_text(unit))

        if supply.quantity > 0:
            self.movement_service.record(
                type=MovementType.ENTRADA_INSUMO.value,
                supply_id=supply.id,
                quantity=supply.quantity,
                unit=supply.unit,
                unit_value=supply.price,
                note='Estoque inicial',
            )

        if self.audit_service and user:
            self.audit_service.log_supply_created(user, supply.id, supply.name, supply.quantity)

        return {'ok': True, 'supply': supply}

    def update_supply(
        self,
        supply_id: int,
        changes: Dict[str, Any],
        user: str = None
    ) -> Dict[str, Any]:
        """
        Atualização parcial.

        Args:
            supply_id: Id do insumo
            changes: Campos informados (name, quantity, price, unit)
            user: Usuário (para auditoria)

        Returns:
            {'ok': True, 'supply': Supply} ou {'ok': False, 'error': ..., 'not_found'?}
        """
        with self.supply_repo.stock_lock:
            return self._update_supply(supply_id, changes, user)

    def _update_supply(self, supply_id: int, changes: Dict[str, Any], user: str) -> Dict[str, Any]:
        current = self.supply_repo.get(supply_id)
        if not current:
            return {'ok': False, 'not_found': True, 'error': 'Insumo não encontrado.'}

        updates: Dict[str, Any] = {}
        if 'name' in changes:
            name = clean_text(changes['name'])
            if not name:
                return {'ok': False, 'error': 'Informe o nome do insumo.'}
            updates['name'] = name
        if 'quantity' in changes:
            quantity = parse_decimal(changes['quantity'])
            if quantity is None or quantity < 0:
                return {'ok': False, 'error': 'Informe uma quantidade valida.'}
            # Edição manual trunca como o cadastro
            updates['quantity'] = int(quantity)
        if 'price' in changes:
            price = parse_decimal(changes['price'])
            if price is None or price < 0:
                return {'ok': False, 'error': 'Informe um valor valido.'}
            updates['price'] = price
        if 'unit' in changes:
            updates['unit'] = clean_text(changes['unit'])

        if not updates:
            return {'ok': True, 'supply': current}

        supply = self.supply_repo.update(supply_id, updates)
        if not supply:
            return {'ok': False, 'not_found': True, 'error': 'Insumo não encontrado.'}

        delta = round_quantity(supply.quantity - current.quantity)
        if 'quantity' in updates and delta != 0:
            self.movement_service.record(
                type=MovementType.AJUSTE.value,
                supply_id=supply.id,
                quantity=delta,
                unit=supply.unit,
                unit_value=supply.price,
                note='Ajuste manual de estoque',
            )

        if self.audit_service and user:
            self.audit_service.log_supply_updated(user, supply.id, supply.name, updates)

        return {'ok': True, 'supply': supply}

    def delete_supply(self, supply_id: int, user: str = None) -> Dict[str, Any]:
        """
        Remove um insumo que não faz parte de nenhuma composição.
        """
        supply = self.supply_repo.get(supply_id)
        if not supply:
            return {'ok': False, 'not_found': True, 'error': 'Insumo não encontrado.'}

        if self.product_repo.is_supply_used(supply_id):
            return {
                'ok': False,
                'error': 'Este insumo faz parte da composição de um produto e não pode ser removido.'
            }

        self.supply_repo.delete(supply_id)

        if self.audit_service and user:
            self.audit_service.log_supply_deleted(user, supply.id, supply.name)

        return {'ok': True, 'supply': supply}

    # =========================================================================
    # ESTOQUE
    # =========================================================================

    def register_entry(
        self,
        supply_id: int,
        quantity: Any,
        unit_value: Any = None,
        note: Optional[str] = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Entrada de estoque (compra).

        Args:
            supply_id: Id do insumo
            quantity: Quantidade comprada (> 0)
            unit_value: Valor pago por unidade (padrão: valor atual do insumo)
            note: Observação
            user: Usuário (para auditoria)
        """
        supply = self.supply_repo.get(supply_id)
        if not supply:
            return {'ok': False, 'not_found': True, 'error': 'Insumo não encontrado.'}

        parsed_quantity = parse_decimal(quantity)
        if parsed_quantity is None or parsed_quantity <= 0:
            return {'ok': False, 'error': 'Informe uma quantidade valida.'}

        value = supply.price
        if unit_value is not None and unit_value != '':
            value = parse_decimal(unit_value)
            if value is None or value < 0:
                return {'ok': False, 'error': 'Informe um valor valido.'}

        with self.supply_repo.stock_lock:
            updated = self.supply_repo.adjust_quantity(supply_id, parsed_quantity)
        if not updated:
            return {'ok': False, 'not_found': True, 'error': 'Insumo não encontrado.'}
        movement = self.movement_service.record(
            type=MovementType.ENTRADA_INSUMO.value,
            supply_id=supply_id,
            quantity=parsed_quantity,
            unit=supply.unit,
            unit_value=value,
            note=note,
        )

        if self.audit_service and user:
            self.audit_service.log_stock_entry(
                user, supply_id, supply.name, parsed_quantity, updated.quantity, supply.unit
            )

        return {'ok': True, 'supply': updated, 'movement': movement}

    def register_exit(
        self,
        supply_id: int,
        quantity: Any,
        note: Optional[str] = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Saída manual (consumo, perda, vencimento). O estoque não fica negativo.
        """
        parsed_quantity = parse_decimal(quantity)

        with self.supply_repo.stock_lock:
            supply = self.supply_repo.get(supply_id)
            if not supply:
                return {'ok': False, 'not_found': True, 'error': 'Insumo não encontrado.'}

            if parsed_quantity is None or parsed_quantity <= 0:
                return {'ok': False, 'error': 'Informe uma quantidade valida.'}

            if parsed_quantity > supply.quantity:
                return {
                    'ok': False,
                    'error': f'Estoque insuficiente de {supply.name} (disponível: {supply.quantity}).'
                }

            updated = self.supply_repo.adjust_quantity(supply_id, -parsed_quantity)
        if not updated:
            return {'ok': False, 'not_found': True, 'error': 'Insumo não encontrado.'}
        movement = self.movement_service.record(
            type=MovementType.SAIDA_INSUMO.value,
            supply_id=supply_id,
            quantity=parsed_quantity,
            unit=supply.unit,
            unit_value=supply.price,
            note=note,
        )

        if self.audit_service and user:
            self.audit_service.log_stock_exit(
                user, supply_id, supply.name, parsed_quantity, updated.quantity,
                clean_text(note) or 'manual'
            )

        return {'ok': True, 'supply': updated, 'movement': movement}

# ==============================================================================
# SERVIÇO DE VENDAS
# ==============================================================================
# Ciclo de vida de uma venda e o consumo de insumos que ela provoca.
#
# REGRAS DE ESTOQUE:
# - Venda nova (não cancelada): consome composição × quantidade de cada item
# - Todo o estoque é conferido ANTES de gravar; se faltar insumo nada é gravado
# - Cancelar ou remover: devolve o que a venda consumiu (ajuste)
# - Sair de cancelada: consome de novo (com a mesma conferência)
# ==============================================================================

from collections import OrderedDict, defaultdict
from typing import Any, Dict, List, Optional, Tuple

from marcelina.models import (
    PAYMENT_METHODS,
    SALE_STATUSES,
    MovementType,
    Sale,
    SaleStatus,
    Supply,
    parse_decimal,
    parse_int,
    round_quantity,
    utc_now_iso,
)
from marcelina.performance_logger import profile_function
from marcelina.repositories.product_repository import ProductRepository
from marcelina.repositories.sales_repository import SalesRepository
from marcelina.repositories.supply_repository import SupplyRepository
from marcelina.services.audit_service import AuditService
from marcelina.services.movement_service import MovementService, clean_text
from marcelina.services.product_service import ProductService

# (produto_id, insumo_id, quantidade consumida)
ConsumptionPlan = List[Tuple[int, int, float]]


def _pick(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


class SalesService:
    """
    Serviço de vendas.

    Responsabilidades:
    - Registrar vendas com itens, total e custo do momento
    - Baixar insumos conforme a composição dos produtos
    - Alterar cabeçalho e status (com estorno ao cancelar)
    - Remover vendas devolvendo o estoque
    """

    def __init__(
        self,
        sales_repo: SalesRepository,
        product_repo: ProductRepository,
        supply_repo: SupplyRepository,
        product_service: ProductService,
        movement_service: MovementService,
        audit_service: AuditService = None
    ):
        self.sales_repo = sales_repo
        self.product_repo = product_repo
        self.supply_repo = supply_repo
        self.product_service = product_service
        self.movement_service = movement_service
        self.audit_service = audit_service

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def list_sales(self) -> List[Sale]:
        return self.sales_repo.list()

    def get_sale(self, sale_id: int) -> Optional[Sale]:
        return self.sales_repo.get(sale_id)

    # =========================================================================
    # VALIDAÇÃO
    # =========================================================================

    def _normalize_items(self, raw_items: Any) -> Tuple[Optional[List[Dict[str, Any]]], Optional[str]]:
        """
        Valida e agrupa os itens da venda.

        Produtos repetidos somam as quantidades; o último preço informado vale.
        Sem preço, usa o preço base do produto.

        Returns:
            (itens, erro) com itens no formato
            {'product_id', 'quantity', 'unit_price', 'subtotal', 'cost_unit', 'cost_total'}
        """
        if not raw_items or not isinstance(raw_items, list):
            return None, 'Inclua ao menos um produto na venda.'

        merged: 'OrderedDict[int, Dict[str, Any]]' = OrderedDict()
        for raw in raw_items:
            if not isinstance(raw, dict):
                return None, 'Selecione um produto e informe quantidade/preço válidos.'
            product_id = parse_int(_pick(raw, 'product_id', 'productId'))
            quantity = parse_decimal(raw.get('quantity'))
            raw_price = _pick(raw, 'unit_price', 'unitPrice')
            price = None
            if raw_price is not None and raw_price != '':
                price = parse_decimal(raw_price)
                if price is None or price < 0:
                    return None, 'Quantidade e preço precisam ser válidos.'
            if not product_id or quantity is None or quantity <= 0:
                return None, 'Quantidade e preço precisam ser válidos.'

            entry = merged.setdefault(product_id, {'quantity': 0, 'unit_price': None})
            entry['quantity'] += quantity
            if price is not None:
                entry['unit_price'] = price

        products = self.product_repo.get_many(list(merged))
        missing = [pid for pid in merged if pid not in products]
        if missing:
            return None, f'Produto inválido: #{missing[0]}.'

        costs = self.product_service.production_costs(list(merged))

        items = []
        for product_id, entry in merged.items():
            quantity = round_quantity(entry['quantity'])
            unit_price = entry['unit_price']
            if unit_price is None:
                unit_price = products[product_id].base_price
            cost_unit = costs.get(product_id, products[product_id].cost)
            items.append({
                'product_id': product_id,
                'quantity': quantity,
                'unit_price': unit_price,
                'subtotal': round(quantity * unit_price, 2),
                'cost_unit': cost_unit,
                'cost_total': round(cost_unit * quantity, 2),
            })
        return items, None

    def _validate_header(self, fields: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[str]]:
        """Normaliza os campos de cabeçalho informados (texto limpo, vazio vira None)."""
        header: Dict[str, Any] = {}
        if 'customer_name' in fields:
            header['customer_name'] = clean_text(fields['customer_name'])
        if 'notes' in fields:
            header['notes'] = clean_text(fields['notes'])
        if 'payment_method' in fields:
            method = clean_text(fields['payment_method'])
            if method is not None and method not in PAYMENT_METHODS:
                return {}, 'Forma de pagamento inválida.'
            header['payment_method'] = method
        if 'status' in fields:
            status = clean_text(fields['status'])
            if status not in SALE_STATUSES:
                return {}, 'Status de venda inválido.'
            header['status'] = status
        if 'sale_date' in fields:
            header['sale_date'] = clean_text(fields['sale_date'])
        return header, None

    # =========================================================================
    # CONSUMO DE INSUMOS
    # =========================================================================

    def _build_plan(self, items: List[Dict[str, Any]]) -> ConsumptionPlan:
        """
        Quanto cada item consome de cada insumo.

        Produto sem composição não consome nada.
        """
        compositions = self.product_repo.compositions_for([i['product_id'] for i in items])
        plan: ConsumptionPlan = []
        for item in items:
            for row in compositions.get(item['product_id'], []):
                amount = round_quantity(row.quantity * item['quantity'])
                if amount > 0:
                    plan.append((item['product_id'], row.supply_id, amount))
        return plan

    def _check_stock(self, plan: ConsumptionPlan) -> Tuple[Dict[int, Supply], Optional[str]]:
        """
        Confere se há estoque para todo o plano.

        Returns:
            (insumos_por_id, erro)
        """
        totals: Dict[int, float] = defaultdict(float)
        for _, supply_id, amount in plan:
            totals[supply_id] += amount

        supplies = self.supply_repo.get_many(list(totals))
        for supply_id, needed in totals.items():
            supply = supplies.get(supply_id)
            if not supply:
                return supplies, f'Insumo #{supply_id} da composição não foi encontrado.'
            if round_quantity(supply.quantity - needed) < 0:
                return supplies, (
                    f'Estoque insuficiente de {supply.name}: '
                    f'necessário {round_quantity(needed)}, disponível {supply.quantity}.'
                )
        return supplies, None

    def _apply_plan(self, sale_id: int, plan: ConsumptionPlan, supplies: Dict[int, Supply]) -> None:
        """
        Baixa o estoque e grava uma saida_por_venda por (item, insumo).

        Chamar com supply_repo.stock_lock adquirido desde o _check_stock.
        """
        totals: Dict[int, float] = defaultdict(float)
        for _, supply_id, amount in plan:
            totals[supply_id] += amount

        for supply_id, amount in totals.items():
            self.supply_repo.adjust_quantity(supply_id, -round_quantity(amount))

        self.movement_service.record_many([
            {
                'type': MovementType.SAIDA_POR_VENDA.value,
                'supply_id': supply_id,
                'product_id': product_id,
                'sale_id': sale_id,
                'quantity': amount,
                'unit': supplies[supply_id].unit,
                'unit_value': supplies[supply_id].price,
                'note': f'Venda #{sale_id}',
            }
            for product_id, supply_id, amount in plan
        ])

    def _restore_stock(self, sale_id: int) -> int:
        """
        Devolve ao estoque o consumo líquido da venda.

        Líquido = Σ saida_por_venda − Σ ajuste já estornado com o mesmo venda_id.

        Returns:
            Quantidade de insumos devolvidos
        """
        net: Dict[int, float] = defaultdict(float)
        for movement in self.movement_service.list_movements(sale_id=sale_id):
            if movement.supply_id is None:
                continue
            if movement.type == MovementType.SAIDA_POR_VENDA.value:
                net[movement.supply_id] += movement.quantity
            elif movement.type == MovementType.AJUSTE.value:
                net[movement.supply_id] -= movement.quantity

        pending = {sid: round_quantity(qty) for sid, qty in net.items() if round_quantity(qty) > 0}
        if not pending:
            return 0

        entries = []
        for supply_id, amount in pending.items():
            with self.supply_repo.stock_lock:
                supply = self.supply_repo.adjust_quantity(supply_id, amount)
            if not supply:
                continue
            entries.append({
                'type': MovementType.AJUSTE.value,
                'supply_id': supply_id,
                'sale_id': sale_id,
                'quantity': amount,
                'unit': supply.unit,
                'unit_value': supply.price,
                'note': f'Estorno da venda #{sale_id}',
            })
        self.movement_service.record_many(entries)
        return len(entries)

    @staticmethod
    def _items_as_dicts(sale: Sale) -> List[Dict[str, Any]]:
        return [{'product_id': i.product_id, 'quantity': i.quantity} for i in sale.items]

    # =========================================================================
    # OPERAÇÕES
    # =========================================================================

    @profile_function(name="Registrar venda")
    def create_sale(
        self,
        items: Any,
        customer_name: Optional[str] = None,
        notes: Optional[str] = None,
        payment_method: Optional[str] = None,
        status: Optional[str] = None,
        sale_date: Optional[str] = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Registra uma venda.

        Args:
            items: [{'product_id', 'quantity', 'unit_price'?}, ...]
            customer_name: Nome do cliente
            notes: Observação
            payment_method: dinheiro, cartao-debito, cartao-credito, pix ou outro
            status: aberta (padrão), paga ou cancelada
            sale_date: Data da venda (padrão: agora)
            user: Usuário (para auditoria)

        Returns:
            {'ok': True, 'sale': Sale} ou {'ok': False, 'error': ...}
        """
        normalized, error = self._normalize_items(items)
        if error:
            return {'ok': False, 'error': error}

        header, error = self._validate_header({
            'customer_name': customer_name,
            'notes': notes,
            'payment_method': payment_method,
            'status': clean_text(status) or SaleStatus.ABERTA.value,
            'sale_date': sale_date,
        })
        if error:
            return {'ok': False, 'error': error}
        header['sale_date'] = header['sale_date'] or utc_now_iso()
        header['total'] = round(sum(i['quantity'] * i['unit_price'] for i in normalized), 2)

        consumes = header['status'] != SaleStatus.CANCELADA.value
        plan: ConsumptionPlan = self._build_plan(normalized) if consumes else []

        with self.supply_repo.stock_lock:
            supplies: Dict[int, Supply] = {}
            if plan:
                supplies, error = self._check_stock(plan)
                if error:
                    return {'ok': False, 'error': error}

            sale = self.sales_repo.create(header, normalized)

            if plan:
                self._apply_plan(sale.id, plan, supplies)

        if self.audit_service and user:
            self.audit_service.log_sale_created(
                user, sale.id, sale.total, sale.status, len(sale.items)
            )

        return {'ok': True, 'sale': sale}

    def update_sale(self, sale_id: int, changes: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Altera o cabeçalho da venda.

        Cancelar devolve os insumos; reabrir uma cancelada consome de novo.
        """
        sale = self.sales_repo.get(sale_id)
        if not sale:
            return {'ok': False, 'not_found': True, 'error': 'Venda não encontrada.'}

        header, error = self._validate_header(changes)
        if error:
            return {'ok': False, 'error': error}

        was_cancelled = sale.is_cancelled
        will_cancel = header.get('status', sale.status) == SaleStatus.CANCELADA.value

        plan: ConsumptionPlan = []
        if was_cancelled and not will_cancel:
            plan = self._build_plan(self._items_as_dicts(sale))

        released = 0
        with self.supply_repo.stock_lock:
            supplies: Dict[int, Supply] = {}
            if plan:
                supplies, error = self._check_stock(plan)
                if error:
                    return {'ok': False, 'error': error}

            updated = self.sales_repo.update(sale_id, header)
            if not updated:
                return {'ok': False, 'not_found': True, 'error': 'Venda não encontrada.'}

            if not was_cancelled and will_cancel:
                released = self._restore_stock(sale_id)
            elif plan:
                self._apply_plan(sale_id, plan, supplies)

        if self.audit_service and user:
            if 'status' in header and header['status'] != sale.status:
                self.audit_service.log_sale_status_change(user, sale_id, sale.status, header['status'])
            else:
                self.audit_service.log_sale_updated(user, sale_id, header)
            if released:
                self.audit_service.log_stock_released(user, sale_id, released)

        return {'ok': True, 'sale': updated}

    def delete_sale(self, sale_id: int, user: str = None) -> Dict[str, Any]:
        """Remove itens e venda; se não estava cancelada, devolve os insumos antes."""
        sale = self.sales_repo.get(sale_id)
        if not sale:
            return {'ok': False, 'not_found': True, 'error': 'Venda não encontrada.'}

        released = 0
        if not sale.is_cancelled:
            released = self._restore_stock(sale_id)

        self.sales_repo.delete(sale_id)

        if self.audit_service and user:
            self.audit_service.log_sale_deleted(user, sale_id, sale.total)
            if released:
                self.audit_service.log_stock_released(user, sale_id, released)

        return {'ok': True, 'sale': sale}

    # =========================================================================
    # EXPORTAÇÃO
    # =========================================================================

    def export_rows(self) -> List[List[Any]]:
        """
        Linhas para o CSV de vendas (uma por item).

        Returns:
            Cabeçalho seguido das linhas
        """
        products = {p.id: p.name for p in self.product_repo.list()}
        rows: List[List[Any]] = [[
            'venda_id', 'data_venda', 'cliente', 'status', 'forma_pagamento',
            'produto', 'quantidade', 'preco_unitario', 'subtotal', 'custo_total', 'valor_total'
        ]]
        for sale in self.sales_repo.list():
            for item in sale.items:
                rows.append([
                    sale.id,
                    sale.sale_date or '',
                    sale.customer_name or '',
                    sale.status or '',
                    sale.payment_method or '',
                    products.get(item.product_id, f'#{item.product_id}'),
                    item.quantity,
                    f'{item.unit_price:.2f}',
                    f'{item.subtotal:.2f}',
                    f'{(item.cost_total or 0):.2f}',
                    f'{sale.total:.2f}',
                ])
        return rows

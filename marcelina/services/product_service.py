# ==============================================================================
# SERVIÇO DE PRODUTOS
# ==============================================================================
# Produtos são montados a partir de insumos. O custo e a descrição saem da
# composição e são recalculados sempre que ela muda.
# ==============================================================================

from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

from marcelina.models import Product, ProductSupply, Supply, parse_decimal, parse_int
from marcelina.repositories.product_repository import ProductRepository
from marcelina.repositories.supply_repository import SupplyRepository
from marcelina.services.audit_service import AuditService
from marcelina.services.movement_service import clean_text


def format_amount(value: float) -> str:
    """Quantidade como o usuário digitou: 2 -> "2", 2.5 -> "2.5"."""
    number = float(value)
    return str(int(number)) if number.is_integer() else str(number)


def describe_composition(items: List[Dict[str, Any]], supplies: Dict[int, Supply]) -> str:
    """
    Descrição legível da composição.

    Exemplo: "2 kg de Farinha; 3 de Ovo"
    """
    parts = []
    for item in items:
        supply = supplies.get(item['supply_id'])
        if not supply:
            continue
        unit = f" {supply.unit}" if supply.unit else ""
        parts.append(f"{format_amount(item['quantity'])}{unit} de {supply.name}")
    return "; ".join(parts)


def composition_cost(items: List[Dict[str, Any]], supplies: Dict[int, Supply]) -> float:
    """Σ valor do insumo × quantidade (insumos inexistentes não contam)."""
    total = 0.0
    for item in items:
        supply = supplies.get(item['supply_id'])
        if supply:
            total += supply.price * item['quantity']
    return total


class ProductService:
    """
    Serviço de produtos.

    Responsabilidades:
    - CRUD de produtos
    - Composição (insumos por unidade) com custo calculado
    - Custo atual de produção usado pelas vendas
    - Métricas da tela de produtos
    """

    def __init__(
        self,
        product_repo: ProductRepository,
        supply_repo: SupplyRepository,
        audit_service: AuditService = None
    ):
        self.product_repo = product_repo
        self.supply_repo = supply_repo
        self.audit_service = audit_service

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def list_products(self) -> List[Product]:
        return self.product_repo.list()

    def get_product(self, product_id: int) -> Optional[Product]:
        return self.product_repo.get(product_id)

    def list_composition(self, product_id: Optional[int] = None) -> List[ProductSupply]:
        return self.product_repo.list_composition(product_id)

    @staticmethod
    def metrics(products: List[Product]) -> Dict[str, Any]:
        """
        Returns:
            {'registered', 'active', 'total_cost', 'total_base_price', 'average_margin'}
        """
        total_cost = sum(p.cost for p in products)
        total_base_price = sum(p.base_price for p in products)
        average_margin = (
            sum(p.margin for p in products) / len(products) if products else 0.0
        )
        return {
            'registered': len(products),
            'active': sum(1 for p in products if p.active),
            'total_cost': round(total_cost, 2),
            'total_base_price': round(total_base_price, 2),
            'average_margin': round(average_margin, 2),
        }

    # =========================================================================
    # COMPOSIÇÃO
    # =========================================================================

    def _normalize_composition(
        self,
        raw_items: Any
    ) -> Tuple[Optional[List[Dict[str, Any]]], Dict[int, Supply], Optional[str]]:
        """
        Valida e agrupa os itens da composição.

        Itens repetidos do mesmo insumo têm as quantidades somadas.

        Returns:
            (itens, insumos_por_id, erro)
        """
        if not isinstance(raw_items, list):
            return None, {}, 'Composição inválida.'

        merged: 'OrderedDict[int, float]' = OrderedDict()
        for raw in raw_items:
            if not isinstance(raw, dict):
                return None, {}, 'Composição inválida.'
            supply_id = parse_int(raw.get('supply_id', raw.get('supplyId')))
            quantity = parse_decimal(raw.get('quantity'))
            if not supply_id or quantity is None or quantity <= 0:
                return None, {}, 'Selecione um insumo e informe uma quantidade válida.'
            merged[supply_id] = merged.get(supply_id, 0) + quantity

        supplies = self.supply_repo.get_many(list(merged))
        missing = [sid for sid in merged if sid not in supplies]
        if missing:
            return None, {}, f'Insumo inválido: #{missing[0]}.'

        items = [{'supply_id': sid, 'quantity': qty} for sid, qty in merged.items()]
        return items, supplies, None

    def set_composition(self, product_id: int, raw_items: Any, user: str = None) -> Dict[str, Any]:
        """
        Substitui a composição e recalcula custo e descrição.

        Uma lista vazia limpa a composição (custo zero, sem descrição).
        """
        product = self.product_repo.get(product_id)
        if not product:
            return {'ok': False, 'not_found': True, 'error': 'Produto não encontrado.'}

        items, supplies, error = self._normalize_composition(raw_items)
        if error:
            return {'ok': False, 'error': error}

        rows = self.product_repo.set_composition(product_id, items)
        updated = self.product_repo.update(product_id, {
            'cost': composition_cost(items, supplies),
            'description': describe_composition(items, supplies) or None,
        })

        if self.audit_service and user:
            self.audit_service.log_product_updated(
                user, product_id, product.name, {'composition': items}
            )

        return {'ok': True, 'product': updated, 'composition': rows}

    def production_costs(self, product_ids: List[int]) -> Dict[int, float]:
        """
        Custo atual de uma unidade de cada produto.

        Usa os valores atuais dos insumos; sem composição, vale o custo gravado.
        """
        products = self.product_repo.get_many(product_ids)
        compositions = self.product_repo.compositions_for(product_ids)
        supply_ids = [c.supply_id for rows in compositions.values() for c in rows]
        supplies = self.supply_repo.get_many(supply_ids)

        costs = {}
        for product_id, product in products.items():
            rows = compositions.get(product_id)
            if rows:
                costs[product_id] = round(composition_cost(
                    [{'supply_id': r.supply_id, 'quantity': r.quantity} for r in rows],
                    supplies,
                ), 2)
            else:
                costs[product_id] = product.cost
        return costs

    # =========================================================================
    # CADASTRO
    # =========================================================================

    def create_product(
        self,
        name: str,
        base_price: Any,
        composition: Any,
        active: bool = True,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Cria um produto com sua composição.

        Args:
            name: Nome (obrigatório)
            base_price: Preço de venda (número não negativo)
            composition: [{'supply_id', 'quantity'}, ...] com ao menos um item
            active: Disponível para venda
            user: Usuário (para auditoria)

        Returns:
            {'ok': True, 'product': Product, 'composition': [...]} ou erro
        """
        name = clean_text(name)
        if not name:
            return {'ok': False, 'error': 'Informe o nome do produto.'}

        price = parse_decimal(base_price)
        if price is None or price < 0:
            return {'ok': False, 'error': 'Preço base precisa ser um número válido.'}

        if not composition:
            return {'ok': False, 'error': 'Adicione pelo menos um insumo ao produto.'}

        items, supplies, error = self._normalize_composition(composition)
        if error:
            return {'ok': False, 'error': error}

        cost = composition_cost(items, supplies)
        product = self.product_repo.create(
            name,
            describe_composition(items, supplies) or None,
            cost,
            price,
            bool(active),
        )
        rows = self.product_repo.set_composition(product.id, items)

        if self.audit_service and user:
            self.audit_service.log_product_created(user, product.id, product.name, product.cost)

        return {'ok': True, 'product': product, 'composition': rows}

    def update_product(self, product_id: int, changes: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """Atualiza nome, preço base e/ou disponibilidade."""
        product = self.product_repo.get(product_id)
        if not product:
            return {'ok': False, 'not_found': True, 'error': 'Produto não encontrado.'}

        updates: Dict[str, Any] = {}
        if 'name' in changes:
            name = clean_text(changes['name'])
            if not name:
                return {'ok': False, 'error': 'Informe o nome do produto.'}
            updates['name'] = name
        if 'base_price' in changes:
            price = parse_decimal(changes['base_price'])
            if price is None or price < 0:
                return {'ok': False, 'error': 'Preço base precisa ser um número válido.'}
            updates['base_price'] = price
        if 'active' in changes:
            updates['active'] = bool(changes['active'])

        if not updates:
            return {'ok': True, 'product': product}

        updated = self.product_repo.update(product_id, updates)

        if self.audit_service and user:
            self.audit_service.log_product_updated(
                user, product_id, updates.get('name', product.name), updates
            )

        return {'ok': True, 'product': updated}

    def delete_product(self, product_id: int, user: str = None) -> Dict[str, Any]:
        """Remove o produto e sua composição."""
        product = self.product_repo.get(product_id)
        if not product:
            return {'ok': False, 'not_found': True, 'error': 'Produto não encontrado.'}

        self.product_repo.delete(product_id)

        if self.audit_service and user:
            self.audit_service.log_product_deleted(user, product_id, product.name)

        return {'ok': True, 'product': product}

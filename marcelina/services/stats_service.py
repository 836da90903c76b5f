# ==============================================================================
# SERVIÇO DE ESTATÍSTICAS DE VENDAS
# ==============================================================================
# Análise dos itens vendidos por produto (receita, custo e margem) e os
# indicadores do painel principal.
#
# Os itens levam o status, a forma de pagamento e a data da venda; os filtros
# são aplicados sobre esses campos. Itens de venda sem data não são descartados
# pelo filtro de período.
# ==============================================================================

from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from marcelina.models import SaleItemDetail, SaleStatus
from marcelina.performance_logger import profile_function
from marcelina.repositories.account_repository import AccountRepository
from marcelina.repositories.product_repository import ProductRepository
from marcelina.repositories.sales_repository import SalesRepository
from marcelina.repositories.supply_repository import SupplyRepository
from marcelina.services.account_service import AccountService
from marcelina.services.supply_service import SupplyService

TOP_PRODUCTS_LIMIT = 5


class StatsService:
    """
    Serviço de estatísticas.

    Responsabilidades:
    - Itens de venda detalhados com filtros (período, status, pagamento)
    - Agrupamento por produto, totais e top 5 por receita
    - Série do gráfico (Receita × Custo) e desdobramento diário
    - Indicadores do painel
    """

    def __init__(
        self,
        sales_repo: SalesRepository,
        product_repo: ProductRepository,
        supply_repo: SupplyRepository = None,
        account_repo: AccountRepository = None
    ):
        self.sales_repo = sales_repo
        self.product_repo = product_repo
        self.supply_repo = supply_repo
        self.account_repo = account_repo

    # =========================================================================
    # PERÍODO
    # =========================================================================

    @staticmethod
    def resolve_period(
        period: Optional[str],
        custom_start: Optional[str] = None,
        custom_end: Optional[str] = None,
        today: date = None
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Converte um atalho de período em datas (YYYY-MM-DD).

        Args:
            period: 'today', 'week' (desde segunda), 'month' (desde o dia 1) ou 'custom'
            custom_start: Início para 'custom'
            custom_end: Fim para 'custom'

        Returns:
            (início, fim); (None, None) sem período
        """
        today = today or date.today()
        if period == 'today':
            return today.isoformat(), today.isoformat()
        if period == 'week':
            week_start = today - timedelta(days=today.weekday())
            return week_start.isoformat(), today.isoformat()
        if period == 'month':
            return today.replace(day=1).isoformat(), today.isoformat()
        if period == 'custom':
            return custom_start or None, custom_end or None
        return None, None

    @staticmethod
    def _in_range(sale_date: Optional[str], start_date: Optional[str], end_date: Optional[str]) -> bool:
        if not sale_date:
            return True
        if start_date and sale_date < start_date:
            return False
        if end_date:
            # Fim só com data inclui o dia inteiro
            compared = sale_date[:10] if len(end_date) == 10 else sale_date
            if compared > end_date:
                return False
        return True

    # =========================================================================
    # ITENS DETALHADOS
    # =========================================================================

    def list_detailed_items(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        status: Optional[str] = None,
        payment: Optional[str] = None
    ) -> List[SaleItemDetail]:
        """
        Itens de venda com status, forma de pagamento e data da venda.

        Args:
            start_date: Início (ISO, inclusivo)
            end_date: Fim (ISO, inclusivo)
            status: Status da venda
            payment: Forma de pagamento

        Returns:
            Itens da venda mais recente para a mais antiga
        """
        sales = {s.id: s for s in self.sales_repo.list_headers()}
        items = sorted(self.sales_repo.list_items(), key=lambda i: (-i.sale_id, i.id))

        result = []
        for item in items:
            detail = SaleItemDetail.from_item(item, sales.get(item.sale_id))
            if status and detail.sale_status != status:
                continue
            if payment and detail.sale_payment != payment:
                continue
            if not self._in_range(detail.sale_date, start_date, end_date):
                continue
            result.append(detail)
        return result

    # =========================================================================
    # VISÃO POR PRODUTO
    # =========================================================================

    @profile_function(name="Análise de vendas por produto")
    def overview(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        status: Optional[str] = None,
        payment: Optional[str] = None,
        period: Optional[str] = None,
        today: date = None
    ) -> Dict[str, Any]:
        """
        Resumo de vendas por produto.

        Returns:
            {
                'filters': {...},
                'totals': {'revenue', 'cost', 'margin', 'quantity'},
                'products': [{'product_id', 'name', 'quantity', 'revenue', 'cost', 'margin'}],
                'top_products': [{'name', 'revenue', 'cost', 'margin'}],   # 5 maiores receitas
                'chart': {'categories': [...], 'series': [{'name': 'Receita', 'data'}, {'name': 'Custo', 'data'}]},
                'daily_breakdown': [{'date', 'revenue', 'cost', 'margin'}]
            }
        """
        if period:
            start_date, end_date = self.resolve_period(period, start_date, end_date, today)

        items = self.list_detailed_items(start_date, end_date, status, payment)
        names = {p.id: p.name for p in self.product_repo.list()}

        # Agrupamento por produto (ordem de primeira aparição)
        grouped: Dict[int, Dict[str, float]] = {}
        daily = defaultdict(lambda: {'revenue': 0.0, 'cost': 0.0})
        for item in items:
            current = grouped.setdefault(item.product_id, {'quantity': 0.0, 'revenue': 0.0, 'cost': 0.0})
            cost = item.cost_total or 0
            current['quantity'] += item.quantity
            current['revenue'] += item.subtotal
            current['cost'] += cost
            if item.sale_date:
                day = daily[item.sale_date[:10]]
                day['revenue'] += item.subtotal
                day['cost'] += cost

        products = [
            {
                'product_id': product_id,
                'name': names.get(product_id, f'#{product_id}'),
                'quantity': values['quantity'],
                'revenue': round(values['revenue'], 2),
                'cost': round(values['cost'], 2),
                'margin': round(values['revenue'] - values['cost'], 2),
            }
            for product_id, values in grouped.items()
        ]

        revenue = sum(v['revenue'] for v in grouped.values())
        cost = sum(v['cost'] for v in grouped.values())
        totals = {
            'revenue': round(revenue, 2),
            'cost': round(cost, 2),
            'margin': round(revenue - cost, 2),
            'quantity': sum(v['quantity'] for v in grouped.values()),
        }

        top_products = [
            {'name': p['name'], 'revenue': p['revenue'], 'cost': p['cost'], 'margin': p['margin']}
            for p in sorted(products, key=lambda p: p['revenue'], reverse=True)[:TOP_PRODUCTS_LIMIT]
        ]

        chart = {
            'categories': [p['name'] for p in top_products],
            'series': [
                {'name': 'Receita', 'data': [p['revenue'] for p in top_products]},
                {'name': 'Custo', 'data': [p['cost'] for p in top_products]},
            ],
        }

        daily_breakdown = [
            {
                'date': day,
                'revenue': round(values['revenue'], 2),
                'cost': round(values['cost'], 2),
                'margin': round(values['revenue'] - values['cost'], 2),
            }
            for day, values in sorted(daily.items())
        ]

        return {
            'filters': {
                'start_date': start_date,
                'end_date': end_date,
                'status': status,
                'payment': payment,
            },
            'totals': totals,
            'products': products,
            'top_products': top_products,
            'chart': chart,
            'daily_breakdown': daily_breakdown,
        }

    # =========================================================================
    # PAINEL
    # =========================================================================

    def dashboard(self, today: date = None) -> Dict[str, Any]:
        """
        Indicadores do painel principal.

        Returns:
            {'supplies', 'stock_value', 'products', 'active_products',
             'sales_month', 'revenue_month', 'accounts', 'low_stock'}
        """
        today = today or date.today()
        month_prefix = today.strftime('%Y-%m')

        supplies = self.supply_repo.list() if self.supply_repo else []
        products = self.product_repo.list()
        sales_month = [
            s for s in self.sales_repo.list_headers()
            if (s.sale_date or '').startswith(month_prefix) and not s.is_cancelled
        ]
        accounts = self.account_repo.list() if self.account_repo else []
        supply_metrics = SupplyService.metrics(supplies)

        return {
            'supplies': supply_metrics['registered'],
            'stock_value': supply_metrics['stock_value'],
            'products': len(products),
            'active_products': sum(1 for p in products if p.active),
            'sales_month': len(sales_month),
            'revenue_month': round(sum(s.total for s in sales_month), 2),
            'paid_sales_month': sum(1 for s in sales_month if s.status == SaleStatus.PAGA.value),
            'accounts': AccountService.metrics(accounts, today),
            'low_stock': [s.to_dict() for s in supplies if s.quantity <= 0],
        }

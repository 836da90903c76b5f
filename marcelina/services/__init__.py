# ==============================================================================
# CAMADA DE SERVIÇOS - Regras de negócio
# ==============================================================================
# PRINCÍPIOS:
# 1. Os serviços orquestram operações entre repositórios
# 2. Aplicam regras de negócio e validações
# 3. As rotas só chamam serviços
# 4. Os serviços NÃO conhecem o tipo de armazenamento (JSON/Supabase)
#
# ESTRUTURA:
# ├── supply_service.py    → Insumos, entradas e saídas de estoque
# ├── product_service.py   → Produtos e composição (custo calculado)
# ├── sales_service.py     → Vendas e consumo de insumos
# ├── account_service.py   → Contas a pagar/receber e recorrência
# ├── movement_service.py  → Histórico de movimentações
# ├── stats_service.py     → Análise de vendas e painel
# ├── audit_service.py     → Registro de atividades
# ├── user_service.py      → Autenticação e usuários
# └── backup_service.py    → Backups diários das tabelas JSON
# ==============================================================================

from marcelina.services.audit_service import AuditService, format_money
from marcelina.services.movement_service import MovementService
from marcelina.services.supply_service import SupplyService
from marcelina.services.product_service import ProductService
from marcelina.services.sales_service import SalesService
from marcelina.services.account_service import AccountService
from marcelina.services.stats_service import StatsService
from marcelina.services.user_service import UserService
from marcelina.services.backup_service import BackupService, run_startup_backup

__all__ = [
    'AuditService',
    'format_money',
    'MovementService',
    'SupplyService',
    'ProductService',
    'SalesService',
    'AccountService',
    'StatsService',
    'UserService',
    'BackupService',
    'run_startup_backup',
]

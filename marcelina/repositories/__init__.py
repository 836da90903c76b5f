# ==============================================================================
# CAMADA DE REPOSITÓRIOS - Acesso a dados
# ==============================================================================
# Esta camada encapsula todo o acesso à persistência.
# Os repositórios de domínio recebem tabelas (ITable) já construídas, então o
# mesmo código roda sobre arquivos JSON locais ou sobre o Supabase.
#
# ESTRUTURA:
# ├── interfaces.py            → Protocolo ITable (contrato das tabelas)
# ├── base.py                  → JsonTable, TableRepository, RepositoryError
# ├── supabase_table.py        → ITable sobre o cliente supabase (PostgREST)
# ├── supply_repository.py     → insumos
# ├── product_repository.py    → produtos + produto_insumos
# ├── sales_repository.py      → vendas + venda_itens
# ├── account_repository.py    → contas
# ├── movement_repository.py   → movimentacoes
# ├── audit_repository.py      → auditoria
# └── user_repository.py       → usuarios
# ==============================================================================

from .interfaces import ITable, Order

from .base import BaseRepository, JsonTable, RepositoryError, TableRepository
from .supabase_table import SupabaseTable, create_supabase_client
from .supply_repository import SupplyRepository
from .product_repository import ProductRepository
from .sales_repository import SalesRepository
from .account_repository import AccountRepository
from .movement_repository import MovementRepository
from .audit_repository import AuditRepository
from .user_repository import UserRepository

__all__ = [
    # Interfaces
    'ITable',
    'Order',

    # Base
    'BaseRepository',
    'JsonTable',
    'RepositoryError',
    'TableRepository',

    # Supabase
    'SupabaseTable',
    'create_supabase_client',

    # Domínio
    'SupplyRepository',
    'ProductRepository',
    'SalesRepository',
    'AccountRepository',
    'MovementRepository',
    'AuditRepository',
    'UserRepository',
]

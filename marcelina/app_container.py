# ==============================================================================
# CONTÊINER DE DEPENDÊNCIAS - Injeção de serviços
# ==============================================================================
# Centraliza a criação dos repositórios e serviços:
#   - Injeção de dependências
#   - Testes (cada create_app() começa com um contêiner novo)
#   - Troca de armazenamento sem tocar nos serviços
#
# ARMAZENAMENTO:
#   backend "json"     → JsonTable em <data_dir>/<tabela>.json
#   backend "supabase" → SupabaseTable sobre o cliente oficial
#
# Os repositórios só conhecem o contrato ITable, então a escolha do backend
# fica toda em _table().
# ==============================================================================

from typing import Dict, Optional

from marcelina.config import BACKEND_SUPABASE, Config

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITÓRIOS
# ═══════════════════════════════════════════════════════════════════════════════
from marcelina.repositories import (
    AccountRepository,
    AuditRepository,
    ITable,
    JsonTable,
    MovementRepository,
    ProductRepository,
    SalesRepository,
    SupabaseTable,
    SupplyRepository,
    UserRepository,
    create_supabase_client,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVIÇOS
# ═══════════════════════════════════════════════════════════════════════════════
from marcelina.services import (
    AccountService,
    AuditService,
    BackupService,
    MovementService,
    ProductService,
    SalesService,
    StatsService,
    SupplyService,
    UserService,
)


class AppContainer:
    """
    Contêiner de dependências da aplicação.

    Singleton: uma única instância de cada repositório e serviço.

    Uso:
        container = AppContainer.get_instance(config)
        supply_service = container.supply_service
        sales_service = container.sales_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, config: Config = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config: Config = None):
        """
        Args:
            config: Configuração (só é usada na primeira chamada)
        """
        if self._initialized:
            return

        self.config = config or Config.from_env()
        self._client = None
        self._tables: Dict[str, ITable] = {}

        # Repositórios (lazy loading)
        self._supply_repo: Optional[SupplyRepository] = None
        self._product_repo: Optional[ProductRepository] = None
        self._sales_repo: Optional[SalesRepository] = None
        self._account_repo: Optional[AccountRepository] = None
        self._movement_repo: Optional[MovementRepository] = None
        self._audit_repo: Optional[AuditRepository] = None
        self._user_repo: Optional[UserRepository] = None

        # Serviços (lazy loading)
        self._audit_service: Optional[AuditService] = None
        self._movement_service: Optional[MovementService] = None
        self._supply_service: Optional[SupplyService] = None
        self._product_service: Optional[ProductService] = None
        self._sales_service: Optional[SalesService] = None
        self._account_service: Optional[AccountService] = None
        self._stats_service: Optional[StatsService] = None
        self._user_service: Optional[UserService] = None
        self._backup_service: Optional[BackupService] = None

        self._initialized = True

    # =========================================================================
    # TABELAS
    # =========================================================================

    @property
    def client(self):
        """Cliente do Supabase (criado na primeira tabela remota)."""
        if self._client is None:
            self._client = create_supabase_client(self.config.supabase_url, self.config.supabase_key)
        return self._client

    def _table(self, name: str) -> ITable:
        if name not in self._tables:
            if self.config.backend == BACKEND_SUPABASE:
                self._tables[name] = SupabaseTable(self.client, name)
            else:
                self._tables[name] = JsonTable(self.config.data_dir, name)
        return self._tables[name]

    # =========================================================================
    # REPOSITÓRIOS
    # =========================================================================

    @property
    def supply_repo(self) -> SupplyRepository:
        if self._supply_repo is None:
            self._supply_repo = SupplyRepository(self._table('insumos'))
        return self._supply_repo

    @property
    def product_repo(self) -> ProductRepository:
        if self._product_repo is None:
            self._product_repo = ProductRepository(
                self._table('produtos'),
                self._table('produto_insumos')
            )
        return self._product_repo

    @property
    def sales_repo(self) -> SalesRepository:
        if self._sales_repo is None:
            self._sales_repo = SalesRepository(
                self._table('vendas'),
                self._table('venda_itens')
            )
        return self._sales_repo

    @property
    def account_repo(self) -> AccountRepository:
        if self._account_repo is None:
            self._account_repo = AccountRepository(self._table('contas'))
        return self._account_repo

    @property
    def movement_repo(self) -> MovementRepository:
        if self._movement_repo is None:
            self._movement_repo = MovementRepository(self._table('movimentacoes'))
        return self._movement_repo

    @property
    def audit_repo(self) -> AuditRepository:
        if self._audit_repo is None:
            self._audit_repo = AuditRepository(self._table('auditoria'))
        return self._audit_repo

    @property
    def user_repo(self) -> UserRepository:
        if self._user_repo is None:
            self._user_repo = UserRepository(self._table('usuarios'))
        return self._user_repo

    # =========================================================================
    # SERVIÇOS
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        """Serviço de auditoria (singleton)."""
        if self._audit_service is None:
            self._audit_service = AuditService(self.audit_repo)
        return self._audit_service

    @property
    def movement_service(self) -> MovementService:
        if self._movement_service is None:
            self._movement_service = MovementService(self.movement_repo)
        return self._movement_service

    @property
    def supply_service(self) -> SupplyService:
        """Serviço de insumos (singleton)."""
        if self._supply_service is None:
            self._supply_service = SupplyService(
                self.supply_repo,
                self.product_repo,
                self.movement_service,
                self.audit_service
            )
        return self._supply_service

    @property
    def product_service(self) -> ProductService:
        """Serviço de produtos (singleton)."""
        if self._product_service is None:
            self._product_service = ProductService(
                self.product_repo,
                self.supply_repo,
                self.audit_service
            )
        return self._product_service

    @property
    def sales_service(self) -> SalesService:
        """Serviço de vendas (singleton)."""
        if self._sales_service is None:
            self._sales_service = SalesService(
                self.sales_repo,
                self.product_repo,
                self.supply_repo,
                self.product_service,
                self.movement_service,
                self.audit_service
            )
        return self._sales_service

    @property
    def account_service(self) -> AccountService:
        if self._account_service is None:
            self._account_service = AccountService(self.account_repo, self.audit_service)
        return self._account_service

    @property
    def stats_service(self) -> StatsService:
        if self._stats_service is None:
            self._stats_service = StatsService(
                self.sales_repo,
                self.product_repo,
                self.supply_repo,
                self.account_repo
            )
        return self._stats_service

    @property
    def user_service(self) -> UserService:
        """Serviço de usuários (singleton)."""
        if self._user_service is None:
            self._user_service = UserService(self.user_repo, self.audit_service)
        return self._user_service

    @property
    def backup_service(self) -> Optional[BackupService]:
        """Backups dos arquivos JSON; None com o Supabase."""
        if not self.config.uses_json:
            return None
        if self._backup_service is None:
            self._backup_service = BackupService(self.config.data_dir)
        return self._backup_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Descarta todas as instâncias.
        Útil nos testes ou para recarregar os dados.
        """
        self._client = None
        self._tables = {}

        self._supply_repo = None
        self._product_repo = None
        self._sales_repo = None
        self._account_repo = None
        self._movement_repo = None
        self._audit_repo = None
        self._user_repo = None

        self._audit_service = None
        self._movement_service = None
        self._supply_service = None
        self._product_service = None
        self._sales_service = None
        self._account_service = None
        self._stats_service = None
        self._user_service = None
        self._backup_service = None

    @classmethod
    def get_instance(cls, config: Config = None) -> 'AppContainer':
        """
        Instância singleton do contêiner.

        Args:
            config: Configuração (só é usada na primeira chamada)
        """
        if cls._instance is None:
            return cls(config)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Remove a instância singleton (útil para testes)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(config: Config = None) -> AppContainer:
    """
    Contêiner de dependências global.

    Args:
        config: Configuração da aplicação
    """
    return AppContainer.get_instance(config)

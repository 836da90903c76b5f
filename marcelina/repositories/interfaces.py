# ==============================================================================
# INTERFACES DOS REPOSITÓRIOS
# ==============================================================================
#
# Contrato que as tabelas (JsonTable, SupabaseTable) implementam.
# Os repositórios de domínio só falam com ITable, então trocar JSON local
# por Supabase só muda a tabela injetada. Dublês de teste seguem o mesmo
# protocolo.
#
# Para trocar o backend: ver app_container.py (MARCELINA_BACKEND).
#
# ==============================================================================

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable


# Ordenação: lista de (coluna, descendente)
Order = Sequence[Tuple[str, bool]]


# ==============================================================================
# INTERFACE BASE - TABELA
# ==============================================================================

@runtime_checkable
class ITable(Protocol):
    """
    Tabela genérica do banco (linhas como dicionários).

    Filtros de igualdade em `filters`; um valor lista significa IN.
    `gte`/`lte` aplicam limites inclusivos.
    """

    name: str

    def select(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[Order] = None,
        gte: Optional[Dict[str, Any]] = None,
        lte: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Busca linhas."""
        ...

    def get(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """Busca uma linha pelo id."""
        ...

    def insert(self, rows: Any) -> List[Dict[str, Any]]:
        """Insere uma linha (dict) ou várias (lista) e retorna as inseridas."""
        ...

    def update(self, record_id: Any, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Atualiza uma linha e retorna a versão nova."""
        ...

    def increment(self, record_id: Any, field: str, delta: float) -> Optional[Dict[str, Any]]:
        """Soma delta a uma coluna numérica sem perder escritas concorrentes."""
        ...

    def delete_where(self, field: str, value: Any) -> int:
        """Remove as linhas onde field == value."""
        ...



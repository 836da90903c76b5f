# ==============================================================================
# TABELA SUPABASE - Mesmo contrato de JsonTable sobre o Postgres hospedado
# ==============================================================================
# Usa o cliente oficial `supabase` (PostgREST). Erros da API viram
# RepositoryError para que serviços e rotas tratem igual ao backend JSON.
# ==============================================================================

from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from marcelina.models import round_quantity
from marcelina.repositories.base import RepositoryError
from marcelina.repositories.interfaces import Order


def create_supabase_client(url: str, key: str) -> Client:
    """
    Cria o cliente do Supabase.

    Args:
        url: URL do projeto (SUPABASE_URL)
        key: Chave anon/service (SUPABASE_KEY)
    """
    return create_client(url, key)


class SupabaseTable:
    """
    Tabela remota acessada via PostgREST.

    Uso:
        client = create_supabase_client(url, key)
        insumos = SupabaseTable(client, 'insumos')
        insumos.select(order=[('id', False)])
    """

    # Tentativas de increment antes de desistir por conflito
    MAX_INCREMENT_ATTEMPTS = 5

    def __init__(self, client: Client, name: str):
        self.client = client
        self.name = name

    def _execute(self, query) -> List[Dict[str, Any]]:
        try:
            response = query.execute()
        except APIError as exc:
            raise RepositoryError(exc.message or str(exc)) from exc
        return list(response.data or [])

    def select(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[Order] = None,
        gte: Optional[Dict[str, Any]] = None,
        lte: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        query = self.client.table(self.name).select('*')
        for field, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set, frozenset)):
                if not value:
                    return []
                query = query.in_(field, list(value))
            else:
                query = query.eq(field, value)
        for field, bound in (gte or {}).items():
            query = query.gte(field, bound)
        for field, bound in (lte or {}).items():
            query = query.lte(field, bound)
        for field, descending in order or []:
            query = query.order(field, desc=descending)
        return self._execute(query)

    def get(self, record_id: Any) -> Optional[Dict[str, Any]]:
        rows = self._execute(self.client.table(self.name).select('*').eq('id', record_id))
        return rows[0] if rows else None

    def insert(self, rows: Any) -> List[Dict[str, Any]]:
        payload = rows if isinstance(rows, dict) else list(rows)
        if isinstance(payload, list) and not payload:
            return []
        return self._execute(self.client.table(self.name).insert(payload))

    def update(self, record_id: Any, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table(self.name).update(changes).eq('id', record_id)
        )
        return rows[0] if rows else None

    def increment(self, record_id: Any, field: str, delta: float) -> Optional[Dict[str, Any]]:
        """
        Soma delta à coluna numérica.

        PostgREST não tem incremento relativo: grava com a condição de que a
        coluna ainda tenha o valor lido e tenta de novo se outro processo
        mudou a linha no meio.
        """
        for _ in range(self.MAX_INCREMENT_ATTEMPTS):
            current = self.get(record_id)
            if current is None:
                return None
            old = current.get(field)
            new = round_quantity(float(old or 0) + delta)
            query = self.client.table(self.name).update({field: new}).eq('id', record_id)
            query = query.is_(field, 'null') if old is None else query.eq(field, old)
            rows = self._execute(query)
            if rows:
                return rows[0]
        raise RepositoryError(
            f'Registro #{record_id} de {self.name} alterado por outra operação; tente novamente.'
        )

    def delete_where(self, field: str, value: Any) -> int:
        rows = self._execute(self.client.table(self.name).delete().eq(field, value))
        return len(rows)

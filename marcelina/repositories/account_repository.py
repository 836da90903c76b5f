# ==============================================================================
# REPOSITÓRIO DE CONTAS A PAGAR / RECEBER
# ==============================================================================
# Encapsula todo o acesso à tabela `contas`.
# ==============================================================================

from typing import Any, Dict, List, Optional

from marcelina.models import Account, utc_now_iso
from marcelina.repositories.base import TableRepository

FIELD_MAP = {
    'type': 'tipo',
    'status': 'status',
    'title': 'titulo',
    'description': 'descricao',
    'amount': 'valor',
    'due_date': 'data_vencimento',
    'payment_date': 'data_pagamento',
    'is_recurring': 'recorrente',
    'recurrence_type': 'recorrencia_tipo',
    'recurrence_day': 'recorrencia_dia',
    'last_generated_date': 'data_ultima_geracao',
    'active': 'ativo',
}


def to_row(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Converte campos do modelo para colunas da tabela."""
    return {FIELD_MAP[k]: v for k, v in changes.items() if k in FIELD_MAP}


class AccountRepository(TableRepository):
    """
    Repositório de contas.

    Formato da linha:
        {"id", "tipo", "status", "titulo", "descricao", "valor",
         "data_vencimento", "data_pagamento", "recorrente",
         "recorrencia_tipo", "recorrencia_dia", "data_ultima_geracao",
         "ativo", "created_at", "updated_at"}
    """

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Account]:
        """
        Contas ordenadas por vencimento (mais próximo primeiro).

        Args:
            filters: Campos do modelo para igualdade (ex: {'type': 'pagar'})
        """
        with self._action('listar contas'):
            rows = self.table.select(
                filters=to_row(filters or {}),
                order=[('data_vencimento', False), ('id', False)],
            )
        return [Account.from_record(r) for r in rows]

    def get(self, account_id: int) -> Optional[Account]:
        with self._action('buscar conta'):
            row = self.table.get(account_id)
        return Account.from_record(row) if row else None

    def create(self, fields: Dict[str, Any]) -> Account:
        payload = to_row(fields)
        payload['updated_at'] = utc_now_iso()
        with self._action('criar conta'):
            rows = self.table.insert(payload)
        return Account.from_record(self._first(rows, 'criar conta'))

    def update(self, account_id: int, changes: Dict[str, Any]) -> Optional[Account]:
        payload = to_row(changes)
        payload['updated_at'] = utc_now_iso()
        with self._action('atualizar conta'):
            row = self.table.update(account_id, payload)
        return Account.from_record(row) if row else None

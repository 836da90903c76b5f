# ==============================================================================
# REPOSITÓRIO DE AUDITORIA
# ==============================================================================
# Encapsula todo o acesso à tabela `auditoria`.
# ==============================================================================

from datetime import datetime
from typing import Any, Dict, List, Optional

from marcelina.models import AuditLog
from marcelina.repositories.base import TableRepository


class AuditRepository(TableRepository):
    """
    Repositório do registro de atividades.

    Formato da linha:
        {
            "tipo": "VENDA",
            "usuario": "admin",
            "mensagem": "Venda #12 registrada por admin (R$ 45,00)",
            "referencia": "12",
            "detalhes": {...},
            "data": "2024-01-01 10:00:00"
        }
    """

    def list(self, log_type: Optional[str] = None) -> List[AuditLog]:
        """
        Registros do mais recente para o mais antigo.

        Args:
            log_type: Filtra por tipo (VENDA, INSUMO, ...)
        """
        filters = {'tipo': log_type} if log_type else None
        with self._action('listar auditoria'):
            rows = self.table.select(filters=filters, order=[('data', True), ('id', True)])
        return [AuditLog.from_record(r) for r in rows]

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """
        Registra um novo evento.

        Args:
            log_type: Tipo de evento (VENDA, INSUMO, PRODUTO, CONTA, ESTOQUE, SISTEMA)
            user: Usuário que realizou a ação
            message: Mensagem descritiva humanizada
            related_id: Id relacionado (venda, insumo, ...)
            details: Detalhes adicionais
        """
        entry = {
            'tipo': log_type,
            'usuario': user or 'sistema',
            'mensagem': message,
            'referencia': str(related_id or ''),
            'detalhes': details or {},
            'data': datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        }
        with self._action('registrar auditoria'):
            rows = self.table.insert(entry)
        return AuditLog.from_record(self._first(rows, 'registrar auditoria'))

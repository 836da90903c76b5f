# ==============================================================================
# SERVIÇO DE AUDITORIA
# ==============================================================================
# Centraliza o registro de atividades do sistema.
# Formata mensagens humanizadas e categoriza os eventos.
# ==============================================================================

from typing import Any, Dict, List, Optional

from marcelina.models import AuditLog, AuditType
from marcelina.repositories.audit_repository import AuditRepository


def format_money(value: float) -> str:
    """
    Formata um valor em reais.

    Exemplo: 1234.5 -> "R$ 1.234,50"
    """
    text = f"{value:,.2f}"
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_quantity(value: float) -> str:
    """Quantidade sem casas decimais desnecessárias (3 -> "3", 2.5 -> "2,5")."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return text.replace(".", ",")


class AuditService:
    """
    Serviço de registro e consulta de auditoria.

    Centraliza:
    - Registro de eventos com mensagens humanizadas
    - Categorização (VENDA, INSUMO, PRODUTO, CONTA, ESTOQUE, SISTEMA)
    - Busca e filtragem dos registros
    """

    TYPE_VENDA = AuditType.VENDA.value
    TYPE_INSUMO = AuditType.INSUMO.value
    TYPE_PRODUTO = AuditType.PRODUTO.value
    TYPE_CONTA = AuditType.CONTA.value
    TYPE_ESTOQUE = AuditType.ESTOQUE.value
    TYPE_SISTEMA = AuditType.SISTEMA.value

    def __init__(self, audit_repo: AuditRepository):
        self.audit_repo = audit_repo

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: Any = '',
        details: Dict[str, Any] = None
    ) -> AuditLog:
        """
        Registra um evento genérico.

        Args:
            log_type: Tipo de evento
            user: Usuário que realizou a ação
            message: Mensagem humanizada
            related_id: Id relacionado (venda, insumo, conta...)
            details: Detalhes adicionais
        """
        return self.audit_repo.log(log_type, user, message, str(related_id or ''), details)

    # --- Insumos ---

    def log_supply_created(self, user: str, supply_id: int, name: str, quantity: float) -> None:
        message = f"Insumo cadastrado: {name} (estoque inicial {format_quantity(quantity)}) por {user}"
        self.log(self.TYPE_INSUMO, user, message, supply_id, {'name': name, 'quantity': quantity})

    def log_supply_updated(self, user: str, supply_id: int, name: str, changes: Dict[str, Any]) -> None:
        message = f"Insumo atualizado: {name} por {user}"
        self.log(self.TYPE_INSUMO, user, message, supply_id, {'changes': changes})

    def log_supply_deleted(self, user: str, supply_id: int, name: str) -> None:
        message = f"Insumo removido: {name} por {user}"
        self.log(self.TYPE_INSUMO, user, message, supply_id, {'name': name})

    def log_stock_entry(
        self,
        user: str,
        supply_id: int,
        name: str,
        quantity: float,
        new_stock: float,
        unit: Optional[str] = None
    ) -> None:
        """
        Registra uma entrada de estoque de insumo.

        Args:
            user: Usuário
            supply_id: Id do insumo
            name: Nome do insumo
            quantity: Quantidade adicionada
            new_stock: Estoque após a entrada
            unit: Unidade de medida
        """
        unit_info = f" {unit}" if unit else ""
        message = (
            f"Entrada de estoque: +{format_quantity(quantity)}{unit_info} de {name} "
            f"- Novo estoque: {format_quantity(new_stock)} - Por {user}"
        )
        self.log(
            self.TYPE_ESTOQUE,
            user,
            message,
            supply_id,
            {'quantity': quantity, 'new_stock': new_stock}
        )

    def log_stock_exit(
        self,
        user: str,
        supply_id: int,
        name: str,
        quantity: float,
        new_stock: float,
        reason: str = 'manual'
    ) -> None:
        message = (
            f"Saída de estoque: -{format_quantity(quantity)} de {name} "
            f"- Motivo: {reason} - Por {user}"
        )
        self.log(
            self.TYPE_ESTOQUE,
            user,
            message,
            supply_id,
            {'quantity': quantity, 'new_stock': new_stock, 'reason': reason}
        )

    # --- Produtos ---

    def log_product_created(self, user: str, product_id: int, name: str, cost: float) -> None:
        message = f"Produto criado: {name} (custo {format_money(cost)}) por {user}"
        self.log(self.TYPE_PRODUTO, user, message, product_id, {'name': name, 'cost': cost})

    def log_product_updated(self, user: str, product_id: int, name: str, changes: Dict[str, Any] = None) -> None:
        message = f"Produto atualizado: {name} por {user}"
        self.log(self.TYPE_PRODUTO, user, message, product_id, {'changes': changes or {}})

    def log_product_deleted(self, user: str, product_id: int, name: str) -> None:
        message = f"Produto removido: {name} por {user}"
        self.log(self.TYPE_PRODUTO, user, message, product_id, {'name': name})

    # --- Vendas ---

    def log_sale_created(self, user: str, sale_id: int, total: float, status: str, items_count: int) -> None:
        """
        Registra a criação de uma venda.

        Args:
            user: Usuário que registrou
            sale_id: Id da venda
            total: Valor total
            status: Status inicial
            items_count: Quantidade de itens
        """
        message = (
            f"Venda #{sale_id} registrada por {user} - Total: {format_money(total)} "
            f"- {items_count} itens - Status: {status}"
        )
        self.log(
            self.TYPE_VENDA,
            user,
            message,
            sale_id,
            {'total': total, 'status': status, 'items_count': items_count}
        )

    def log_sale_status_change(self, user: str, sale_id: int, old_status: str, new_status: str) -> None:
        message = f"Venda #{sale_id}: {old_status} → {new_status} por {user}"
        self.log(self.TYPE_VENDA, user, message, sale_id, {'from': old_status, 'to': new_status})

    def log_sale_updated(self, user: str, sale_id: int, changes: Dict[str, Any]) -> None:
        message = f"Venda #{sale_id} atualizada por {user}"
        self.log(self.TYPE_VENDA, user, message, sale_id, {'changes': changes})

    def log_sale_deleted(self, user: str, sale_id: int, total: float) -> None:
        message = f"Venda #{sale_id} removida ({format_money(total)}) por {user}"
        self.log(self.TYPE_VENDA, user, message, sale_id, {'total': total})

    def log_stock_released(self, user: str, sale_id: int, supplies_count: int) -> None:
        """Registra a devolução dos insumos de uma venda cancelada ou removida."""
        message = f"Estoque devolvido da venda #{sale_id}: {supplies_count} insumos - Por {user}"
        self.log(self.TYPE_ESTOQUE, user, message, sale_id, {'supplies_count': supplies_count})

    # --- Contas ---

    def log_account_created(self, user: str, account_id: int, title: str, account_type: str, amount: float) -> None:
        kind = 'a pagar' if account_type == 'pagar' else 'a receber'
        message = f"Conta {kind} criada: {title} ({format_money(amount)}) por {user}"
        self.log(
            self.TYPE_CONTA,
            user,
            message,
            account_id,
            {'type': account_type, 'amount': amount}
        )

    def log_account_updated(self, user: str, account_id: int, title: str, changes: Dict[str, Any]) -> None:
        if changes.get('status') == 'concluida':
            message = f"Conta concluída: {title} por {user}"
        else:
            message = f"Conta atualizada: {title} por {user}"
        self.log(self.TYPE_CONTA, user, message, account_id, {'changes': changes})

    def log_recurring_generated(self, user: str, account_id: int, title: str, due_date: str) -> None:
        message = f"Conta recorrente gerada: {title} (vence {due_date})"
        self.log(self.TYPE_CONTA, user, message, account_id, {'due_date': due_date})

    # --- Sistema ---

    def log_user_login(self, user: str) -> None:
        """Registra um início de sessão."""
        self.log(self.TYPE_SISTEMA, user, f"Início de sessão: {user}")

    def log_user_logout(self, user: str) -> None:
        """Registra um encerramento de sessão."""
        self.log(self.TYPE_SISTEMA, user, f"Fim de sessão: {user}")

    def log_user_created(self, admin_user: str, new_user: str, role: str) -> None:
        message = f"Usuário criado: {new_user} (perfil: {role}) - Por {admin_user}"
        self.log(
            self.TYPE_SISTEMA,
            admin_user,
            message,
            details={'new_user': new_user, 'role': role}
        )

    def log_password_change(self, admin_user: str, target_user: str) -> None:
        if admin_user == target_user:
            message = f"Senha alterada pelo próprio usuário: {target_user}"
        else:
            message = f"Senha de {target_user} alterada por {admin_user}"
        self.log(self.TYPE_SISTEMA, admin_user, message, details={'target_user': target_user})

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def search_logs(
        self,
        query: str = '',
        log_type: str = None,
        limit: int = 200
    ) -> List[AuditLog]:
        """
        Busca registros por tipo e texto livre (mensagem, usuário ou referência).

        Args:
            query: Texto a procurar (sem diferenciar maiúsculas)
            log_type: Tipo de evento
            limit: Máximo de registros devolvidos
        """
        logs = self.audit_repo.list(log_type)
        needle = (query or '').strip().lower()
        if needle:
            logs = [
                log for log in logs
                if needle in log.message.lower()
                or needle in log.user.lower()
                or needle in log.related_id.lower()
            ]
        return logs[:max(limit, 0)]

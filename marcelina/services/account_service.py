# ==============================================================================
# SERVIÇO DE CONTAS A PAGAR / RECEBER
# ==============================================================================
# Cadastro, baixa e métricas das contas, incluindo a geração mensal das
# contas recorrentes.
# ==============================================================================

import calendar
from datetime import date
from typing import Any, Dict, List, Optional

from marcelina.models import (
    ACCOUNT_STATUSES,
    ACCOUNT_TYPES,
    Account,
    AccountStatus,
    AccountType,
    RecurrenceType,
    parse_decimal,
    parse_int,
    parse_iso_date,
)
from marcelina.repositories.account_repository import AccountRepository
from marcelina.services.audit_service import AuditService
from marcelina.services.movement_service import clean_text


def add_month(year: int, month: int) -> tuple:
    """(ano, mês) seguinte."""
    return (year + 1, 1) if month == 12 else (year, month + 1)


def clamp_day(year: int, month: int, day: int) -> date:
    """Data com o dia limitado ao tamanho do mês (31 em fevereiro vira 28/29)."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


class AccountService:
    """
    Serviço de contas.

    Responsabilidades:
    - Validação e cadastro (com recorrência mensal opcional)
    - Atualização parcial e baixa (concluída)
    - Métricas: contagem por status, saldos em aberto e vencidas
    - Geração das ocorrências das contas recorrentes
    """

    def __init__(self, account_repo: AccountRepository, audit_service: AuditService = None):
        self.account_repo = account_repo
        self.audit_service = audit_service

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def list_accounts(self, type: Optional[str] = None, status: Optional[str] = None) -> List[Account]:
        """Contas ordenadas por vencimento, com filtro opcional por tipo e status."""
        filters = {}
        if type:
            filters['type'] = type
        if status:
            filters['status'] = status
        return self.account_repo.list(filters)

    def get_account(self, account_id: int) -> Optional[Account]:
        return self.account_repo.get(account_id)

    @staticmethod
    def metrics(accounts: List[Account], today: date = None) -> Dict[str, Any]:
        """
        Indicadores da tela de contas.

        Returns:
            {'total', 'aberta', 'pendente', 'concluida', 'to_pay', 'to_receive',
             'balance', 'overdue'}
        """
        today = today or date.today()
        counts = {status: 0 for status in ACCOUNT_STATUSES}
        to_pay = 0.0
        to_receive = 0.0
        overdue = 0
        for account in accounts:
            if account.status in counts:
                counts[account.status] += 1
            if account.status != AccountStatus.CONCLUIDA.value:
                if account.type == AccountType.PAGAR.value:
                    to_pay += account.amount
                elif account.type == AccountType.RECEBER.value:
                    to_receive += account.amount
            if account.is_overdue(today):
                overdue += 1
        return {
            'total': len(accounts),
            'aberta': counts[AccountStatus.ABERTA.value],
            'pendente': counts[AccountStatus.PENDENTE.value],
            'concluida': counts[AccountStatus.CONCLUIDA.value],
            'to_pay': round(to_pay, 2),
            'to_receive': round(to_receive, 2),
            'balance': round(to_receive - to_pay, 2),
            'overdue': overdue,
        }

    # =========================================================================
    # VALIDAÇÃO
    # =========================================================================

    @staticmethod
    def _recurrence_day(raw_day: Any, due_date: str) -> Any:
        """
        Dia da recorrência: o informado ou, sem ele, o dia do vencimento.

        Returns:
            int válido, None se não deu para calcular, ou False se o dia
            informado não é um número de 1 a 31
        """
        if raw_day is not None and raw_day != '':
            day = parse_int(raw_day)
            if day is None:
                return False
        else:
            due = parse_iso_date(due_date)
            day = due.day if due else None
        if day is None:
            return None
        return day if 1 <= day <= 31 else False

    # =========================================================================
    # CADASTRO
    # =========================================================================

    def create_account(
        self,
        type: Optional[str],
        title: Optional[str],
        amount: Any,
        due_date: Optional[str],
        status: Optional[str] = None,
        description: Optional[str] = None,
        is_recurring: bool = False,
        recurrence_day: Any = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Cadastra uma conta.

        Args:
            type: pagar ou receber (padrão: receber)
            title: Título (obrigatório)
            amount: Valor
            due_date: Vencimento (YYYY-MM-DD)
            status: aberta (padrão), pendente ou concluida
            description: Descrição
            is_recurring: Se repete todo mês
            recurrence_day: Dia do mês (padrão: dia do vencimento)
            user: Usuário (para auditoria)

        Returns:
            {'ok': True, 'account': Account} ou {'ok': False, 'error': ...}
        """
        title = clean_text(title)
        if not title:
            return {'ok': False, 'error': 'Informe um titulo para a conta.'}

        parsed_amount = parse_decimal(amount)
        if parsed_amount is None:
            return {'ok': False, 'error': 'Informe um valor valido.'}

        due_date = clean_text(due_date)
        if not due_date:
            return {'ok': False, 'error': 'Informe a data de vencimento.'}
        if parse_iso_date(due_date) is None:
            return {'ok': False, 'error': 'Data de vencimento inválida.'}

        account_type = clean_text(type) or AccountType.RECEBER.value
        if account_type not in ACCOUNT_TYPES:
            return {'ok': False, 'error': 'Tipo de conta inválido.'}

        account_status = clean_text(status) or AccountStatus.ABERTA.value
        if account_status not in ACCOUNT_STATUSES:
            return {'ok': False, 'error': 'Status de conta inválido.'}

        is_recurring = bool(is_recurring)
        day = None
        if is_recurring:
            day = self._recurrence_day(recurrence_day, due_date)
            if day is False:
                return {'ok': False, 'error': 'Informe um dia de recorrencia entre 1 e 31.'}

        fields = {
            'type': account_type,
            'status': account_status,
            'title': title,
            'description': clean_text(description),
            'amount': parsed_amount,
            'due_date': due_date,
            'payment_date': date.today().isoformat() if account_status == AccountStatus.CONCLUIDA.value else None,
            'is_recurring': is_recurring,
            'recurrence_type': RecurrenceType.MENSAL.value if is_recurring else None,
            'recurrence_day': day if is_recurring else None,
            'active': True,
        }
        account = self.account_repo.create(fields)

        if self.audit_service and user:
            self.audit_service.log_account_created(
                user, account.id, account.title, account.type, account.amount
            )

        return {'ok': True, 'account': account}

    def update_account(
        self,
        account_id: int,
        changes: Dict[str, Any],
        user: str = None,
        today: date = None
    ) -> Dict[str, Any]:
        """
        Atualização parcial.

        - is_recurring informado: recalcula tipo e dia de recorrência (False limpa)
        - senão, recurrence_type/recurrence_day só são gravados se informados
        - status concluida sem data de pagamento: usa a data de hoje
        """
        current = self.account_repo.get(account_id)
        if not current:
            return {'ok': False, 'not_found': True, 'error': 'Conta não encontrada.'}

        updates: Dict[str, Any] = {}

        if 'title' in changes:
            title = clean_text(changes['title'])
            if not title:
                return {'ok': False, 'error': 'Informe um titulo para a conta.'}
            updates['title'] = title
        if 'amount' in changes:
            amount = parse_decimal(changes['amount'])
            if amount is None:
                return {'ok': False, 'error': 'Informe um valor valido.'}
            updates['amount'] = amount
        if 'due_date' in changes:
            due_date = clean_text(changes['due_date'])
            if not due_date:
                return {'ok': False, 'error': 'Informe a data de vencimento.'}
            if parse_iso_date(due_date) is None:
                return {'ok': False, 'error': 'Data de vencimento inválida.'}
            updates['due_date'] = due_date
        if 'type' in changes:
            account_type = clean_text(changes['type'])
            if account_type not in ACCOUNT_TYPES:
                return {'ok': False, 'error': 'Tipo de conta inválido.'}
            updates['type'] = account_type
        if 'status' in changes:
            account_status = clean_text(changes['status'])
            if account_status not in ACCOUNT_STATUSES:
                return {'ok': False, 'error': 'Status de conta inválido.'}
            updates['status'] = account_status
        if 'description' in changes:
            updates['description'] = clean_text(changes['description'])
        if 'payment_date' in changes:
            updates['payment_date'] = clean_text(changes['payment_date'])
        if 'active' in changes:
            updates['active'] = bool(changes['active'])

        if 'is_recurring' in changes:
            is_recurring = bool(changes['is_recurring'])
            updates['is_recurring'] = is_recurring
            if is_recurring:
                day = self._recurrence_day(
                    changes.get('recurrence_day'),
                    updates.get('due_date', current.due_date),
                )
                if day is False:
                    return {'ok': False, 'error': 'Informe um dia de recorrencia entre 1 e 31.'}
                updates['recurrence_type'] = changes.get('recurrence_type') or RecurrenceType.MENSAL.value
                updates['recurrence_day'] = day
            else:
                updates['recurrence_type'] = None
                updates['recurrence_day'] = None
        else:
            if 'recurrence_type' in changes:
                updates['recurrence_type'] = changes['recurrence_type']
            if 'recurrence_day' in changes:
                raw_day = changes['recurrence_day']
                day = None
                if raw_day is not None and raw_day != '':
                    day = parse_int(raw_day)
                    if day is None or not 1 <= day <= 31:
                        return {'ok': False, 'error': 'Informe um dia de recorrencia entre 1 e 31.'}
                updates['recurrence_day'] = day

        if updates.get('status') == AccountStatus.CONCLUIDA.value and not updates.get('payment_date'):
            if 'payment_date' in changes or not current.payment_date:
                updates['payment_date'] = (today or date.today()).isoformat()

        if not updates:
            return {'ok': True, 'account': current}

        account = self.account_repo.update(account_id, updates)
        if not account:
            return {'ok': False, 'not_found': True, 'error': 'Conta não encontrada.'}

        if self.audit_service and user:
            self.audit_service.log_account_updated(user, account.id, account.title, updates)

        return {'ok': True, 'account': account}

    # =========================================================================
    # RECORRÊNCIA
    # =========================================================================

    def generate_recurring(self, today: date = None, user: str = None) -> List[Account]:
        """
        Gera as ocorrências mensais pendentes das contas recorrentes ativas.

        Para cada conta recorrente, parte do mês da última geração (ou do
        vencimento original) e cria uma conta por mês até o mês de `today`.
        Rodar de novo no mesmo mês não cria nada.

        Returns:
            Contas criadas
        """
        today = today or date.today()
        created: List[Account] = []

        for account in self.account_repo.list({'is_recurring': True}):
            if not account.active:
                continue
            base = parse_iso_date(account.last_generated_date) or parse_iso_date(account.due_date)
            if base is None:
                continue
            day = account.recurrence_day or base.day

            year, month = base.year, base.month
            last_due = None
            while (year, month) < (today.year, today.month):
                year, month = add_month(year, month)
                due = clamp_day(year, month, day)
                occurrence = self.account_repo.create({
                    'type': account.type,
                    'status': AccountStatus.ABERTA.value,
                    'title': account.title,
                    'description': account.description,
                    'amount': account.amount,
                    'due_date': due.isoformat(),
                    'payment_date': None,
                    'is_recurring': False,
                    'recurrence_type': None,
                    'recurrence_day': None,
                    'active': True,
                })
                created.append(occurrence)
                last_due = due
                if self.audit_service:
                    self.audit_service.log_recurring_generated(
                        user or 'sistema', occurrence.id, occurrence.title, occurrence.due_date
                    )

            if last_due is not None:
                self.account_repo.update(account.id, {'last_generated_date': last_due.isoformat()})

        return created

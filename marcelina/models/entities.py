# ==============================================================================
# ENTIDADES DO DOMÍNIO - Definições com dataclasses
# ==============================================================================
# Cada entidade espelha uma linha do banco (colunas em português) e expõe
# um modelo de visão com nomes em inglês (camelCase no JSON da API).
# Independentes do mecanismo de persistência (JSON local ou Supabase).
# ==============================================================================

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# ==============================================================================
# ENUMERAÇÕES - Estados e tipos válidos
# ==============================================================================

class SaleStatus(str, Enum):
    """Estados possíveis de uma venda."""
    ABERTA = "aberta"
    PAGA = "paga"
    CANCELADA = "cancelada"


class PaymentMethod(str, Enum):
    """Formas de pagamento aceitas."""
    DINHEIRO = "dinheiro"
    CARTAO_DEBITO = "cartao-debito"
    CARTAO_CREDITO = "cartao-credito"
    PIX = "pix"
    OUTRO = "outro"


class AccountType(str, Enum):
    """Contas a pagar ou a receber."""
    PAGAR = "pagar"
    RECEBER = "receber"


class AccountStatus(str, Enum):
    ABERTA = "aberta"
    PENDENTE = "pendente"
    CONCLUIDA = "concluida"


class RecurrenceType(str, Enum):
    MENSAL = "mensal"


class MovementType(str, Enum):
    """Tipos de movimentação de estoque de insumos."""
    ENTRADA_INSUMO = "entrada_insumo"
    SAIDA_INSUMO = "saida_insumo"
    AJUSTE = "ajuste"
    SAIDA_POR_VENDA = "saida_por_venda"


class UserRole(str, Enum):
    ADMIN = "admin"
    OPERADOR = "operador"


class AuditType(str, Enum):
    """Categorias do registro de atividades."""
    VENDA = "VENDA"
    INSUMO = "INSUMO"
    PRODUTO = "PRODUTO"
    CONTA = "CONTA"
    ESTOQUE = "ESTOQUE"
    SISTEMA = "SISTEMA"


SALE_STATUSES = frozenset(s.value for s in SaleStatus)
PAYMENT_METHODS = frozenset(p.value for p in PaymentMethod)
ACCOUNT_TYPES = frozenset(t.value for t in AccountType)
ACCOUNT_STATUSES = frozenset(s.value for s in AccountStatus)
MOVEMENT_TYPES = frozenset(m.value for m in MovementType)


# ==============================================================================
# NORMALIZAÇÃO DE VALORES
# ==============================================================================

def normalize_number(value: Any) -> float:
    """
    Converte um valor numérico vindo do banco para número.

    Colunas numeric podem chegar como número, texto (inclusive com vírgula
    decimal, ex: "12,50") ou nulo. Texto inválido e nulo viram 0.

    Args:
        value: Valor cru da coluna

    Returns:
        Valor numérico
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        parsed = parse_decimal(value)
        return 0 if parsed is None else parsed
    return 0


def parse_decimal(value: Any) -> Optional[float]:
    """
    Interpreta um número digitado pelo usuário ("3,5", "10", 2.25).

    Returns:
        float, ou None quando o valor não é um número válido
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            parsed = float(text)
        except ValueError:
            return None
    # NaN e infinito não são quantidades válidas
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return None
    return parsed


def parse_int(value: Any) -> Optional[int]:
    """Converte para inteiro; None quando inválido."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def round_quantity(value: float) -> float:
    """Arredonda quantidades de estoque (3 casas); inteiros ficam inteiros."""
    rounded = round(float(value), 3)
    return int(rounded) if rounded.is_integer() else rounded


def utc_now_iso() -> str:
    """Timestamp atual em ISO 8601 (UTC)."""
    return datetime.now(timezone.utc).isoformat()


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Extrai a data (YYYY-MM-DD) de um texto ISO, com ou sem horário.

    Returns:
        date ou None se o texto não for uma data válida
    """
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _optional_number(value: Any) -> Optional[float]:
    return None if value is None else normalize_number(value)


# ==============================================================================
# INSUMOS E PRODUTOS
# ==============================================================================

@dataclass
class Supply:
    """
    Insumo (matéria-prima) com estoque próprio.

    Attributes:
        id: Identificador
        name: Nome do insumo
        quantity: Quantidade em estoque
        price: Valor unitário de compra
        unit: Unidade de medida (kg, un, l...)
    """
    id: int
    name: str
    quantity: float = 0
    price: float = 0
    unit: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def stock_value(self) -> float:
        return self.quantity * self.price

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> 'Supply':
        return cls(
            id=row['id'],
            name=row.get('nome') or '',
            quantity=normalize_number(row.get('quantidade')),
            price=normalize_number(row.get('valor')),
            unit=row.get('unidade'),
            created_at=row.get('created_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'quantity': self.quantity,
            'price': self.price,
            'unit': self.unit,
            'createdAt': self.created_at,
        }


@dataclass
class ProductSupply:
    """Linha da composição de um produto (quanto de cada insumo)."""
    id: int
    product_id: int
    supply_id: int
    quantity: float = 0
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> 'ProductSupply':
        return cls(
            id=row['id'],
            product_id=row['produto_id'],
            supply_id=row['insumo_id'],
            quantity=normalize_number(row.get('quantidade')),
            created_at=row.get('created_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'productId': self.product_id,
            'supplyId': self.supply_id,
            'quantity': self.quantity,
            'createdAt': self.created_at,
        }


@dataclass
class Product:
    """
    Produto vendido, composto por insumos.

    Attributes:
        cost: Custo calculado pela composição
        base_price: Preço de venda sugerido
        active: Se está disponível para venda
    """
    id: int
    name: str
    description: Optional[str] = None
    cost: float = 0
    base_price: float = 0
    active: bool = True
    updated_at: Optional[str] = None

    @property
    def margin(self) -> float:
        return self.base_price - self.cost

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> 'Product':
        active = row.get('ativo')
        return cls(
            id=row['id'],
            name=row.get('nome') or '',
            description=row.get('descricao'),
            cost=normalize_number(row.get('custo')),
            base_price=normalize_number(row.get('preco_base')),
            active=True if active is None else bool(active),
            updated_at=row.get('updated_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'cost': self.cost,
            'basePrice': self.base_price,
            'active': self.active,
            'updatedAt': self.updated_at,
        }


# ==============================================================================
# VENDAS
# ==============================================================================

@dataclass
class SaleItem:
    """Item de venda: produto, quantidade, preço e custo no momento da venda."""
    id: int
    sale_id: int
    product_id: int
    quantity: float = 0
    unit_price: float = 0
    subtotal: float = 0
    cost_unit: Optional[float] = None
    cost_total: Optional[float] = None
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> 'SaleItem':
        return cls(
            id=row['id'],
            sale_id=row['venda_id'],
            product_id=row['produto_id'],
            quantity=normalize_number(row.get('quantidade')),
            unit_price=normalize_number(row.get('preco_unitario')),
            subtotal=normalize_number(row.get('subtotal')),
            cost_unit=_optional_number(row.get('custo_unitario')),
            cost_total=_optional_number(row.get('custo_total')),
            created_at=row.get('created_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'saleId': self.sale_id,
            'productId': self.product_id,
            'quantity': self.quantity,
            'unitPrice': self.unit_price,
            'subtotal': self.subtotal,
            'costUnit': self.cost_unit,
            'costTotal': self.cost_total,
            'createdAt': self.created_at,
        }


@dataclass
class Sale:
    """Cabeçalho da venda com seus itens."""
    id: int
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    total: float = 0
    payment_method: Optional[str] = None
    status: Optional[str] = None
    sale_date: Optional[str] = None
    updated_at: Optional[str] = None
    items: List[SaleItem] = field(default_factory=list)

    @property
    def is_cancelled(self) -> bool:
        return self.status == SaleStatus.CANCELADA.value

    @classmethod
    def from_record(cls, row: Dict[str, Any], items: List[Dict[str, Any]] = None) -> 'Sale':
        item_rows = items if items is not None else row.get('venda_itens') or []
        return cls(
            id=row['id'],
            customer_name=row.get('cliente_nome'),
            notes=row.get('observacao'),
            total=normalize_number(row.get('valor_total')),
            payment_method=row.get('forma_pagamento'),
            status=row.get('status'),
            sale_date=row.get('data_venda'),
            updated_at=row.get('updated_at'),
            items=[SaleItem.from_record(r) for r in item_rows],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'customerName': self.customer_name,
            'notes': self.notes,
            'total': self.total,
            'paymentMethod': self.payment_method,
            'status': self.status,
            'saleDate': self.sale_date,
            'updatedAt': self.updated_at,
            'items': [item.to_dict() for item in self.items],
        }


@dataclass
class SaleItemDetail:
    """Item de venda enriquecido com status, pagamento e data da venda."""
    id: int
    sale_id: int
    product_id: int
    quantity: float
    subtotal: float
    unit_price: float
    cost_unit: Optional[float] = None
    cost_total: Optional[float] = None
    sale_status: Optional[str] = None
    sale_payment: Optional[str] = None
    sale_date: Optional[str] = None

    @classmethod
    def from_item(cls, item: SaleItem, sale: Optional[Sale]) -> 'SaleItemDetail':
        return cls(
            id=item.id,
            sale_id=item.sale_id,
            product_id=item.product_id,
            quantity=item.quantity,
            subtotal=item.subtotal,
            unit_price=item.unit_price,
            cost_unit=item.cost_unit,
            cost_total=item.cost_total,
            sale_status=sale.status if sale else None,
            sale_payment=sale.payment_method if sale else None,
            sale_date=sale.sale_date if sale else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'saleId': self.sale_id,
            'productId': self.product_id,
            'quantity': self.quantity,
            'subtotal': self.subtotal,
            'unitPrice': self.unit_price,
            'costUnit': self.cost_unit,
            'costTotal': self.cost_total,
            'saleStatus': self.sale_status,
            'salePayment': self.sale_payment,
            'saleDate': self.sale_date,
        }


# ==============================================================================
# CONTAS A PAGAR / RECEBER
# ==============================================================================

@dataclass
class Account:
    """
    Conta a pagar ou a receber, opcionalmente recorrente (mensal).

    Attributes:
        due_date: Data de vencimento (YYYY-MM-DD)
        recurrence_day: Dia do mês das próximas ocorrências
        last_generated_date: Vencimento da última ocorrência gerada
    """
    id: int
    type: str
    status: str
    title: str
    amount: float
    due_date: str
    description: Optional[str] = None
    payment_date: Optional[str] = None
    is_recurring: bool = False
    recurrence_type: Optional[str] = None
    recurrence_day: Optional[int] = None
    last_generated_date: Optional[str] = None
    active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def is_overdue(self, today: date) -> bool:
        due = parse_iso_date(self.due_date)
        return (
            due is not None
            and due < today
            and self.status != AccountStatus.CONCLUIDA.value
        )

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> 'Account':
        active = row.get('ativo')
        return cls(
            id=row['id'],
            type=row.get('tipo') or '',
            status=row.get('status') or '',
            title=row.get('titulo') or '',
            description=row.get('descricao'),
            amount=normalize_number(row.get('valor')),
            due_date=row.get('data_vencimento') or '',
            payment_date=row.get('data_pagamento'),
            is_recurring=bool(row.get('recorrente')),
            recurrence_type=row.get('recorrencia_tipo'),
            recurrence_day=row.get('recorrencia_dia'),
            last_generated_date=row.get('data_ultima_geracao'),
            active=True if active is None else bool(active),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'status': self.status,
            'title': self.title,
            'description': self.description,
            'amount': self.amount,
            'dueDate': self.due_date,
            'paymentDate': self.payment_date,
            'isRecurring': self.is_recurring,
            'recurrenceType': self.recurrence_type,
            'recurrenceDay': self.recurrence_day,
            'lastGeneratedDate': self.last_generated_date,
            'active': self.active,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


# ==============================================================================
# MOVIMENTAÇÕES DE ESTOQUE
# ==============================================================================

@dataclass
class Movement:
    """Entrada, saída ou ajuste de estoque de um insumo."""
    id: int
    type: str
    quantity: float = 0
    supply_id: Optional[int] = None
    product_id: Optional[int] = None
    sale_id: Optional[int] = None
    unit: Optional[str] = None
    unit_value: Optional[float] = None
    note: Optional[str] = None
    movement_date: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def value(self) -> float:
        return self.quantity * (self.unit_value or 0)

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> 'Movement':
        return cls(
            id=row['id'],
            type=row.get('tipo') or '',
            supply_id=row.get('insumo_id'),
            product_id=row.get('produto_id'),
            sale_id=row.get('venda_id'),
            quantity=normalize_number(row.get('quantidade')),
            unit=row.get('unidade'),
            unit_value=_optional_number(row.get('valor_unitario')),
            note=row.get('observacao'),
            movement_date=row.get('data_movimentacao'),
            created_at=row.get('created_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'supplyId': self.supply_id,
            'productId': self.product_id,
            'saleId': self.sale_id,
            'quantity': self.quantity,
            'unit': self.unit,
            'unitValue': self.unit_value,
            'note': self.note,
            'movementDate': self.movement_date,
            'createdAt': self.created_at,
        }


# ==============================================================================
# USUÁRIOS E AUDITORIA
# ==============================================================================

@dataclass
class User:
    """
    Usuário do sistema.

    Attributes:
        password_hash: Hash da senha (nunca texto puro)
        role: admin ou operador
    """
    id: int
    username: str
    password_hash: str
    role: str = UserRole.OPERADOR.value

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> 'User':
        return cls(
            id=row['id'],
            username=row.get('username') or '',
            password_hash=row.get('password_hash') or '',
            role=row.get('role') or UserRole.OPERADOR.value,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'username': self.username, 'role': self.role}


@dataclass
class AuditLog:
    """Registro de atividade."""
    id: int
    type: str
    user: str
    message: str
    related_id: str = ''
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[str] = None

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> 'AuditLog':
        return cls(
            id=row['id'],
            type=row.get('tipo') or '',
            user=row.get('usuario') or '',
            message=row.get('mensagem') or '',
            related_id=row.get('referencia') or '',
            details=row.get('detalhes') or {},
            timestamp=row.get('data'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'user': self.user,
            'message': self.message,
            'relatedId': self.related_id,
            'details': self.details,
            'timestamp': self.timestamp,
        }

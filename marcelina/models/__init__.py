# ==============================================================================
# CAMADA DE MODELOS - Estruturas de dados do sistema
# ==============================================================================
# Entidades do domínio em dataclasses. Cada uma sabe ler a linha do banco
# (colunas em português) e gerar o modelo de visão da API (camelCase).
# ==============================================================================

from .entities import (
    # Insumos e produtos
    Supply,
    Product,
    ProductSupply,

    # Vendas
    Sale,
    SaleItem,
    SaleItemDetail,
    SaleStatus,
    PaymentMethod,

    # Contas
    Account,
    AccountType,
    AccountStatus,
    RecurrenceType,

    # Movimentações
    Movement,
    MovementType,

    # Usuários e auditoria
    User,
    UserRole,
    AuditLog,
    AuditType,

    # Conjuntos de valores válidos
    SALE_STATUSES,
    PAYMENT_METHODS,
    ACCOUNT_TYPES,
    ACCOUNT_STATUSES,
    MOVEMENT_TYPES,

    # Normalização
    normalize_number,
    parse_decimal,
    parse_int,
    parse_iso_date,
    round_quantity,
    utc_now_iso,
)

__all__ = [
    'Supply',
    'Product',
    'ProductSupply',
    'Sale',
    'SaleItem',
    'SaleItemDetail',
    'SaleStatus',
    'PaymentMethod',
    'Account',
    'AccountType',
    'AccountStatus',
    'RecurrenceType',
    'Movement',
    'MovementType',
    'User',
    'UserRole',
    'AuditLog',
    'AuditType',
    'SALE_STATUSES',
    'PAYMENT_METHODS',
    'ACCOUNT_TYPES',
    'ACCOUNT_STATUSES',
    'MOVEMENT_TYPES',
    'normalize_number',
    'parse_decimal',
    'parse_int',
    'parse_iso_date',
    'round_quantity',
    'utc_now_iso',
]

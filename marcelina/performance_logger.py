# ==============================================================================
# PROFILING - Tempo de rotas e de funções pesadas
# ==============================================================================
# Grava logs legíveis em <data_dir>/logs/:
#   performance.log     → toda requisição (ação, usuário, tempo)
#   slow_routes.log     → requisições acima dos limites
#   slow_functions.log  → chamadas lentas de funções com @profile_function
#
# Liga/desliga com MARCELINA_PROFILING (config.py); create_app() chama
# configure() antes de init_profiling().
# ==============================================================================

import os
import threading
import time
from datetime import datetime
from functools import wraps

ENABLE_PROFILING = True

# Limites em milissegundos
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

LOGS_DIR = os.path.join(os.getcwd(), 'data', 'logs')

LOG_FILES = {
    'performance': 'performance.log',
    'slow_routes': 'slow_routes.log',
    'slow_functions': 'slow_functions.log',
}

_SEPARATOR = '─' * 40

# Rotas -> nomes legíveis
ROUTE_NAMES = {
    # Autenticação
    'POST /api/login': 'Entrar',
    'POST /api/logout': 'Sair',
    'GET /api/me': 'Ver sessão',
    'POST /api/senha': 'Trocar senha',
    'GET /api/usuarios': 'Listar usuários',
    'POST /api/usuarios': 'Criar usuário',

    # Painel
    'GET /api/dashboard': 'Ver painel',

    # Insumos
    'GET /api/insumos': 'Listar insumos',
    'GET /api/insumos/<int:supply_id>': 'Ver insumo',
    'POST /api/insumos': 'Cadastrar insumo',
    'PUT /api/insumos/<int:supply_id>': 'Editar insumo',
    'DELETE /api/insumos/<int:supply_id>': 'Remover insumo',
    'POST /api/insumos/<int:supply_id>/entrada': 'Entrada de estoque',
    'POST /api/insumos/<int:supply_id>/saida': 'Saída de estoque',

    # Produtos
    'GET /api/produtos': 'Listar produtos',
    'GET /api/produtos/<int:product_id>': 'Ver produto',
    'GET /api/produtos/composicao': 'Ver composições',
    'POST /api/produtos': 'Criar produto',
    'PUT /api/produtos/<int:product_id>': 'Editar produto',
    'DELETE /api/produtos/<int:product_id>': 'Remover produto',
    'PUT /api/produtos/<int:product_id>/composicao': 'Alterar composição',

    # Vendas
    'GET /api/vendas': 'Listar vendas',
    'POST /api/vendas': 'Registrar venda',
    'PUT /api/vendas/<int:sale_id>': 'Editar venda',
    'DELETE /api/vendas/<int:sale_id>': 'Remover venda',
    'GET /api/vendas/export': 'Exportar vendas CSV',
    'GET /api/vendas/analise': 'Ver análise de vendas',
    'GET /api/vendas/itens': 'Ver itens vendidos',
    'GET /api/vendas/<int:sale_id>': 'Ver venda',

    # Contas
    'GET /api/contas': 'Listar contas',
    'POST /api/contas': 'Criar conta',
    'PUT /api/contas/<int:account_id>': 'Editar conta',
    'POST /api/contas/recorrentes': 'Gerar contas recorrentes',

    # Movimentações e auditoria
    'GET /api/movimentacoes': 'Ver movimentações',
    'POST /api/movimentacoes': 'Registrar movimentação',
    'GET /api/auditoria': 'Ver registro de atividades',

    # Administração
    'GET /api/backups': 'Ver backups',
    'POST /api/backups': 'Criar backup',
    'GET /api/sistema': 'Ver desempenho do sistema',
}

# {nome: [chamadas, tempo total, tempo máximo]}
_function_stats = {}
_stats_lock = threading.Lock()
_write_lock = threading.Lock()


def configure(logs_dir=None, enabled=None):
    """Define a pasta dos logs e liga/desliga o profiling."""
    global ENABLE_PROFILING, LOGS_DIR
    if enabled is not None:
        ENABLE_PROFILING = bool(enabled)
    if logs_dir:
        LOGS_DIR = logs_dir
    if ENABLE_PROFILING:
        os.makedirs(LOGS_DIR, exist_ok=True)


def log_path(label):
    return os.path.join(LOGS_DIR, LOG_FILES[label])


def _severity(time_ms):
    """None abaixo do limite, senão 'WARNING' ou 'CRITICAL'."""
    if time_ms >= THRESHOLD_CRITICAL:
        return 'CRITICAL'
    if time_ms >= THRESHOLD_WARNING:
        return 'WARNING'
    return None


def _append(label, lines):
    """Acrescenta um bloco ao log; falha de disco não derruba a requisição."""
    content = '\n' + '\n'.join(lines) + '\n'
    try:
        with _write_lock:
            with open(log_path(label), 'a', encoding='utf-8') as f:
                f.write(content)
    except OSError:
        pass


def _now():
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _get_route_name(method, path, rule=None):
    """Nome legível da rota: caminho exato, depois a regra do Flask."""
    for candidate in (path, rule):
        if candidate and f"{method} {candidate}" in ROUTE_NAMES:
            return ROUTE_NAMES[f"{method} {candidate}"]
    return f"{method} {path}"


# ═══════════════════════════════════════════════════════════════════════════
# ROTAS
# ═══════════════════════════════════════════════════════════════════════════

def record_request(method, path, rule, time_ms, user=None):
    """
    Registra uma requisição em performance.log e, se lenta, em slow_routes.log

    Args:
        method: GET, POST, ...
        path: Caminho pedido (/api/vendas/3)
        rule: Regra do Flask (/api/vendas/<int:sale_id>)
        time_ms: Duração em milissegundos
        user: Usuário da sessão
    """
    if not ENABLE_PROFILING:
        return

    action = _get_route_name(method, path, rule)
    who = user or 'anônimo'
    _append('performance', [
        '═' * 40,
        f"[PERFORMANCE] {_now()}",
        _SEPARATOR,
        f"Ação: {action}",
        f"Usuário: {who}",
        f"Rota: {method} {path}",
        f"Tempo: {time_ms:.0f} ms",
    ])

    level = _severity(time_ms)
    if level:
        limit = THRESHOLD_CRITICAL if level == 'CRITICAL' else THRESHOLD_WARNING
        label = 'MUITO LENTA' if level == 'CRITICAL' else 'LENTA'
        _append('slow_routes', [
            f"[{level}] {_now()}",
            _SEPARATOR,
            f"Rota {label}: {action}",
            f"Usuário: {who}",
            f"Detalhe: {method} {path}",
            f"Tempo: {time_ms:.0f} ms (limite: {limit} ms)",
            _SEPARATOR,
        ])


def init_profiling(app):
    """Registra os hooks de tempo na app Flask (nada se o profiling estiver desligado)."""
    if not ENABLE_PROFILING:
        return

    from flask import g, request, session

    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _record(response):
        started = getattr(g, 'request_started', None)
        if started is None:
            return response
        rule = str(request.url_rule) if request.url_rule else request.path
        record_request(
            request.method,
            request.path,
            rule,
            (time.perf_counter() - started) * 1000,
            session.get('user'),
        )
        return response


# ═══════════════════════════════════════════════════════════════════════════
# FUNÇÕES
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Conta chamadas e tempos de uma função; chamadas lentas vão para
    slow_functions.log

    Uso:
        @profile_function
        def calcular(): ...

        @profile_function(name="Registrar venda")
        def create_sale(...): ...
    """
    def decorator(fn):
        label = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            # Lido a cada chamada: o decorador roda antes de configure()
            if not ENABLE_PROFILING:
                return fn(*args, **kwargs)
            started = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                _track(label, (time.perf_counter() - started) * 1000)

        return wrapper

    return decorator(func) if func is not None else decorator


def _track(label, elapsed_ms):
    with _stats_lock:
        entry = _function_stats.setdefault(label, [0, 0.0, 0.0])
        entry[0] += 1
        entry[1] += elapsed_ms
        entry[2] = max(entry[2], elapsed_ms)

    level = _severity(elapsed_ms)
    if level:
        _append('slow_functions', [
            f"[{'CRÍTICO' if level == 'CRITICAL' else 'LENTO'}] {_now()}",
            f"Função: {label}",
            f"Tempo: {elapsed_ms:.0f} ms",
            _SEPARATOR,
        ])


# ═══════════════════════════════════════════════════════════════════════════
# RELATÓRIOS
# ═══════════════════════════════════════════════════════════════════════════

def get_function_stats():
    """
    Returns:
        {nome: {calls, avg_time, max_time}} com tempos em ms
    """
    with _stats_lock:
        return {
            label: {
                'calls': calls,
                'avg_time': round(total / calls, 2) if calls else 0,
                'max_time': round(longest, 2),
            }
            for label, (calls, total, longest) in _function_stats.items()
        }


def reset_stats():
    with _stats_lock:
        _function_stats.clear()


def get_log_summary():
    """
    Returns:
        {performance|slow_routes|slow_functions: {exists, size_kb, lines}}
    """
    summary = {}
    for label in LOG_FILES:
        path = log_path(label)
        if not os.path.exists(path):
            summary[label] = {'exists': False, 'size_kb': 0, 'lines': 0}
            continue
        with open(path, 'r', encoding='utf-8') as f:
            lines = sum(1 for _ in f)
        summary[label] = {
            'exists': True,
            'size_kb': round(os.path.getsize(path) / 1024, 2),
            'lines': lines,
        }
    return summary


__all__ = [
    'configure',
    'init_profiling',
    'record_request',
    'profile_function',
    'get_function_stats',
    'reset_stats',
    'get_log_summary',
]

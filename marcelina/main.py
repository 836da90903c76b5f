# ==============================================================================
# APLICAÇÃO FLASK - API JSON do Marcelina System
# ==============================================================================
# As rotas só convertem a requisição, chamam os serviços e devolvem JSON:
#   {"ok": true, ...}  ou  {"ok": false, "error": "<mensagem>"}
#
# CÓDIGOS:
#   400 validação | 401 sem login | 403 CSRF/permissão | 404 não encontrado
#   502 falha no armazenamento (RepositoryError)
#
# Produção: gunicorn wsgi:app
# ==============================================================================

import csv
import io
import re
import uuid
from functools import wraps

from flask import Blueprint, Flask, Response, current_app, request, session

from marcelina import performance_logger
from marcelina.app_container import AppContainer, get_container
from marcelina.config import Config
from marcelina.repositories import RepositoryError
from marcelina.services import run_startup_backup

api = Blueprint('api', __name__, url_prefix='/api')


# ═══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

_CAMEL_RE = re.compile(r'(?<!^)(?=[A-Z])')


def to_int(v, default=None):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def snake_keys(data):
    """{'basePrice': 1} -> {'base_price': 1} (só o primeiro nível)."""
    if not isinstance(data, dict):
        return {}
    return {_CAMEL_RE.sub('_', str(k)).lower(): v for k, v in data.items()}


def json_body():
    data = snake_keys(request.get_json(silent=True) or {})
    data.pop('csrf_token', None)
    return data


def to_json(value):
    """Modelos viram dicts camelCase; listas e dicts são percorridos."""
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    if isinstance(value, list):
        return [to_json(v) for v in value]
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    return value


def service_response(result, status=200):
    """Converte o resultado de um serviço ({'ok', ...}) em resposta HTTP."""
    if not result.get('ok'):
        code = 404 if result.get('not_found') else 400
        return {"ok": False, "error": result.get('error')}, code
    payload = {k: to_json(v) for k, v in result.items() if k != 'not_found'}
    return payload, status


def not_found(message):
    return {"ok": False, "error": message}, 404


def current_user():
    return session.get('user')


def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if "user" not in session:
            return {"ok": False, "error": "Faça login para continuar."}, 401
        return f(*args, **kwargs)
    return wrapper


def role_required(role_name):
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if session.get("role") != role_name:
                return {"ok": False, "error": "Permissão negada."}, 403
            return f(*args, **kwargs)
        return wrapper
    return deco


def generate_csrf_token():
    if 'csrf_token' not in session:
        session['csrf_token'] = uuid.uuid4().hex
    return session['csrf_token']


def verify_csrf(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if request.method in ('POST', 'PUT', 'PATCH', 'DELETE'):
            token = session.get('csrf_token')
            form_token = (
                request.headers.get('X-CSRF-Token') or
                request.headers.get('X-CSRFToken')
            )
            if not form_token and request.is_json:
                json_data = request.get_json(silent=True) or {}
                form_token = json_data.get('csrf_token')

            if not token or not form_token or token != form_token:
                return {"ok": False, "error": "CSRF token inválido"}, 403
        return f(*args, **kwargs)
    return wrapper


def set_security_headers(response):
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=()'
    # HSTS só com HTTPS real
    if request.is_secure:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


def handle_repository_error(error):
    print(f"[ERROR] {request.method} {request.path}: {error}")
    return {"ok": False, "error": str(error)}, 502


# ═══════════════════════════════════════════════════════════════════════════════
# AUTENTICAÇÃO
# ═══════════════════════════════════════════════════════════════════════════════

@api.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    if not username or not password:
        return {"ok": False, "error": "Informe usuário e senha."}, 400

    user = get_container().user_service.authenticate(username, password)
    if not user:
        return {"ok": False, "error": "Usuário ou senha inválidos."}, 401

    session.clear()
    session.permanent = True
    session["user"] = user["username"]
    session["role"] = user["role"]
    return {"ok": True, "user": user, "csrf_token": generate_csrf_token()}


@api.route("/logout", methods=["POST"])
@login_required
@verify_csrf
def logout():
    get_container().user_service.logout(current_user())
    session.clear()
    return {"ok": True}


@api.route("/me", methods=["GET"])
@login_required
def me():
    return {"ok": True, "user": {"username": session["user"], "role": session.get("role")}}


@api.route("/csrf", methods=["GET"])
@login_required
def csrf():
    return {"ok": True, "csrf_token": generate_csrf_token()}


@api.route("/senha", methods=["POST"])
@login_required
@verify_csrf
def change_password():
    data = json_body()
    result = get_container().user_service.change_password(
        current_user(), data.get("current_password"), data.get("new_password")
    )
    return service_response(result)


@api.route("/usuarios", methods=["GET"])
@login_required
@role_required("admin")
def list_users():
    return {"ok": True, "users": get_container().user_service.list_users()}


@api.route("/usuarios", methods=["POST"])
@login_required
@role_required("admin")
@verify_csrf
def create_user():
    data = json_body()
    result = get_container().user_service.create_user(
        data.get("username"), data.get("password"), data.get("role"), admin_user=current_user()
    )
    return service_response(result, 201)


# ═══════════════════════════════════════════════════════════════════════════════
# PAINEL
# ═══════════════════════════════════════════════════════════════════════════════

@api.route("/dashboard", methods=["GET"])
@login_required
def dashboard():
    return {"ok": True, "dashboard": get_container().stats_service.dashboard()}


# ═══════════════════════════════════════════════════════════════════════════════
# INSUMOS
# ═══════════════════════════════════════════════════════════════════════════════

@api.route("/insumos", methods=["GET"])
@login_required
def list_supplies():
    service = get_container().supply_service
    supplies = service.list_supplies()
    return {
        "ok": True,
        "supplies": to_json(supplies),
        "metrics": service.metrics(supplies),
    }


@api.route("/insumos/<int:supply_id>", methods=["GET"])
@login_required
def get_supply(supply_id):
    supply = get_container().supply_service.get_supply(supply_id)
    if not supply:
        return not_found("Insumo não encontrado.")
    return {"ok": True, "supply": supply.to_dict()}


@api.route("/insumos", methods=["POST"])
@login_required
@verify_csrf
def create_supply():
    data = json_body()
    result = get_container().supply_service.create_supply(
        data.get("name"),
        data.get("quantity"),
        data.get("price"),
        data.get("unit"),
        user=current_user(),
    )
    return service_response(result, 201)


@api.route("/insumos/<int:supply_id>", methods=["PUT"])
@login_required
@verify_csrf
def update_supply(supply_id):
    result = get_container().supply_service.update_supply(supply_id, json_body(), user=current_user())
    return service_response(result)


@api.route("/insumos/<int:supply_id>", methods=["DELETE"])
@login_required
@role_required("admin")
@verify_csrf
def delete_supply(supply_id):
    result = get_container().supply_service.delete_supply(supply_id, user=current_user())
    return service_response(result)


@api.route("/insumos/<int:supply_id>/entrada", methods=["POST"])
@login_required
@verify_csrf
def register_supply_entry(supply_id):
    data = json_body()
    result = get_container().supply_service.register_entry(
        supply_id,
        data.get("quantity"),
        data.get("unit_value"),
        data.get("note"),
        user=current_user(),
    )
    return service_response(result)


@api.route("/insumos/<int:supply_id>/saida", methods=["POST"])
@login_required
@verify_csrf
def register_supply_exit(supply_id):
    data = json_body()
    result = get_container().supply_service.register_exit(
        supply_id, data.get("quantity"), data.get("note"), user=current_user()
    )
    return service_response(result)


# ═══════════════════════════════════════════════════════════════════════════════
# PRODUTOS
# ═══════════════════════════════════════════════════════════════════════════════

@api.route("/produtos", methods=["GET"])
@login_required
def list_products():
    service = get_container().product_service
    products = service.list_products()
    return {
        "ok": True,
        "products": to_json(products),
        "metrics": service.metrics(products),
    }


@api.route("/produtos/<int:product_id>", methods=["GET"])
@login_required
def get_product(product_id):
    service = get_container().product_service
    product = service.get_product(product_id)
    if not product:
        return not_found("Produto não encontrado.")
    return {
        "ok": True,
        "product": product.to_dict(),
        "composition": to_json(service.list_composition(product_id)),
    }


@api.route("/produtos", methods=["POST"])
@login_required
@verify_csrf
def create_product():
    data = json_body()
    result = get_container().product_service.create_product(
        data.get("name"),
        data.get("base_price"),
        data.get("composition"),
        active=data.get("active", True),
        user=current_user(),
    )
    return service_response(result, 201)


@api.route("/produtos/<int:product_id>", methods=["PUT"])
@login_required
@verify_csrf
def update_product(product_id):
    result = get_container().product_service.update_product(product_id, json_body(), user=current_user())
    return service_response(result)


@api.route("/produtos/<int:product_id>", methods=["DELETE"])
@login_required
@role_required("admin")
@verify_csrf
def delete_product(product_id):
    result = get_container().product_service.delete_product(product_id, user=current_user())
    return service_response(result)


@api.route("/produtos/composicao", methods=["GET"])
@login_required
def list_composition():
    product_id = to_int(request.args.get("product_id"))
    return {
        "ok": True,
        "composition": to_json(get_container().product_service.list_composition(product_id)),
    }


@api.route("/produtos/<int:product_id>/composicao", methods=["PUT"])
@login_required
@verify_csrf
def set_product_composition(product_id):
    data = json_body()
    result = get_container().product_service.set_composition(
        product_id, data.get("composition") or [], user=current_user()
    )
    return service_response(result)


# ═══════════════════════════════════════════════════════════════════════════════
# VENDAS
# ═══════════════════════════════════════════════════════════════════════════════

@api.route("/vendas", methods=["GET"])
@login_required
def list_sales():
    return {"ok": True, "sales": to_json(get_container().sales_service.list_sales())}


@api.route("/vendas/<int:sale_id>", methods=["GET"])
@login_required
def get_sale(sale_id):
    sale = get_container().sales_service.get_sale(sale_id)
    if not sale:
        return not_found("Venda não encontrada.")
    return {"ok": True, "sale": sale.to_dict()}


@api.route("/vendas", methods=["POST"])
@login_required
@verify_csrf
def create_sale():
    data = json_body()
    result = get_container().sales_service.create_sale(
        data.get("items"),
        customer_name=data.get("customer_name"),
        notes=data.get("notes"),
        payment_method=data.get("payment_method"),
        status=data.get("status"),
        sale_date=data.get("sale_date"),
        user=current_user(),
    )
    return service_response(result, 201)


@api.route("/vendas/<int:sale_id>", methods=["PUT"])
@login_required
@verify_csrf
def update_sale(sale_id):
    result = get_container().sales_service.update_sale(sale_id, json_body(), user=current_user())
    return service_response(result)


@api.route("/vendas/<int:sale_id>", methods=["DELETE"])
@login_required
@role_required("admin")
@verify_csrf
def delete_sale(sale_id):
    result = get_container().sales_service.delete_sale(sale_id, user=current_user())
    return service_response(result)


@api.route("/vendas/export", methods=["GET"])
@login_required
def export_sales():
    si = io.StringIO()
    writer = csv.writer(si)
    writer.writerows(get_container().sales_service.export_rows())
    return Response(
        si.getvalue(),
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment;filename=vendas.csv'}
    )


def _analytics_filters():
    return {
        "start_date": request.args.get("start_date") or None,
        "end_date": request.args.get("end_date") or None,
        "status": request.args.get("status") or None,
        "payment": request.args.get("payment") or None,
    }


@api.route("/vendas/itens", methods=["GET"])
@login_required
def list_sale_items():
    items = get_container().stats_service.list_detailed_items(**_analytics_filters())
    return {"ok": True, "items": to_json(items)}


@api.route("/vendas/analise", methods=["GET"])
@login_required
def sales_analysis():
    overview = get_container().stats_service.overview(
        period=request.args.get("period") or None, **_analytics_filters()
    )
    return {"ok": True, **overview}


# ═══════════════════════════════════════════════════════════════════════════════
# CONTAS
# ═══════════════════════════════════════════════════════════════════════════════

@api.route("/contas", methods=["GET"])
@login_required
def list_accounts():
    service = get_container().account_service
    accounts = service.list_accounts(
        request.args.get("type") or None, request.args.get("status") or None
    )
    return {
        "ok": True,
        "accounts": to_json(accounts),
        "metrics": service.metrics(accounts),
    }


@api.route("/contas", methods=["POST"])
@login_required
@verify_csrf
def create_account():
    data = json_body()
    result = get_container().account_service.create_account(
        data.get("type"),
        data.get("title"),
        data.get("amount"),
        data.get("due_date"),
        status=data.get("status"),
        description=data.get("description"),
        is_recurring=data.get("is_recurring", False),
        recurrence_day=data.get("recurrence_day"),
        user=current_user(),
    )
    return service_response(result, 201)


@api.route("/contas/<int:account_id>", methods=["PUT"])
@login_required
@verify_csrf
def update_account(account_id):
    result = get_container().account_service.update_account(account_id, json_body(), user=current_user())
    return service_response(result)


@api.route("/contas/recorrentes", methods=["POST"])
@login_required
@verify_csrf
def generate_recurring_accounts():
    created = get_container().account_service.generate_recurring(user=current_user())
    return {"ok": True, "created": to_json(created), "count": len(created)}


# ═══════════════════════════════════════════════════════════════════════════════
# MOVIMENTAÇÕES
# ═══════════════════════════════════════════════════════════════════════════════

@api.route("/movimentacoes", methods=["GET"])
@login_required
def list_movements():
    service = get_container().movement_service
    movements = service.list_movements(
        type=request.args.get("type") or None,
        supply_id=to_int(request.args.get("supply_id")),
        product_id=to_int(request.args.get("product_id")),
        sale_id=to_int(request.args.get("sale_id")),
        start_date=request.args.get("start_date") or None,
        end_date=request.args.get("end_date") or None,
    )
    return {
        "ok": True,
        "movements": to_json(movements),
        "summary": service.summary(movements),
    }


@api.route("/movimentacoes", methods=["POST"])
@login_required
@verify_csrf
def create_movement():
    data = json_body()
    result = get_container().movement_service.create_movement(
        data.get("type"),
        data.get("quantity"),
        supply_id=to_int(data.get("supply_id")),
        product_id=to_int(data.get("product_id")),
        sale_id=to_int(data.get("sale_id")),
        unit=data.get("unit"),
        unit_value=data.get("unit_value"),
        note=data.get("note"),
        movement_date=data.get("movement_date"),
    )
    return service_response(result, 201)


# ═══════════════════════════════════════════════════════════════════════════════
# AUDITORIA, BACKUPS E SISTEMA
# ═══════════════════════════════════════════════════════════════════════════════

@api.route("/auditoria", methods=["GET"])
@login_required
def audit_log():
    logs = get_container().audit_service.search_logs(
        query=request.args.get("q", ""),
        log_type=request.args.get("type") or None,
        limit=to_int(request.args.get("limit"), 200),
    )
    return {"ok": True, "logs": to_json(logs)}


@api.route("/backups", methods=["GET"])
@login_required
@role_required("admin")
def backup_status():
    service = get_container().backup_service
    if service is None:
        return {"ok": False, "error": "Backups só estão disponíveis no armazenamento local."}, 400
    return {"ok": True, "status": service.get_backup_status()}


@api.route("/backups", methods=["POST"])
@login_required
@role_required("admin")
@verify_csrf
def create_backup():
    service = get_container().backup_service
    if service is None:
        return {"ok": False, "error": "Backups só estão disponíveis no armazenamento local."}, 400
    result = service.create_backup(force=True)
    service.rotate_backups()
    return {"ok": result['success'], "backup": result}, (200 if result['success'] else 500)


@api.route("/sistema", methods=["GET"])
@login_required
@role_required("admin")
def system_status():
    return {
        "ok": True,
        "functions": performance_logger.get_function_stats(),
        "logs": performance_logger.get_log_summary(),
        "backend": current_app.config["MARCELINA"].backend,
    }


# ═══════════════════════════════════════════════════════════════════════════════
# FÁBRICA DA APLICAÇÃO
# ═══════════════════════════════════════════════════════════════════════════════

def create_app(config: Config = None) -> Flask:
    """
    Cria a aplicação Flask.

    Args:
        config: Configuração; sem ela, lê as variáveis de ambiente

    Returns:
        App pronta para o gunicorn ou para o cliente de testes
    """
    config = config or Config.from_env()

    app = Flask(__name__)
    app.secret_key = config.secret_key
    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
        PERMANENT_SESSION_LIFETIME=86400,
        TESTING=config.testing,
        MARCELINA=config,
    )

    performance_logger.configure(logs_dir=config.logs_dir, enabled=config.profiling)
    performance_logger.init_profiling(app)

    AppContainer.reset_instance()
    container = get_container(config)

    if container.user_service.ensure_default_admin(config.admin_user, config.admin_password):
        print(f"[SETUP] Administrador '{config.admin_user}' criado.")

    if config.backups:
        run_startup_backup(container.backup_service)

    app.register_blueprint(api)
    app.after_request(set_security_headers)
    app.register_error_handler(RepositoryError, handle_repository_error)

    return app


if __name__ == "__main__":
    # Servidor de desenvolvimento; em produção usar gunicorn (wsgi.py)
    config = Config.from_env()
    app = create_app(config)
    if not config.debug:
        print(f"\n{'='*50}")
        print(f"  Servidor iniciado em http://{config.host}:{config.port}")
        print(f"  Backend: {config.backend}")
        print(f"{'='*50}\n")
    app.run(debug=config.debug, host=config.host, port=config.port)

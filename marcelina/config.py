# ==============================================================================
# CONFIGURAÇÃO DA APLICAÇÃO
# ==============================================================================
# Todos os parâmetros vêm de variáveis de ambiente. Os testes usam
# Config.from_mapping() para apontar para uma pasta temporária.
#
# VARIÁVEIS:
#   MARCELINA_SECRET_KEY       → chave das sessões Flask
#   MARCELINA_DATA_DIR         → pasta dos JSON, logs e backups (padrão: ./data)
#   MARCELINA_BACKEND          → json (padrão) ou supabase
#   SUPABASE_URL, SUPABASE_KEY → obrigatórias com o backend supabase
#   MARCELINA_ADMIN_USER       → administrador criado na primeira execução
#   MARCELINA_ADMIN_PASSWORD
#   MARCELINA_PROFILING        → liga/desliga performance_logger (padrão: 1)
#   MARCELINA_BACKUPS          → backup diário ao iniciar (padrão: 1)
#   FLASK_DEBUG, FLASK_HOST, FLASK_PORT → servidor de desenvolvimento
# ==============================================================================

import os
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional

BACKEND_JSON = 'json'
BACKEND_SUPABASE = 'supabase'
BACKENDS = (BACKEND_JSON, BACKEND_SUPABASE)

DEFAULT_SECRET_KEY = 'dev-secret-key-change-in-production'

TRUE_VALUES = ('1', 'true', 'yes', 'on', 'sim')


class ConfigError(Exception):
    """Configuração ausente ou inválida."""


def env_flag(value: Any, default: bool = False) -> bool:
    """'1', 'true', 'yes', 'on' e 'sim' são verdadeiros."""
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


@dataclass
class Config:
    secret_key: str = DEFAULT_SECRET_KEY
    data_dir: str = field(default_factory=lambda: os.path.join(os.getcwd(), 'data'))
    backend: str = BACKEND_JSON
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    admin_user: Optional[str] = 'admin'
    admin_password: Optional[str] = None
    profiling: bool = True
    backups: bool = True
    debug: bool = False
    host: str = '127.0.0.1'
    port: int = 5000
    testing: bool = False

    @property
    def logs_dir(self) -> str:
        return os.path.join(self.data_dir, 'logs')

    @property
    def uses_json(self) -> bool:
        return self.backend == BACKEND_JSON

    def validate(self) -> 'Config':
        """
        Confere backend e credenciais.

        Raises:
            ConfigError: backend desconhecido ou credenciais do Supabase ausentes
        """
        if self.backend not in BACKENDS:
            raise ConfigError(f"Backend inválido: {self.backend} (use json ou supabase).")
        if self.backend == BACKEND_SUPABASE:
            if not self.supabase_url:
                raise ConfigError("Variável de ambiente SUPABASE_URL não definida.")
            if not self.supabase_key:
                raise ConfigError("Variável de ambiente SUPABASE_KEY não definida.")
        return self

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> 'Config':
        """
        Config a partir de um dicionário com os nomes dos campos.
        Chaves desconhecidas são ignoradas.
        """
        known = {f.name for f in fields(cls)}
        config = cls(**{k: v for k, v in values.items() if k in known})
        return config.validate()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'Config':
        """Config a partir das variáveis de ambiente."""
        env = os.environ if environ is None else environ

        secret_key = env.get('MARCELINA_SECRET_KEY')
        if not secret_key:
            print("[WARNING] MARCELINA_SECRET_KEY não definida. Use uma chave segura em produção.")
            secret_key = DEFAULT_SECRET_KEY

        try:
            port = int(env.get('FLASK_PORT', '5000'))
        except ValueError as exc:
            raise ConfigError(f"FLASK_PORT inválida: {env.get('FLASK_PORT')}") from exc

        config = cls(
            secret_key=secret_key,
            data_dir=env.get('MARCELINA_DATA_DIR') or os.path.join(os.getcwd(), 'data'),
            backend=(env.get('MARCELINA_BACKEND') or BACKEND_JSON).strip().lower(),
            supabase_url=env.get('SUPABASE_URL') or None,
            supabase_key=env.get('SUPABASE_KEY') or None,
            admin_user=env.get('MARCELINA_ADMIN_USER') or 'admin',
            admin_password=env.get('MARCELINA_ADMIN_PASSWORD') or None,
            profiling=env_flag(env.get('MARCELINA_PROFILING'), True),
            backups=env_flag(env.get('MARCELINA_BACKUPS'), True),
            debug=env_flag(env.get('FLASK_DEBUG'), False),
            host=env.get('FLASK_HOST', '127.0.0.1'),
            port=port,
        )
        return config.validate()

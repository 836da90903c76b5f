# ==============================================================================
# SERVIÇO DE USUÁRIOS
# ==============================================================================
# Centraliza a lógica de autenticação e cadastro de usuários.
# As senhas são sempre guardadas como hash (werkzeug.security).
# ==============================================================================

from typing import Any, Dict, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from marcelina.models import UserRole
from marcelina.repositories.user_repository import UserRepository
from marcelina.services.audit_service import AuditService


class UserService:
    """
    Serviço de usuários.

    Responsabilidades:
    - Autenticação (login/logout)
    - Cadastro de usuários e troca de senha
    - Criação do administrador padrão na primeira execução
    """

    ROLE_ADMIN = UserRole.ADMIN.value
    ROLE_OPERADOR = UserRole.OPERADOR.value
    VALID_ROLES = frozenset([ROLE_ADMIN, ROLE_OPERADOR])

    MIN_USERNAME_LENGTH = 3
    MIN_PASSWORD_LENGTH = 4

    def __init__(self, user_repo: UserRepository, audit_service: AuditService = None):
        """
        Args:
            user_repo: Repositório de usuários
            audit_service: Serviço de auditoria (opcional)
        """
        self.user_repo = user_repo
        self.audit_service = audit_service

    # =========================================================================
    # AUTENTICAÇÃO
    # =========================================================================

    def authenticate(self, username: str, password: str) -> Optional[Dict[str, Any]]:
        """
        Autentica um usuário.

        Args:
            username: Nome de usuário
            password: Senha em texto puro

        Returns:
            {'username', 'role'} se válido, None caso contrário
        """
        if not username or not password:
            return None
        user = self.user_repo.get_by_username(username.strip())
        if not user or not check_password_hash(user.password_hash, password):
            return None

        if self.audit_service:
            self.audit_service.log_user_login(user.username)

        return {'username': user.username, 'role': user.role}

    def logout(self, username: str) -> None:
        if self.audit_service and username:
            self.audit_service.log_user_logout(username)

    # =========================================================================
    # CADASTRO
    # =========================================================================

    def normalize_role(self, role: Optional[str]) -> str:
        """Perfil desconhecido ou vazio vira operador."""
        value = (role or '').strip().lower()
        return value if value in self.VALID_ROLES else self.ROLE_OPERADOR

    def list_users(self) -> List[Dict[str, Any]]:
        """Usuários sem hash de senha."""
        return [u.to_dict() for u in self.user_repo.list()]

    def create_user(
        self,
        username: str,
        password: str,
        role: str = 'operador',
        admin_user: str = None
    ) -> Dict[str, Any]:
        """
        Cria um novo usuário.

        Returns:
            {'ok': True, 'user': {...}} ou {'ok': False, 'error': ...}
        """
        username = (username or '').strip()
        if len(username) < self.MIN_USERNAME_LENGTH:
            return {
                'ok': False,
                'error': f'O nome de usuário precisa de ao menos {self.MIN_USERNAME_LENGTH} caracteres'
            }
        if not password or len(password) < self.MIN_PASSWORD_LENGTH:
            return {
                'ok': False,
                'error': f'A senha precisa de ao menos {self.MIN_PASSWORD_LENGTH} caracteres'
            }
        if self.user_repo.exists(username):
            return {'ok': False, 'error': 'O usuário já existe'}

        role = self.normalize_role(role)
        user = self.user_repo.create(username, generate_password_hash(password), role)

        if self.audit_service and admin_user:
            self.audit_service.log_user_created(admin_user, username, role)

        return {'ok': True, 'user': user.to_dict()}

    def change_password(
        self,
        username: str,
        current_password: str,
        new_password: str
    ) -> Dict[str, Any]:
        """
        Troca a senha do próprio usuário, conferindo a senha atual.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return {'ok': False, 'not_found': True, 'error': 'Usuário não encontrado'}
        if not check_password_hash(user.password_hash, current_password or ''):
            return {'ok': False, 'error': 'Senha atual incorreta'}
        if not new_password or len(new_password) < self.MIN_PASSWORD_LENGTH:
            return {
                'ok': False,
                'error': f'A senha precisa de ao menos {self.MIN_PASSWORD_LENGTH} caracteres'
            }

        self.user_repo.update_password(user.id, generate_password_hash(new_password))
        if self.audit_service:
            self.audit_service.log_password_change(username, username)
        return {'ok': True}

    def ensure_default_admin(self, username: str, password: str) -> bool:
        """
        Cria o administrador padrão se ainda não existe nenhum usuário com esse nome.

        Returns:
            True se o usuário foi criado agora
        """
        if not username or not password or self.user_repo.exists(username):
            return False
        self.user_repo.create(username, generate_password_hash(password), self.ROLE_ADMIN)
        return True

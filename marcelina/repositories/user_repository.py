# ==============================================================================
# REPOSITÓRIO DE USUÁRIOS
# ==============================================================================
# Encapsula todo o acesso à tabela `usuarios`.
# ==============================================================================

from typing import List, Optional

from marcelina.models import User, UserRole
from marcelina.repositories.base import TableRepository


class UserRepository(TableRepository):
    """
    Repositório de usuários.

    Formato da linha:
        {"id": 1, "username": "admin", "password_hash": "pbkdf2:...", "role": "admin"}
    """

    def list(self) -> List[User]:
        with self._action('listar usuários'):
            rows = self.table.select(order=[('username', False)])
        return [User.from_record(r) for r in rows]

    def get_by_username(self, username: str) -> Optional[User]:
        """
        Busca um usuário pelo nome.

        Returns:
            Usuário ou None
        """
        with self._action('buscar usuário'):
            rows = self.table.select(filters={'username': username})
        return User.from_record(rows[0]) if rows else None

    def exists(self, username: str) -> bool:
        return self.get_by_username(username) is not None

    def create(self, username: str, password_hash: str, role: str = UserRole.OPERADOR.value) -> User:
        payload = {'username': username, 'password_hash': password_hash, 'role': role}
        with self._action('criar usuário'):
            rows = self.table.insert(payload)
        return User.from_record(self._first(rows, 'criar usuário'))

    def update_password(self, user_id: int, password_hash: str) -> bool:
        with self._action('atualizar usuário'):
            row = self.table.update(user_id, {'password_hash': password_hash})
        return row is not None

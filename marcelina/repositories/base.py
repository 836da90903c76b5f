# ==============================================================================
# REPOSITÓRIO BASE - Tabelas em arquivos JSON e base dos repositórios
# ==============================================================================

import json
import os
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from marcelina.models import round_quantity, utc_now_iso
from marcelina.repositories.interfaces import ITable, Order


class RepositoryError(Exception):
    """
    Falha ao acessar o armazenamento.

    A mensagem segue o formato "Erro ao <ação>: <detalhe>", pronta para
    ser exibida ao usuário.
    """

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class BaseRepository(ABC):
    """
    Classe base abstrata para dados guardados em arquivo JSON.
    Fornece leitura/escrita com controle de concorrência básico via locks.

    Ao usar o Supabase esta classe não participa: a tabela remota
    (SupabaseTable) cumpre o mesmo contrato ITable.
    """

    # Lock global para evitar escritas concorrentes nos arquivos
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Inicializa o repositório com o caminho do arquivo JSON.

        Args:
            file_path: Caminho absoluto do arquivo de dados
        """
        self.file_path = file_path
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Cria o arquivo com dados vazios se não existir."""
        if not os.path.exists(self.file_path):
            os.makedirs(os.path.dirname(self.file_path) or '.', exist_ok=True)
            self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """
        Estrutura vazia deste repositório.

        Returns:
            Estrutura vazia (dict, list, etc.)
        """
        pass

    def _read_raw(self) -> Any:
        """
        Lê os dados crus do arquivo JSON.

        Returns:
            Dados do JSON (vazio se o arquivo estiver corrompido ou ausente)
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except (json.JSONDecodeError, FileNotFoundError):
                return self._empty_data()

    def _write_raw(self, data: Any) -> None:
        """
        Escreve os dados no arquivo JSON.

        Raises:
            RepositoryError: Se a escrita falhar
        """
        with self._file_lock:
            # Escreve num temporário primeiro para a troca ser atômica
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except OSError as exc:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise RepositoryError(str(exc)) from exc


def _sort_key(field: str):
    # Nulos por último em ordem crescente e primeiro em decrescente (como no Postgres)
    def key(row: Dict[str, Any]):
        value = row.get(field)
        return (value is None, value if value is not None else 0)
    return key


def sort_rows(rows: List[Dict[str, Any]], order: Optional[Order]) -> List[Dict[str, Any]]:
    """Ordena linhas por várias colunas (a primeira é a principal)."""
    result = list(rows)
    for field, descending in reversed(list(order or [])):
        result.sort(key=_sort_key(field), reverse=descending)
    return result


def _matches(
    row: Dict[str, Any],
    filters: Optional[Dict[str, Any]],
    gte: Optional[Dict[str, Any]],
    lte: Optional[Dict[str, Any]],
) -> bool:
    for field, expected in (filters or {}).items():
        value = row.get(field)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    for field, bound in (gte or {}).items():
        value = row.get(field)
        if value is None or value < bound:
            return False
    for field, bound in (lte or {}).items():
        value = row.get(field)
        if value is None or value > bound:
            return False
    return True


class JsonTable(BaseRepository):
    """
    Tabela guardada como lista de linhas em <data_dir>/<nome>.json.

    Exemplo: insumos.json -> [{"id": 1, "nome": "Farinha", ...}, ...]
    Os ids são inteiros sequenciais atribuídos na inserção.
    """

    def __init__(self, data_dir: str, name: str):
        self.name = name
        super().__init__(os.path.join(data_dir, f'{name}.json'))

    def _empty_data(self) -> List:
        return []

    def _rows(self) -> List[Dict[str, Any]]:
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def select(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[Order] = None,
        gte: Optional[Dict[str, Any]] = None,
        lte: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Busca linhas com filtros de igualdade/IN e limites inclusivos.

        Returns:
            Linhas encontradas, ordenadas por `order`
        """
        rows = [r for r in self._rows() if _matches(r, filters, gte, lte)]
        return sort_rows(rows, order)

    def get(self, record_id: Any) -> Optional[Dict[str, Any]]:
        for row in self._rows():
            if row.get('id') == record_id:
                return row
        return None

    def insert(self, rows: Any) -> List[Dict[str, Any]]:
        """
        Insere uma ou várias linhas, atribuindo id e created_at.

        Args:
            rows: dict (uma linha) ou lista de dicts

        Returns:
            Linhas inseridas, na mesma ordem
        """
        new_rows = [rows] if isinstance(rows, dict) else list(rows)
        with self._file_lock:
            data = self._rows()
            next_id = max((r.get('id') or 0 for r in data), default=0) + 1
            inserted = []
            for row in new_rows:
                record = dict(row)
                record['id'] = next_id
                record.setdefault('created_at', utc_now_iso())
                next_id += 1
                data.append(record)
                inserted.append(record)
            self._write_raw(data)
        return inserted

    def update(self, record_id: Any, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._file_lock:
            data = self._rows()
            for row in data:
                if row.get('id') == record_id:
                    row.update(changes)
                    self._write_raw(data)
                    return row
        return None

    def increment(self, record_id: Any, field: str, delta: float) -> Optional[Dict[str, Any]]:
        """Soma delta à coluna numérica lendo e gravando sob o mesmo lock."""
        with self._file_lock:
            data = self._rows()
            for row in data:
                if row.get('id') == record_id:
                    row[field] = round_quantity(float(row.get(field) or 0) + delta)
                    self._write_raw(data)
                    return row
        return None

    def delete_where(self, field: str, value: Any) -> int:
        with self._file_lock:
            data = self._rows()
            kept = [r for r in data if r.get(field) != value]
            removed = len(data) - len(kept)
            if removed:
                self._write_raw(kept)
        return removed


class TableRepository:
    """
    Base dos repositórios de domínio.

    Recebe a(s) tabela(s) já construída(s) (JsonTable ou SupabaseTable)
    e padroniza as mensagens de erro.
    """

    def __init__(self, table: ITable):
        self.table = table

    @contextmanager
    def _action(self, description: str) -> Iterator[None]:
        """
        Envolve uma operação, prefixando erros com a ação.

        Uso:
            with self._action('listar insumos'):
                rows = self.table.select()
        """
        try:
            yield
        except RepositoryError as exc:
            raise RepositoryError(f"Erro ao {description}: {exc.detail}") from exc

    @staticmethod
    def _first(rows: List[Dict[str, Any]], description: str) -> Dict[str, Any]:
        """Primeira linha retornada; erro 'sem retorno' se vier vazio."""
        if not rows:
            raise RepositoryError(f"Erro ao {description}: sem retorno")
        return rows[0]

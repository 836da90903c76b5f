# ==============================================================================
# SERVIÇO DE BACKUPS - Cópia diária das tabelas JSON
# ==============================================================================
# Compacta os arquivos <data_dir>/<tabela>.json em
#   <data_dir>/backups/backup_YYYY-MM-DD.zip
# e mantém só os MAX_BACKUPS mais recentes.
#
# Só vale para o armazenamento local: com o Supabase o próprio banco
# hospedado cuida das cópias (o contêiner devolve None).
# ==============================================================================

import os
import re
import zipfile
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

# Tabelas guardadas em <data_dir>/<tabela>.json
TABLE_NAMES = (
    'insumos',
    'produtos',
    'produto_insumos',
    'vendas',
    'venda_itens',
    'contas',
    'movimentacoes',
    'usuarios',
    'auditoria',
)

_BACKUP_NAME = re.compile(r'^backup_(\d{4}-\d{2}-\d{2})\.zip$')


class BackupService:
    """
    Backups diários em ZIP com rotação.

    Uso:
        service = BackupService('/srv/marcelina/data')
        service.run_daily_backup()
        service.get_backup_status()
    """

    MAX_BACKUPS = 7

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.backup_root = os.path.join(data_dir, 'backups')
        os.makedirs(self.backup_root, exist_ok=True)

    # =========================================================================
    # ARQUIVOS
    # =========================================================================

    def zip_path_for(self, day: date) -> str:
        return os.path.join(self.backup_root, f'backup_{day.isoformat()}.zip')

    def list_backups(self) -> List[Tuple[str, str]]:
        """
        Backups válidos, do mais recente para o mais antigo.

        Returns:
            [(data ISO, caminho), ...]
        """
        found = []
        for name in os.listdir(self.backup_root):
            match = _BACKUP_NAME.match(name)
            path = os.path.join(self.backup_root, name)
            if not match or not os.path.isfile(path):
                continue
            try:
                date.fromisoformat(match.group(1))
            except ValueError:
                continue
            found.append((match.group(1), path))
        found.sort(reverse=True)
        return found

    def _has_backup(self, day: date) -> bool:
        path = self.zip_path_for(day)
        return os.path.isfile(path) and os.path.getsize(path) > 0

    def _write_zip(self, zip_path: str) -> Tuple[int, List[str]]:
        """
        Grava as tabelas existentes no ZIP.
        Tabela ainda não criada não conta como erro.

        Returns:
            (arquivos gravados, erros)
        """
        sources = [
            (f'{table}.json', os.path.join(self.data_dir, f'{table}.json'))
            for table in TABLE_NAMES
        ]
        sources = [(arcname, path) for arcname, path in sources if os.path.exists(path)]

        written, errors = 0, []
        try:
            with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as archive:
                for arcname, path in sources:
                    try:
                        archive.write(path, arcname)
                    except OSError as exc:
                        errors.append(f'{arcname}: {exc}')
                    else:
                        written += 1
        except (OSError, zipfile.BadZipFile) as exc:
            errors.append(f'Erro criando ZIP: {exc}')
            written = 0

        if not written and os.path.exists(zip_path):
            os.remove(zip_path)
        return written, errors

    # =========================================================================
    # OPERAÇÕES
    # =========================================================================

    def create_backup(self, force: bool = False, today: date = None) -> Dict[str, Any]:
        """
        Cria o backup do dia.

        Args:
            force: Regrava mesmo que o backup de hoje já exista
            today: Data do backup (padrão: hoje)

        Returns:
            {success, message, files_added, errors, backup_path}
        """
        today = today or date.today()
        zip_path = self.zip_path_for(today)

        if not force and self._has_backup(today):
            print(f"[BACKUP] Backup já existe hoje: {os.path.basename(zip_path)}")
            return {
                'success': True,
                'message': 'Backup do dia já existe',
                'files_added': 0,
                'errors': [],
                'backup_path': zip_path,
            }

        written, errors = self._write_zip(zip_path)
        if not written:
            return {
                'success': False,
                'message': 'Nenhum arquivo encontrado para backup',
                'files_added': 0,
                'errors': errors,
                'backup_path': None,
            }

        size_kb = round(os.path.getsize(zip_path) / 1024, 2)
        print(f"[BACKUP] Backup criado: {os.path.basename(zip_path)} ({written} arquivos, {size_kb} KB)")
        return {
            'success': True,
            'message': f'Backup criado: {written} arquivos ({size_kb} KB)',
            'files_added': written,
            'errors': errors,
            'backup_path': zip_path,
        }

    def rotate_backups(self) -> Dict[str, int]:
        """
        Apaga os backups além dos MAX_BACKUPS mais recentes.

        Returns:
            {deleted_count, remaining_count}
        """
        deleted = 0
        for _, path in self.list_backups()[self.MAX_BACKUPS:]:
            try:
                os.remove(path)
            except OSError as exc:
                print(f"[BACKUP ERROR] Não foi possível remover {os.path.basename(path)}: {exc}")
                continue
            deleted += 1
            print(f"[BACKUP] Backup antigo removido: {os.path.basename(path)}")

        return {'deleted_count': deleted, 'remaining_count': len(self.list_backups())}

    def run_daily_backup(self) -> Dict[str, Any]:
        """Backup do dia (se faltar) seguido da rotação."""
        backup = self.create_backup()
        return {'backup': backup, 'rotation': self.rotate_backups()}

    def get_backup_status(self) -> Dict[str, Any]:
        backups = []
        for day, path in self.list_backups():
            size_bytes = os.path.getsize(path)
            try:
                with zipfile.ZipFile(path) as archive:
                    files = len(archive.namelist())
            except zipfile.BadZipFile:
                files = 0
            backups.append({
                'filename': os.path.basename(path),
                'date': day,
                'files': files,
                'size_bytes': size_bytes,
                'size_kb': round(size_bytes / 1024, 2),
            })

        return {
            'total_backups': len(backups),
            'max_backups': self.MAX_BACKUPS,
            'backup_root': self.backup_root,
            'backups': backups,
            'today_exists': self._has_backup(date.today()),
        }


def run_startup_backup(service: Optional[BackupService]) -> None:
    """
    Backup ao subir a aplicação.

    Falha de disco só é informada; a aplicação sobe mesmo assim.
    """
    if service is None:
        return
    try:
        result = service.run_daily_backup()
    except OSError as exc:
        print(f"[BACKUP ERROR] Não foi possível executar o backup: {exc}")
        return

    if result['backup']['errors']:
        print(f"[BACKUP] Erros: {result['backup']['errors']}")

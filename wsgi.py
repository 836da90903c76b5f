# ==============================================================================
# WSGI Entry Point - Para Gunicorn em produção
# ==============================================================================
# Ponto de entrada para servidores WSGI como o Gunicorn.
#
# USO:
#   gunicorn wsgi:app --bind 0.0.0.0:$PORT
#
# ESTRUTURA DO PROJETO:
#   repo_root/           <- Diretório de trabalho (já no sys.path)
#   ├── wsgi.py          <- Este arquivo
#   ├── pyproject.toml
#   └── marcelina/       <- Pacote Python
#       ├── __init__.py
#       ├── main.py
#       ├── services/
#       └── repositories/
#
# A configuração vem das variáveis de ambiente (ver marcelina/config.py).
# ==============================================================================

from marcelina.main import create_app

app = create_app()

# ==============================================================================
# PONTO DE ENTRADA
# ==============================================================================
# Variável 'app' exportada para o Gunicorn:
#   gunicorn wsgi:app
#
# Para desenvolvimento local:
#   python wsgi.py
# ==============================================================================

if __name__ == '__main__':
    config = app.config['MARCELINA']
    app.run(debug=config.debug, host=config.host, port=config.port)

# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db estoque_vet.db
  python app.py produto criar --nome "Vacina V10" --categoria Vacina --quantidade 10 --minimo 5
  python app.py mov saida <produto_id> 2 --motivo "Uso em consulta"
  python app.py mov lote movimentacoes.xlsx
  python app.py rel resumo
"""

from estoque_vet.adapters.cli import main

if __name__ == "__main__":
    main()

"""One-off migration script: JSON file store -> SQL database."""
from __future__ import annotations

import argparse
from pathlib import Path
import sys

# Garantir que o pacote cotacoes seja importável quando rodado diretamente
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cotacoes.core.config import get_settings
from cotacoes.db.create_tables import create_all
from cotacoes.repositories.json_storage import JSONQuoteRepository
from cotacoes.repositories.sql_repository import SQLQuoteRepository


def migrate(data_file: Path, database_url: str | None = None) -> int:
    if not data_file.exists():
        raise SystemExit(f"Arquivo nao encontrado: {data_file}")
    source = JSONQuoteRepository(data_file)
    create_all(database_url)
    target = SQLQuoteRepository(database_url)
    count = 0
    for record in source.list_all():
        if not record.get("id") or not record.get("timestamp"):
            print(f"[WARN] Registro ignorado (sem id/timestamp): {record!r:.80}")
            continue
        record.setdefault("negocioFechado", False)
        target.import_record(record)
        count += 1
    return count


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Copia as cotações do arquivo JSON para o banco SQL.")
    parser.add_argument("--file", default=settings.json_data_file, help="arquivo JSON de origem")
    parser.add_argument("--database-url", default=settings.database_url or None, help="URL do banco de destino")
    args = parser.parse_args(argv)
    if not args.database_url:
        print("DATABASE_URL nao configurada.")
        return 1
    total = migrate(Path(args.file), args.database_url)
    print(f"{total} cotações migradas para o banco SQL.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

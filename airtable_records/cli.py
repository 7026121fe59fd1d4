"""
CLI: consulta y borrado de registros de Airtable.

Variables de entorno (o .env):
  - AIRTABLE_API_TOKEN (obligatoria)
  - AIRTABLE_BASE_URL, AIRTABLE_MAX_RETRIES, LOG_LEVEL, ... (opcionales)

Ejecución:
  airtable-records list appXXXX Customers --view "Grid view" --field Name --field Email
  airtable-records list appXXXX Customers --all
  airtable-records get appXXXX Customers recXXXX
  airtable-records delete appXXXX Customers recXXXX
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from dotenv import load_dotenv
from loguru import logger

from airtable_records.application.dto.queries import GetRecordQueryBuilder, ListRecordsQueryBuilder
from airtable_records.core.config import Settings
from airtable_records.core.logging import configure_logging
from airtable_records.domain.entities.fields import DynamicFields
from airtable_records.domain.entities.record import Record
from airtable_records.infrastructure.external.airtable.records_client import AirtableRecordsClient
from airtable_records.shared.exceptions.base import AppException


def _record_to_json(record: Record[DynamicFields]) -> Dict[str, Any]:
    return {
        "id": record.id,
        "createdTime": record.created_time.isoformat() if record.created_time else None,
        "fields": record.fields.to_fields(),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="airtable-records")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="Lista registros de una tabla.")
    p_list.add_argument("base")
    p_list.add_argument("table")
    p_list.add_argument("--view")
    p_list.add_argument("--field", action="append", default=[], dest="fields")
    p_list.add_argument("--filter", help="Fórmula filterByFormula.")
    p_list.add_argument("--sort", action="append", default=[], help="field o field:desc")
    p_list.add_argument("--page-size", type=int)
    p_list.add_argument("--offset")
    p_list.add_argument(
        "--all",
        action="store_true",
        help="Recorre todas las páginas (ignora --offset).",
    )

    p_get = sub.add_parser("get", help="Trae un registro por id.")
    p_get.add_argument("base")
    p_get.add_argument("table")
    p_get.add_argument("record_id")
    p_get.add_argument("--field", action="append", default=[], dest="fields")

    p_delete = sub.add_parser("delete", help="Borra un registro por id.")
    p_delete.add_argument("base")
    p_delete.add_argument("table")
    p_delete.add_argument("record_id")

    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> Any:
    async with AirtableRecordsClient.from_settings(settings) as airtable:
        if args.command == "list":
            builder = ListRecordsQueryBuilder().fields(args.fields)
            if args.view:
                builder.view(args.view)
            if args.filter:
                builder.filter(args.filter)
            for spec in args.sort:
                field, _, direction = spec.partition(":")
                builder.sort(field, direction or "asc")
            if args.page_size is not None:
                builder.page_size(args.page_size)
            if args.offset and not args.all:
                builder.offset(args.offset)
            query = builder.build()

            if args.all:
                records = await airtable.list_all_records(DynamicFields, args.base, args.table, query)
                return {"records": [_record_to_json(r) for r in records]}

            page = await airtable.list_records(DynamicFields, args.base, args.table, query)
            return {"records": [_record_to_json(r) for r in page.records], "offset": page.offset}

        if args.command == "get":
            query = GetRecordQueryBuilder().fields(args.fields).build()
            record = await airtable.get_record(
                DynamicFields, args.base, args.table, args.record_id, query
            )
            return _record_to_json(record)

        deleted = await airtable.delete_record(args.base, args.table, args.record_id)
        return {"id": deleted.id, "deleted": deleted.deleted}


def main(argv: Optional[Sequence[str]] = None) -> int:
    # .env del cwd, sin pisar variables ya definidas
    load_dotenv(Path.cwd() / ".env", override=False)

    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(settings)

    if not settings.AIRTABLE_API_TOKEN:
        logger.error("Falta variable de entorno obligatoria: AIRTABLE_API_TOKEN")
        return 2

    try:
        result = asyncio.run(_run(args, settings))
    except AppException as e:
        logger.error(f"{e.error_code}: {e.message}")
        json.dump(e.to_dict(), sys.stderr, ensure_ascii=False, default=str)
        sys.stderr.write("\n")
        return 1

    json.dump(result, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

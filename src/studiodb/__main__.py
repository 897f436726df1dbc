"""
Command-line inspection of a WordPress Studio database.

    python -m studiodb ~/Studio/my-site
    python -m studiodb ~/Studio/my-site --table wp_posts --sort ID --direction desc
    python -m studiodb ~/Studio/my-site --sql "SELECT option_value FROM wp_options LIMIT 5"
"""

import argparse
import logging
import sys

from .config import get_settings
from .exceptions import StudioDatabaseError
from .models import SortDirection
from .service import DatabaseService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="studiodb", description="Inspect a WordPress Studio SQLite database")
    parser.add_argument("root", help="WordPress Studio installation directory")
    parser.add_argument("--table", help="Print one page of this table")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--page-size", type=int, default=None)
    parser.add_argument("--sort", help="Sort column for --table")
    parser.add_argument("--direction", choices=[d.value for d in SortDirection], default=SortDirection.ASC.value)
    parser.add_argument("--sql", help="Run a raw SQL statement")
    parser.add_argument("--log-level", default=None)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Open an installation and print tables, a page of rows, or a query result."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        with DatabaseService(settings) as service:
            db_path = service.open_installation(args.root).result()
            print(f"Opened {db_path}")

            if args.sql:
                result = service.execute(args.sql).result()
                print(result.to_dataframe().to_string(index=False))
            elif args.table:
                result = service.fetch_page(
                    args.table,
                    page=args.page,
                    page_size=args.page_size,
                    sort_column=args.sort,
                    sort_direction=args.direction,
                ).result()
                print(f"{args.table}: page {args.page}, {len(result.rows)} of {result.total} rows")
                print(result.to_dataframe().to_string(index=False))
            else:
                info = service.get_database_info().result()
                print(f"SQLite {info.sqlite_version}, {info.size} bytes, {info.table_count} tables")
                for name in service.list_tables().result():
                    table = service.get_table_info(name, with_count=True).result()
                    print(f"  {name} ({table.row_count} rows)")
    except StudioDatabaseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

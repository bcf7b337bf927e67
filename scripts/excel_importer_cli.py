#!/usr/bin/env python3
"""
Excel to database table import CLI.

Imports spreadsheet rows into a database table, updating rows found by the
unique fields and inserting the rest.

Usage:
    # Import one file
    sheet-import import -d users.xlsx -t fe_users -u username

    # Import every .xlsx of a directory, remapping and transforming values
    sheet-import import -d incoming/ -c db.env -t fe_users \\
        -u email --column email:E-Mail --map gender:Herr:1 \\
        --default pid:12 --default crdate:{{timestamp}} \\
        --success-directory done/ --error-directory failed/
"""

import sys
import logging
from typing import Optional, Tuple

import click
from dotenv import load_dotenv

from backend.config import get_settings
from backend.database import create_db_engine, create_session, load_connection_url
from services.errors import ConfigurationError
from services.excel_import_service import ExcelImportService
from services.import_options import ImportOptions

logger = logging.getLogger('excel_importer_cli')


def configure_logging(verbose: bool = False):
    """Configure root logging from settings; ``verbose`` enables row diagnostics."""
    settings = get_settings()
    level = logging.DEBUG if verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stderr)]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE))

    logging.basicConfig(level=level, format=settings.LOG_FORMAT, handlers=handlers, force=True)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Log every imported row and every skipped row')
@click.pass_context
def cli(ctx, verbose):
    """Excel to database table import CLI"""
    load_dotenv()
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose


@cli.command('import')
@click.option('--data-file', '-d', required=True, type=click.Path(exists=True),
              help='Path to data file, or directory with files to be imported.')
@click.option('--config-file', '-c', type=click.Path(exists=True, dir_okay=False),
              help='Connection config file (DATABASE_URL or DB_* entries). Defaults to DATABASE_URL.')
@click.option('--column', 'columns', multiple=True,
              help='Column assignment "db_column:file_column", e.g. "last_name:Name".')
@click.option('--table', '-t', default=None,
              help='Database table name (default: DEFAULT_TABLE setting).')
@click.option('--map', '-m', 'value_mappings', multiple=True,
              help='Value mapping "column:source_value:target_value", e.g. "gender:Herr:1".')
@click.option('--unique-field', '-u', 'unique_fields', multiple=True,
              help='Unique field names, used to find entries which should be updated.')
@click.option('--default', 'defaults', multiple=True,
              help='Default value "column:value"; {{timestamp}}, {{now}} and {{date}} are resolved per row.')
@click.option('--success-directory', type=click.Path(file_okay=False),
              help='Successfully imported files are moved to this directory.')
@click.option('--error-directory', type=click.Path(file_okay=False),
              help='Files that failed to import are moved to this directory.')
@click.option('--no-trim', is_flag=True, help='Disables trimming of field values.')
@click.option('--verbose', '-v', is_flag=True, help='Log every imported row and every skipped row')
def import_cmd(data_file: str, config_file: Optional[str], columns: Tuple[str, ...],
               table: Optional[str], value_mappings: Tuple[str, ...], unique_fields: Tuple[str, ...],
               defaults: Tuple[str, ...], success_directory: Optional[str],
               error_directory: Optional[str], no_trim: bool, verbose: bool):
    """Import spreadsheet files into a database table."""
    settings = get_settings()
    if verbose:
        configure_logging(verbose=True)

    try:
        options = ImportOptions.from_cli(
            table_name=table or settings.DEFAULT_TABLE,
            unique_fields=unique_fields,
            columns=columns,
            value_mappings=value_mappings,
            defaults=defaults,
            trim=not no_trim,
            success_directory=success_directory,
            error_directory=error_directory,
        )
        database_url = load_connection_url(config_file)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    result = import_direct(database_url, data_file, options)

    if result['errors']:
        sys.exit(1)


def on_progress(stage: str, percent: float, message: str):
    """Echo per-file outcomes to the operator."""
    if stage in ('file_failed', 'file_error'):
        click.echo(message, err=True)
    elif stage in ('file_start', 'file_success'):
        click.echo(message)


def import_direct(database_url: str, data_file: str, options: ImportOptions) -> dict:
    """Run the import against the database and print the summary."""
    logger.info(f"Importing {data_file} into table {options.table_name}")
    engine = create_db_engine(database_url)
    session = create_session(engine)

    try:
        service = ExcelImportService(session, options, progress_callback=on_progress)
        try:
            result = service.import_path(data_file, extensions=get_settings().IMPORT_EXTENSIONS)
        except ConfigurationError as e:
            click.echo(f"Error: {e}", err=True)
            result = {'created': 0, 'updated': 0, 'files': [], 'errors': [str(e)]}

        # final summary
        click.echo(f"Items updated: {result['updated']}")
        click.echo(f"Items created: {result['created']}")
        return result
    finally:
        session.close()
        engine.dispose()


if __name__ == '__main__':
    cli()

#!/usr/bin/env python3
"""
Console interface to the phone location database.

Usage examples:
  python pipeline.py init
  python pipeline.py insert --number 5551234 --location CityA --phone-type 1
  python pipeline.py upsert 5551234 --location CityB
  python pipeline.py query /phonelocation/bynumber/5551234
  python pipeline.py query /phonelocation --where "engine_type = :e" --arg e=0 --export out.csv
  python pipeline.py update /phonelocation/byphonetype/1 --set user_mark=spam
  python pipeline.py ingest path/to/file1.csv [file2.csv ...]

The database comes from PHONELOCATION_DATABASE_URL (or .env), defaulting to
sqlite:///phonelocation.db.
"""
from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional

import click
import pandas as pd

import ingest
from db import get_engine
from provider import PhoneLocationProvider
from router import CONTENT_ADDRESS, number_address
from schema import get_stored_version
from utils import parse_assignments


def field_options(f):
    f = click.option("--user-mark", default=None, help="Free-form caller annotation")(f)
    f = click.option("--engine-type", type=int, default=None, help="Resolution engine code")(f)
    f = click.option("--phone-type", type=int, default=None, help="Phone type code")(f)
    f = click.option("--location", default=None, help="Resolved location text")(f)
    return f


def collect_fields(**fields) -> Dict:
    return {k: v for k, v in fields.items() if v is not None}


def parse_args_or_fail(pairs) -> Optional[Dict]:
    try:
        return parse_assignments(pairs) or None
    except ValueError as e:
        raise click.BadParameter(str(e))


def rows_to_dataframe(rows: List[Dict]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows)


@click.group()
@click.option("--database", "database_url", default=None, help="SQLAlchemy URL (overrides PHONELOCATION_DATABASE_URL)")
@click.pass_context
def cli(ctx, database_url):
    """Phone location database CLI"""
    logging.basicConfig(
        level=os.getenv("PHONELOCATION_LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    provider = PhoneLocationProvider(engine=get_engine(database_url))
    ctx.obj = provider
    ctx.call_on_close(provider.close)


@cli.command("init")
@click.pass_obj
def init(provider):
    """Create or migrate the database."""
    provider.store  # opens and migrates
    with provider.engine.connect() as conn:
        click.echo(f"Schema version {get_stored_version(conn)}")


@cli.command("query")
@click.argument("address", default=CONTENT_ADDRESS)
@click.option("--column", "projection", multiple=True, help="Column to return (repeatable)")
@click.option("--where", default=None, help="SQL filter with :named parameters")
@click.option("--arg", "args", multiple=True, help="Bind parameter for --where as key=value")
@click.option("--sort", "sort_order", default=None, help="ORDER BY clause (default update_time ASC)")
@click.option("--export", "export_path", type=click.Path(), help="Write results to CSV path")
@click.pass_obj
def query(provider, address, projection, where, args, sort_order, export_path):
    """Query rows at ADDRESS."""
    rows = provider.query(
        address,
        projection=list(projection) or None,
        where=where,
        where_args=parse_args_or_fail(args),
        sort_order=sort_order,
    )
    if rows is None:
        raise click.ClickException(f"Query failed: {address}")

    df = rows_to_dataframe(rows)
    click.echo(f"Found {len(df)} rows at {address}")
    if df.empty:
        return
    if export_path:
        df.to_csv(export_path, index=False)
        click.echo(f"Exported to {export_path}")
    else:
        for row in rows:
            click.echo("\t".join("" if v is None else str(v) for v in row.values()))


@cli.command("insert")
@click.option("--number", required=True, help="Phone number")
@field_options
@click.pass_obj
def insert(provider, number, **fields):
    """Insert a number unless it is already present."""
    values = collect_fields(number=number, **fields)
    address = provider.insert(CONTENT_ADDRESS, values)
    if address is None:
        click.echo(f"Not inserted: {number}")
    else:
        click.echo(f"Inserted {address}")


@cli.command("upsert")
@click.argument("number")
@field_options
@click.pass_obj
def upsert(provider, number, **fields):
    """Update NUMBER, inserting it when absent."""
    values = collect_fields(number=number, **fields)
    count = provider.update(number_address(number), values)
    click.echo(f"Updated {count} row(s)")


@cli.command("update")
@click.argument("address")
@click.option("--set", "assignments", multiple=True, required=True, help="Field assignment as key=value")
@click.option("--where", default=None, help="SQL filter with :named parameters")
@click.option("--arg", "args", multiple=True, help="Bind parameter for --where as key=value")
@click.pass_obj
def update(provider, address, assignments, where, args):
    """Apply field assignments to rows at ADDRESS."""
    values = parse_args_or_fail(assignments)
    count = provider.update(address, values, where=where, where_args=parse_args_or_fail(args))
    click.echo(f"Updated {count} row(s)")


@cli.command("delete")
@click.argument("address")
@click.pass_obj
def delete(provider, address):
    """Rows are never removed; always reports 0."""
    count = provider.delete(address)
    click.echo(f"Deleted {count} row(s)")


@cli.command("ingest")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--dry-run", is_flag=True, default=False, help="Normalize and write output without DB writes")
@click.pass_obj
def ingest_files(provider, files, dry_run):
    """Upsert every row of one or more CSV files."""
    total = 0
    for path in files:
        click.echo(f"Ingesting {path}...")
        try:
            total += ingest.ingest_file(path, provider=provider, dry_run=dry_run)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            click.echo(f"  Failed to read {path}: {e}")
    click.echo(f"Done. Processed {total} valid row(s)")


if __name__ == "__main__":
    cli()

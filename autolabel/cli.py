"""Command-line interface for AutoLabel."""

import logging
import sys

import click

from autolabel import __version__
from autolabel.config import get_settings
from autolabel.db.database import SessionLocal, init_db
from autolabel.db.models import PrintJobStatus
from autolabel.dependencies import get_print_manager, get_registry
from autolabel.exceptions import AutoLabelError
from autolabel.labels.processor import LabelProcessor
from autolabel.labels.schemas import FooterConfig


def setup_logging(level: str) -> None:
    """Set up logging configuration.

    Args:
        level: Log level string.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def _fail(error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _echo_job(job) -> None:
    click.echo(
        f"Job {job.id} [{job.status.value}] {job.printed_count}/{job.total_count} "
        f"printed on {job.printer_name}"
    )
    for error in job.errors or []:
        click.echo(f"  ! {error}")


def _finish(job) -> None:
    _echo_job(job)
    if job.status == PrintJobStatus.FAILED:
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def main(verbose: bool):
    """AutoLabel - normalize shipping labels to 100x150mm and print them."""
    setup_logging("DEBUG" if verbose else get_settings().log_level)


@main.command("init-db")
def init_db_command():
    """Create the database tables."""
    init_db()
    click.echo(f"Database ready: {get_settings().get_database_url()}")


@main.command()
@click.argument("sale_ids", nargs=-1, required=True)
@click.option("--product-number", is_flag=True, help="Print the product number in the footer")
@click.option("--title", is_flag=True, help="Print the item title in the footer")
@click.option("--date", "include_date", is_flag=True, help="Print the sale date in the footer")
def prepare(sale_ids: tuple[str, ...], product_number: bool, title: bool, include_date: bool):
    """Prepare 100x150mm labels for one or more sales."""
    footer = FooterConfig(
        include_product_number=product_number,
        include_item_title=title,
        include_date=include_date,
    )
    db = SessionLocal()
    try:
        processor = LabelProcessor(db, get_registry())
        result = processor.prepare(list(sale_ids), footer if footer.has_fields else None)
        for label in result.labels:
            click.echo(f"+ {label.sale_id}: {label.id} ({label.profile_id}) -> {label.output_path}")
        for error in result.errors:
            click.echo(f"x {error}")
    finally:
        db.close()

    if result.errors:
        sys.exit(1)


@main.command("print")
@click.argument("label_ids", nargs=-1, required=True)
@click.option("--printer", "-p", default=None, help="Printer name (default printer if omitted)")
@click.option("--wait/--no-wait", default=True, help="Wait and report the result")
def print_labels(label_ids: tuple[str, ...], printer: str | None, wait: bool):
    """Print prepared labels."""
    manager = get_print_manager()
    try:
        job = manager.start_job(list(label_ids), printer)
    except (AutoLabelError, ValueError) as e:
        _fail(e)

    if wait:
        job = manager.wait(job.id)
    _finish(job)


@main.command()
@click.argument("label_ids", nargs=-1, required=True)
@click.option("--printer", "-p", default=None, help="Printer name (default printer if omitted)")
def queue(label_ids: tuple[str, ...], printer: str | None):
    """Create a print job without printing it yet."""
    try:
        job = get_print_manager().add_to_queue(list(label_ids), printer)
    except (AutoLabelError, ValueError) as e:
        _fail(e)
    _echo_job(job)


@main.command()
@click.argument("job_id")
@click.option("--wait/--no-wait", default=True, help="Wait and report the result")
def start(job_id: str, wait: bool):
    """Start a queued print job."""
    manager = get_print_manager()
    try:
        job = manager.start_queued(job_id)
    except AutoLabelError as e:
        _fail(e)

    if wait:
        job = manager.wait(job.id)
    _finish(job)


@main.command()
@click.argument("job_id")
def job(job_id: str):
    """Show a print job and its items."""
    print_job = get_print_manager().status(job_id)
    if print_job is None:
        _fail(f"Print job not found: {job_id}")

    _echo_job(print_job)
    for item in print_job.items:
        line = f"  {item.position + 1}. {item.label_id} [{item.status.value}]"
        if item.error:
            line += f" {item.error}"
        click.echo(line)


@main.command()
@click.option("--limit", "-n", default=20, show_default=True, help="Number of jobs to show")
def jobs(limit: int):
    """List recent print jobs."""
    print_jobs = get_print_manager().list_jobs(limit)
    if not print_jobs:
        click.echo("No print jobs.")
        return
    for print_job in print_jobs:
        _echo_job(print_job)


@main.command()
@click.argument("job_id")
@click.option("--wait/--no-wait", default=True, help="Wait and report the result")
def retry(job_id: str, wait: bool):
    """Reprint every label of a finished job."""
    manager = get_print_manager()
    try:
        job = manager.retry(job_id)
    except AutoLabelError as e:
        _fail(e)

    if wait:
        job = manager.wait(job.id)
    _finish(job)


@main.command()
@click.argument("job_id")
def delete(job_id: str):
    """Delete a print job and purge its printer queue."""
    try:
        get_print_manager().delete(job_id)
    except AutoLabelError as e:
        _fail(e)
    click.echo(f"Deleted print job {job_id}")


@main.command()
def printers():
    """List available printers."""
    printers_list = get_print_manager().list_printers()

    click.echo("\n=== Available Printers ===\n")
    if not printers_list:
        click.echo("No printers found.")
        return

    for p in printers_list:
        marker = "* " if p.is_default else "  "
        click.echo(f"{marker}{p.name} [{p.status}]")

    click.echo("\n(* = default printer)")


@main.command()
def profiles():
    """List label profiles in detection order."""
    registry = get_registry()
    for profile in registry.profiles:
        suffix = " (fallback)" if profile is registry.fallback else ""
        click.echo(f"{profile.id}: {profile.name}{suffix}")


if __name__ == "__main__":
    main()

# pagepub/cli.py
import click
from flask import current_app
from flask.cli import AppGroup

from pagepub.extensions import db
from pagepub.models.page import Page
from pagepub.wiring import publish_controller

versions_cli = AppGroup("versions", help="Page version maintenance.")


@versions_cli.command("retention")
@click.option("--keep", "-k", type=click.IntRange(min=1), default=None,
              help="Versions to keep per page (default: VERSION_RETENTION_KEEP).")
@click.option("--page", "-p", "page_id", default=None, help="Only this page id.")
@click.option("--dry-run", "-d", is_flag=True, help="Report what would be deleted.")
def retention(keep, page_id, dry_run):
    """Delete old versions, keeping the newest N and the published one."""
    keep = keep or current_app.config["VERSION_RETENTION_KEEP"]
    controller = publish_controller()

    if page_id:
        page_ids = [page_id]
    else:
        page_ids = db.session.execute(db.select(Page.id).order_by(Page.keyword)).scalars().all()
        # End the read so each page gets a fresh transaction
        db.session.commit()

    if not page_ids:
        raise click.ClickException("No pages found")

    click.echo(f"Keeping last {keep} version(s) per page" + (" [DRY RUN]" if dry_run else ""))

    total = 0
    for pid in page_ids:
        result = controller.apply_retention(pid, keep, dry_run=dry_run)
        total += len(result.deleted_numbers)
        if result.deleted_numbers:
            verb = "Would delete" if dry_run else "Deleted"
            numbers = ", ".join(str(n) for n in result.deleted_numbers)
            click.echo(f"Page {pid}: {verb} version(s) {numbers}")

    click.echo(f"{'Would delete' if dry_run else 'Deleted'} {total} version(s) across {len(page_ids)} page(s)")


def register_cli(app):
    app.cli.add_command(versions_cli)

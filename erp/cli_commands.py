"""
Flask CLI commands for database and pricing maintenance.

Commands:
- flask init-db: Create tables and seed the system markup rule
- flask recompute-totals: Find and repair stored totals that drifted
"""

import click
from flask import current_app
from erp.database import get_session, create_all
from erp.services.document_service import DOCUMENT_TYPES, reconcile_documents
from erp.services.markup_service import ensure_system_markup


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables and the default system markup rule."""
        db_session = get_session()
        create_all()
        try:
            rule = ensure_system_markup(
                db_session,
                retail=current_app.config.get('DEFAULT_RETAIL_MARKUP'),
                wholesale=current_app.config.get('DEFAULT_WHOLESALE_MARKUP'),
            )
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Error initializing database: {str(e)}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style('Database initialized.', fg='green', bold=True))
        click.echo(f'   Retail markup: {rule.retail_markup_percentage}%')
        click.echo(f'   Wholesale markup: {rule.wholesale_markup_percentage}%')

    @app.cli.command('recompute-totals')
    @click.option('--doc-type', 'doc_types', multiple=True, type=click.Choice(sorted(DOCUMENT_TYPES)),
                  help='Document type to scan (repeatable, default: all)')
    @click.option('--dry-run', is_flag=True, help='Report drift without writing anything')
    def recompute_totals(doc_types, dry_run):
        """Recompute stored line and document totals and repair drift."""
        summary = reconcile_documents(get_session(), doc_types=list(doc_types) or None, dry_run=dry_run)

        for doc_type, stats in summary.items():
            color = 'green' if not stats['drifted'] else 'yellow'
            click.echo(click.style(
                f"{doc_type}: checked={stats['checked']} drifted={stats['drifted']} "
                f"repaired={stats['repaired']} invalid={stats['invalid']}",
                fg=color
            ))

        if dry_run:
            click.echo('Dry run: no changes written.')
        invalid = sum(stats['invalid'] for stats in summary.values())
        if invalid:
            click.echo(click.style(f'{invalid} document(s) have invalid lines and need manual review.', fg='red'))

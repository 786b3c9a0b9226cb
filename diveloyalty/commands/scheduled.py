"""
CLI Commands for the loyalty program.

The yearly check is normally run by the background scheduler. It can also be
driven by cron instead:

# Yearly loyalty check (midnight, January 1st, shop timezone)
0 0 1 1 * cd /app && flask loyalty yearly-check
"""

import click
from flask import current_app
from flask.cli import with_appcontext

from ..extensions import get_profile_store
from ..services.tier_calculator import list_tiers
from ..services.yearly_check import YearlyLoyaltyCheck


@click.group('loyalty')
def loyalty_cli():
    """Loyalty program commands."""
    pass


@loyalty_cli.command('yearly-check')
@click.option('--year', type=int, help='Year being started (defaults to the current year)')
@click.option('--dry-run', is_flag=True, help='Preview without reducing points')
@with_appcontext
def yearly_check(year, dry_run):
    """
    Reduce points for members who missed last year's requirement.

    Run this once on January 1st.
    """
    check = YearlyLoyaltyCheck(
        get_profile_store(),
        timezone=current_app.config['LOYALTY_TIMEZONE']
    )

    result = check.run(current_year=year, dry_run=dry_run)
    prefix = '[DRY RUN] ' if dry_run else ''

    click.echo(f"\n{prefix}Yearly loyalty check for {result['year']}")
    click.echo(f"  Processed: {result['processed']} enrolled members")
    click.echo(f"  Reduced: {result['reduced']} members")
    click.echo(f"  Skipped: {result['skipped']}")
    for reason, count in sorted(result['skip_reasons'].items()):
        click.echo(f"    - {reason}: {count}")
    click.echo(f"  Points removed: {result['total_points_reduced']}")

    if result['details']:
        click.echo(f"\n  Details:")
        for detail in result['details'][:10]:
            click.echo(f"    {detail['uid']} ({detail['tier']}): "
                       f"-{detail['points_reduced']} lifetime, "
                       f"-{detail['redeemable_reduced']} redeemable "
                       f"({detail['last_year_points']}/{detail['required_yearly_points']} earned)")


@loyalty_cli.command('tiers')
def show_tiers():
    """
    Print the tier table.
    """
    for tier in list_tiers():
        upper = f"{tier['max']:,}" if tier['max'] is not None else 'and up'
        requirement = 'exempt' if tier['exempt_from_yearly_requirement'] \
            else f"{tier['required_yearly_points']:,} pts/year"
        click.echo(f"  {tier['name']:<18} {tier['min']:>7,} - {upper:<8} "
                   f"x{tier['multiplier']:<4} {requirement}")


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(loyalty_cli)

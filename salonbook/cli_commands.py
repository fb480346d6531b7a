"""
Flask CLI commands for platform operators.

Commands:
- flask init-db: Create all tables
- flask seed-plans: Create or update the default plans
- flask approve-salon <slug>: Approve a salon so it can take bookings
"""
from decimal import Decimal

import click

from salonbook.database import create_all, get_session
from salonbook.models import ApprovalStatus, Plan, Tenant

DEFAULT_PLANS = (
    {'code': 'starter', 'name': 'Starter', 'price': Decimal('0.00'), 'max_staff': 2, 'max_services': 10},
    {'code': 'growth', 'name': 'Growth', 'price': Decimal('99.00'), 'max_staff': 10, 'max_services': 50},
    {'code': 'premium', 'name': 'Premium', 'price': Decimal('249.00'), 'max_staff': 50, 'max_services': 200},
)


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create database tables."""
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('seed-plans')
    def seed_plans():
        """Create the default plans, updating ceilings of existing ones."""
        db_session = get_session()
        try:
            for plan_defaults in DEFAULT_PLANS:
                plan = db_session.query(Plan).filter_by(code=plan_defaults['code']).first()
                if plan is None:
                    plan = Plan(code=plan_defaults['code'])
                    db_session.add(plan)
                for key, value in plan_defaults.items():
                    setattr(plan, key, value)
            db_session.commit()
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Error seeding plans: {e}', fg='red'))
            raise SystemExit(1)

        for plan_defaults in DEFAULT_PLANS:
            click.echo(f"   {plan_defaults['code']}: {plan_defaults['max_staff']} staff, {plan_defaults['max_services']} services")
        click.echo(click.style('Plans seeded.', fg='green'))

    @app.cli.command('approve-salon')
    @click.argument('slug')
    def approve_salon(slug):
        """Mark a salon as approved."""
        db_session = get_session()
        tenant = db_session.query(Tenant).filter_by(slug=slug).first()
        if not tenant:
            click.echo(click.style(f'No salon with slug: {slug}', fg='red'))
            raise SystemExit(1)

        tenant.approval_status = ApprovalStatus.APPROVED.value
        db_session.commit()
        click.echo(click.style(f'Salon {tenant.name} ({slug}) approved.', fg='green'))

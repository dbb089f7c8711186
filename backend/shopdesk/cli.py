# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Plans:
# - python -m flask plans seed
#   Create the Free Lifetime and Basic plans if missing.
# - python -m flask plans list
#
# Shop admins:
# - python -m flask admins create --email owner@shop.pk --password "Password123!" --name "Owner"
# - python -m flask admins assign-plan --email owner@shop.pk --plan "Basic"
#
# Subscriptions:
# - python -m flask subscriptions expire
#   Mark lapsed subscriptions expired.
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Plan, User, ROLE_ADMIN
from .permissions import DEFAULT_PLAN_FEATURES, Feature, FeaturePermission, features_to_dict
from .services import auth_service, security_service, subscription_service
from .services.auth_service import AccountError, PasswordValidationError
from .services.subscription_service import SubscriptionError


# Free tier: view-only sales and inventory, full invoicing
FREE_PLAN_FEATURES = {
    Feature.INVOICE: FeaturePermission.full(),
    Feature.SALES: FeaturePermission(can_view=True),
    Feature.INVENTORY: FeaturePermission(can_view=True),
}

SEED_PLANS = (
    {
        "name": "Free Lifetime",
        "description": "Basic invoicing, forever",
        "monthly_price": 0,
        "yearly_price": 0,
        "duration_months": 1,
        "is_lifetime": True,
        "features": features_to_dict(FREE_PLAN_FEATURES),
    },
    {
        "name": "Basic",
        "description": "Every feature, billed monthly",
        "monthly_price": 1500,
        "yearly_price": 15000,
        "duration_months": 1,
        "is_lifetime": False,
        "features": features_to_dict(DEFAULT_PLAN_FEATURES),
    },
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask plans seed' next.")


@click.group('plans')
def plans_group():
    """Subscription plan commands."""


@plans_group.command('seed')
@with_appcontext
def seed_plans():
    """Create the default plans if they do not exist (idempotent)."""
    for plan_data in SEED_PLANS:
        if db.session.query(Plan).filter_by(name=plan_data["name"]).first():
            click.echo(f"SKIP  Plan '{plan_data['name']}' already exists")
            continue
        plan = subscription_service.create_plan(dict(plan_data))
        click.echo(f"PASS Created plan '{plan.name}' (id={plan.id})")


@plans_group.command('list')
@with_appcontext
def list_plans():
    plans = subscription_service.list_plans()
    if not plans:
        click.echo("No plans. Run 'python -m flask plans seed'.")
        return
    for plan in plans:
        kind = "lifetime" if plan.is_lifetime else f"{plan.duration_months} month(s)"
        state = "active" if plan.is_active else "inactive"
        click.echo(f"{plan.id:>4}  {plan.name:<24} {kind:<12} {state}  features={len(plan.features or {})}")


@click.group('admins')
def admins_group():
    """Shop admin account commands."""


@admins_group.command('create')
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--name', 'full_name', default=None)
@click.option('--trial-days', type=int, default=None, help='Defaults to TRIAL_DAYS config')
@with_appcontext
def create_admin(email, password, full_name, trial_days):
    """Create a shop admin on a trial subscription."""
    if trial_days is None:
        trial_days = current_app.config.get("TRIAL_DAYS", 7)
    try:
        admin = auth_service.create_admin(email, password, full_name, trial_days=trial_days)
    except (PasswordValidationError, AccountError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created admin {admin.email} (id={admin.id}), trial {trial_days} day(s)")


@admins_group.command('assign-plan')
@click.option('--email', required=True)
@click.option('--plan', 'plan_name', required=True)
@with_appcontext
def assign_plan(email, plan_name):
    """Bind an admin to a plan and sync its feature overrides."""
    admin = db.session.query(User).filter_by(email=email.strip().lower(), role=ROLE_ADMIN).first()
    if not admin:
        raise click.ClickException(f"No admin with email {email}")
    plan = db.session.query(Plan).filter_by(name=plan_name).first()
    if not plan:
        raise click.ClickException(f"No plan named {plan_name}")

    try:
        subscription = subscription_service.assign_plan(admin.id, plan.id)
    except SubscriptionError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {admin.email} -> {plan.name} ({subscription.status}, ends {subscription.end_date or 'never'})")


@click.group('subscriptions')
def subscriptions_group():
    """Subscription maintenance commands."""


@subscriptions_group.command('expire')
@with_appcontext
def expire_subscriptions():
    """Mark subscriptions past their end date as expired."""
    count = subscription_service.expire_subscriptions()
    click.echo(f"Expired {count} subscription(s).")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = security_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(plans_group)
    app.cli.add_command(admins_group)
    app.cli.add_command(subscriptions_group)
    app.cli.add_command(maintenance_group)

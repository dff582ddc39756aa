# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py and JWT_SECRET_KEY to a non-empty value.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--shop "Main Shop"]
#   Idempotent bootstrap: creates tables, a default owner and a default shop.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shop management:
# - python -m flask shops list
# - python -m flask shops create --name "Corner Shop" --owner-email owner@stockroom.local
#   Create a shop; the owner becomes an ACCEPTED member.
#
# User inspection/bootstrap:
# - python -m flask users list
# - python -m flask users create --username alice --email alice@stockroom.local --password "Password123!"
#
# Memberships:
# - python -m flask memberships list [--shop-id 1]
# - python -m flask memberships backfill
#   Create membership rows for users that only carry the legacy users.shop_id.
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.
# - python -m flask maintenance security-events [--shop-id 1] [--type TENANT_ACCESS_DENIED] [--limit 50]
#   Newest security events first.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import StockroomError
from .models import Shop, User, UserShop
from .services import auth_service
from .services import membership_service
from .services import security_service
from .services import shop_service


DEFAULT_OWNER = ("owner", "owner@stockroom.local", "Password123!")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--shop', 'shop_name', default='Main Shop', help='Default shop name')
@with_appcontext
def init_system(shop_name):
    """
    Initialize a usable Stockroom database.

    Creates:
    - All tables (no-op when they exist)
    - Default owner: owner@stockroom.local / Password123!
    - Default shop, owned by that user (ACCEPTED membership)

    SECURITY: Change the password immediately in production!
    """
    click.echo("START Initializing Stockroom...")
    db.create_all()

    username, email, password = DEFAULT_OWNER
    owner = db.session.query(User).filter_by(email=email).first()
    if not owner:
        owner = User(
            username=username,
            email=email,
            password_hash=auth_service.hash_password(password),
        )
        db.session.add(owner)
        db.session.commit()
        click.echo(f"PASS Created owner: {username} ({email})")
    else:
        click.echo(f"PASS Using existing owner: {owner.username} (ID: {owner.id})")

    shop = db.session.query(Shop).filter_by(name=shop_name).first()
    if not shop:
        shop = shop_service.create_shop({"name": shop_name}, owner.id)
        click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id})")
    else:
        click.echo(f"PASS Using existing shop: {shop.name} (ID: {shop.id})")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   {username} -> {email} / {password}")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('shops')
def shops_group():
    """Shop (tenant) management."""


@shops_group.command('list')
@with_appcontext
def list_shops_cli():
    shops = shop_service.list_shops()
    if not shops:
        click.echo("No shops found.")
        return

    click.echo(f"{'ID':<5} {'Name':<30} {'Members':<8} {'Accepted'}")
    for shop in shops:
        members = db.session.query(UserShop).filter_by(shop_id=shop.id).count()
        accepted = db.session.query(UserShop).filter_by(shop_id=shop.id, accepted_into_shop=True).count()
        click.echo(f"{shop.id:<5} {shop.name:<30} {members:<8} {accepted}")


@shops_group.command('create')
@click.option('--name', required=True, help='Shop name')
@click.option('--owner-email', required=True, help='Email of the user who owns the shop')
@with_appcontext
def create_shop_cli(name, owner_email):
    owner = db.session.query(User).filter_by(email=owner_email.strip().lower()).first()
    if not owner:
        raise click.ClickException(f"User '{owner_email}' not found")

    try:
        shop = shop_service.create_shop({"name": name}, owner.id)
    except StockroomError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created shop: {shop.name} (ID: {shop.id}), owner {owner.email}")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users with the shops they belong to."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Shops'}")
    click.echo("=" * 90)

    for user in users:
        shops = membership_service.list_user_shops(user.id)
        shops_str = ", ".join(
            f"{s['id']}{'' if s['acceptedIntoShop'] else ' (pending)'}" for s in shops
        ) or "none"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {shops_str}")

    click.echo("=" * 90 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user_cli(username, email, password):
    try:
        result = auth_service.register(username=username, email=email, password=password)
    except StockroomError as e:
        raise click.ClickException(e.message)
    user = result["user"]
    click.echo(f"PASS Created user: {user['username']} ({user['email']}) ID {user['id']}")


@click.group('memberships')
def memberships_group():
    """User/shop membership inspection and repair."""


@memberships_group.command('list')
@click.option('--shop-id', type=int, help='Filter by shop ID')
@with_appcontext
def list_memberships_cli(shop_id):
    query = db.session.query(UserShop).order_by(UserShop.shop_id.asc(), UserShop.id.asc())
    if shop_id:
        query = query.filter_by(shop_id=shop_id)

    rows = query.all()
    if not rows:
        click.echo("No memberships found.")
        return

    click.echo(f"{'Shop':<6} {'User':<6} {'State':<10} {'Permission'}")
    for row in rows:
        state = "ACCEPTED" if row.accepted_into_shop else "PENDING"
        click.echo(f"{row.shop_id:<6} {row.user_id:<6} {state:<10} {row.effective_permission or '-'}")


@memberships_group.command('backfill')
@with_appcontext
def backfill_memberships_cli():
    """
    Create UserShop rows from legacy users.shop_id values.

    Safe to re-run: existing pairs are skipped.
    """
    created = membership_service.backfill_legacy_memberships()
    click.echo(f"PASS Created {created} membership rows.")


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


@maintenance_group.command('security-events')
@click.option('--shop-id', type=int, default=None)
@click.option('--type', 'event_type', default=None, help='e.g. TENANT_ACCESS_DENIED')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def list_security_events_cli(shop_id, event_type, limit):
    """List recent security events, newest first."""
    events = security_service.list_security_events(shop_id=shop_id, event_type=event_type, limit=limit)
    if not events:
        click.echo("No security events found.")
        return

    click.echo(f"{'When':<22} {'Type':<22} {'User':<6} {'Shop':<6} {'Request':<30} {'Reason'}")
    for event in events:
        data = event.to_dict()
        request_line = f"{data['action'] or ''} {data['resource'] or ''}".strip()
        click.echo(
            f"{data['occurred_at']:<22} {data['event_type']:<22} {str(data['user_id']):<6} "
            f"{str(data['shop_id']):<6} {request_line:<30} {data['reason'] or ''}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(users_group)
    app.cli.add_command(memberships_group)
    app.cli.add_command(maintenance_group)

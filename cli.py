"""
Terminal boards for the kitchen and the floor.

``flask kitchen-board`` logs in as a chef and ``flask service-board`` as a
waiter, then print their queue on the role's poll interval until Ctrl+C.
"""
import time
from typing import List

import click
from flask import current_app

from api_client import JavaBiteError, build_client
from dashboards import ChefDashboard, WaiterDashboard
from models import Identity, Order
from polling import Poller
from statuses import style_for


def _login(email: str, password: str, role: str):
    client = build_client()
    try:
        user: Identity = client.login(email, password)
    except JavaBiteError as e:
        raise click.ClickException(e.message)
    if user.role != role:
        raise click.ClickException(f"{email} is not a {role.lower()} account")
    return client


def format_order(order: Order) -> str:
    style = style_for("order", order.status)
    items = ", ".join(
        f"{i.quantity}x {i.menu_item.name if i.menu_item else 'Unknown Item'}"
        for i in order.items
    )
    table = order.table_number or "-"
    return f"#{order.id:<5} table {table:<3} {style.label:<15} {items}"


def print_orders(title: str, orders: List[Order]):
    click.echo(f"== {title} ({len(orders)}) ==")
    if not orders:
        click.echo("  (none)")
    for order in orders:
        click.echo(f"  {format_order(order)}")


def run_board(show, interval: float, once: bool, name: str):
    if once:
        show()
        return
    with Poller(interval, show, name=name):
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            click.echo("Stopped.")


def register_cli(app):
    @app.cli.command("kitchen-board")
    @click.option("--email", envvar="CHEF_EMAIL", required=True)
    @click.option("--password", envvar="CHEF_PASSWORD", prompt=True, hide_input=True)
    @click.option("--tab", type=click.Choice(ChefDashboard.TABS), default="new")
    @click.option("--interval", type=float, default=None, help="Seconds between polls.")
    @click.option("--once", is_flag=True, help="Print one snapshot and exit.")
    def kitchen_board(email, password, tab, interval, once):
        """Poll the chef queue and print it."""
        dash = ChefDashboard(_login(email, password, "CHEF"), tab=tab)

        def show():
            dash.refresh()
            if dash.error:
                click.echo(f"! {dash.error}", err=True)
            print_orders(f"Kitchen: {tab}", dash.orders)

        run_board(show, interval or current_app.config["CHEF_POLL_SECONDS"], once, "kitchen")

    @app.cli.command("service-board")
    @click.option("--email", envvar="WAITER_EMAIL", required=True)
    @click.option("--password", envvar="WAITER_PASSWORD", prompt=True, hide_input=True)
    @click.option("--interval", type=float, default=None, help="Seconds between polls.")
    @click.option("--once", is_flag=True, help="Print one snapshot and exit.")
    def service_board(email, password, interval, once):
        """Poll the preparing and ready queues and print them."""
        dash = WaiterDashboard(_login(email, password, "WAITER"))

        def show():
            dash.refresh()
            if dash.error:
                click.echo(f"! {dash.error}", err=True)
            print_orders("Being prepared", dash.preparing)
            print_orders("Ready to serve", dash.ready)

        run_board(show, interval or current_app.config["WAITER_POLL_SECONDS"], once, "service")

"""
Order & Inventory CLI.

Command-line interface for common operations.
"""

import sys
from decimal import Decimal, InvalidOperation

import typer
from rich.console import Console
from rich.table import Table

from shared.infrastructure.db import engine, get_db_context, unit_of_work
from shared.utils.exceptions import AppException

app = typer.Typer(
    name="orders-inventory",
    help="Order lifecycle and ingredient inventory CLI",
    add_completion=False,
)
console = Console()

CLI_ACTOR = "cli"


def _parse_quantity(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        console.print(f"[red]✗ Not a number: {value}[/red]")
        raise typer.Exit(1)


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def db_init():
    """Create all tables that do not exist yet."""
    from rest_api.models import Base

    Base.metadata.create_all(bind=engine)
    console.print(f"[green]✓ Tables ready ({len(Base.metadata.tables)} tables)[/green]")


@app.command()
def seed(
    force: bool = typer.Option(False, "--force", "-f", help="Allow seeding in production"),
):
    """Seed the database with the demo menu."""
    from shared.config.settings import settings
    from rest_api.seed import seed as seed_demo

    if settings.environment == "production" and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    with get_db_context() as db:
        added = seed_demo(db)

    if added:
        console.print("[green]✓ Demo menu seeded[/green]")
    else:
        console.print("[yellow]Demo data already present, nothing to do[/yellow]")


# =============================================================================
# Inventory Commands
# =============================================================================

@app.command()
def low_stock():
    """List ingredients at or below their minimum stock."""
    from rest_api.services.domain import IngredientLedger

    with get_db_context() as db:
        ingredients = IngredientLedger(db).list_low_stock()

        if not ingredients:
            console.print("[green]✓ No ingredient is low on stock[/green]")
            return

        table = Table(title="Low Stock")
        table.add_column("ID", style="cyan")
        table.add_column("Ingredient", style="cyan")
        table.add_column("Stock", style="red")
        table.add_column("Minimum", style="yellow")
        table.add_column("Unit")

        for ingredient in ingredients:
            table.add_row(
                str(ingredient.id),
                ingredient.name,
                str(ingredient.current_stock),
                str(ingredient.minimum_stock),
                ingredient.unit,
            )

        console.print(table)


@app.command()
def restock(
    ingredient_id: int = typer.Argument(..., help="Ingredient to restock"),
    quantity: str = typer.Argument(..., help="Quantity to add, e.g. 2.5"),
    reason: str = typer.Option("Delivery", "--reason", "-r", help="Ledger reason"),
):
    """Add stock to an ingredient and record it in the ledger."""
    from shared.utils.schemas import StockAdjustmentRequest
    from rest_api.services.domain import IngredientLedger

    amount = _parse_quantity(quantity)
    if amount <= 0:
        console.print("[red]✗ Restock quantity must be positive[/red]")
        raise typer.Exit(1)

    with get_db_context() as db:
        try:
            with unit_of_work(db):
                change = IngredientLedger(db).adjust_stock(
                    ingredient_id,
                    StockAdjustmentRequest(operation="restock", quantity=amount, reason=reason),
                    actor_id=CLI_ACTOR,
                )
        except AppException as e:
            console.print(f"[red]✗ {e.detail}[/red]")
            raise typer.Exit(1)

        console.print(
            f"[green]✓ {change.ingredient.name}: "
            f"{change.history.previous_stock} → {change.history.new_stock} {change.ingredient.unit}[/green]"
        )


@app.command()
def availability():
    """Show how many portions of each product current stock covers."""
    from rest_api.services.domain import OrderConsumptionEngine, RecipeCatalog

    with get_db_context() as db:
        catalog = RecipeCatalog(db)
        consumption = OrderConsumptionEngine(db, catalog=catalog)

        table = Table(title="Product Availability")
        table.add_column("Product", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Portions", style="yellow")
        table.add_column("Limited by")

        for product in catalog.list_products():
            result = consumption.product_availability(product)
            table.add_row(
                product.name,
                result.status,
                "∞" if result.max_portions is None else str(result.max_portions),
                ", ".join(limit.ingredient.name for limit in result.limiting) or "-",
            )

        console.print(table)


# =============================================================================
# Info Commands
# =============================================================================

@app.command()
def version():
    """Show version information."""
    from importlib.metadata import PackageNotFoundError, version as package_version

    try:
        api_version = package_version("orders-inventory")
    except PackageNotFoundError:
        api_version = "unknown"

    table = Table(title="Order & Inventory Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", api_version)
    table.add_row("Python", sys.version.split()[0])
    table.add_row("Database", engine.dialect.name)

    console.print(table)


if __name__ == "__main__":
    app()

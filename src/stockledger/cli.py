"""Command line interface for the stock ledger."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional

import typer
import uvicorn

from . import consistency, crud, queries, schemas
from .config import Settings, get_settings
from .database import get_engine, get_session_factory, init_database, session_scope
from .exceptions import StockLedgerError
from .logging_config import setup_logging
from .posting import PostingEngine

app = typer.Typer(help="Manage products and post stock movements.")

SYSTEM_PRINCIPAL = "system"


def _print_header(title: str) -> None:
    typer.secho(title, bold=True, fg=typer.colors.CYAN)


def _fail(exc: StockLedgerError) -> None:
    typer.secho(f"{exc.code}: {exc.message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def _resolve_settings() -> Settings:
    settings = get_settings()
    setup_logging(settings.log_level)
    init_database(get_engine())
    return settings


def _posting_engine(settings: Settings) -> PostingEngine:
    return PostingEngine(
        get_session_factory(),
        lock_timeout=settings.lock_timeout,
        max_retries=settings.max_post_retries,
    )


@app.command()
def run(
    host: Optional[str] = typer.Option(None, help="Hostname to bind"),
    port: Optional[int] = typer.Option(None, help="Port to expose"),
    reload: Optional[bool] = typer.Option(None, help="Enable auto-reload"),
    log_level: Optional[str] = typer.Option(None, help="Uvicorn log level"),
) -> None:
    """Start the HTTP API using Uvicorn."""

    settings = _resolve_settings()

    uvicorn.run(
        "stockledger.app:create_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=settings.reload if reload is None else reload,
        log_level=log_level or settings.log_level,
        factory=True,
    )


@app.command()
def init_db() -> None:
    """Create the database tables."""

    settings = _resolve_settings()
    typer.echo(f"Database initialised at {settings.database_url}")


@app.command()
def show_config() -> None:
    """Print the effective configuration."""

    settings = _resolve_settings()
    typer.echo(f"Database: {settings.database_url}")
    typer.echo(f"Lock timeout: {settings.lock_timeout}s")
    typer.echo(f"Posting retries: {settings.max_post_retries}")
    typer.echo(f"Log level: {settings.log_level}")


@app.command("add-category")
def add_category(
    name: str = typer.Argument(..., help="Unique category name"),
    description: Optional[str] = typer.Option(None, help="Free text description"),
) -> None:
    """Create a product category."""

    _resolve_settings()
    try:
        with session_scope() as session:
            category = crud.create_category(
                session, schemas.CategoryCreate(name=name, description=description)
            )
            typer.secho(f"Created category {category.name} (id={category.id})", fg=typer.colors.GREEN)
    except StockLedgerError as exc:
        _fail(exc)


@app.command("add-product")
def add_product(
    name: str = typer.Argument(..., help="Product name"),
    category_id: int = typer.Option(..., "--category-id", help="Owning category"),
    unit_price: str = typer.Option("0.00", "--price", help="Unit price with two decimals"),
    minimum_stock: int = typer.Option(10, help="Low stock threshold"),
    sku: Optional[str] = typer.Option(None, help="Unique stock keeping unit"),
    supplier_id: Optional[int] = typer.Option(None, help="Supplier reference"),
    opening_stock: int = typer.Option(0, help="Quantity posted as the opening StockIn"),
    user: str = typer.Option(SYSTEM_PRINCIPAL, help="Principal recorded on the opening posting"),
) -> None:
    """Create a product, optionally with an opening balance."""

    try:
        price = Decimal(unit_price)
    except InvalidOperation as exc:
        raise typer.BadParameter(f"not a decimal amount: {unit_price}", param_hint="--price") from exc

    settings = _resolve_settings()
    try:
        with session_scope() as session:
            product = crud.create_stocked_product(
                session,
                schemas.ProductCreate(
                    name=name,
                    category_id=category_id,
                    unit_price=price,
                    minimum_stock=minimum_stock,
                    sku=sku,
                    supplier_id=supplier_id,
                    opening_stock=opening_stock,
                ),
                _posting_engine(settings),
                user,
            )
            product_id = product.id
    except StockLedgerError as exc:
        _fail(exc)
    typer.secho(f"Created product {name} (id={product_id}, stock={opening_stock})", fg=typer.colors.GREEN)


@app.command()
def post(
    product_id: int = typer.Argument(..., help="Product to post against"),
    transaction_type: str = typer.Argument(..., help="StockIn, StockOut or Adjustment"),
    quantity: int = typer.Argument(..., help="Units moved, or the new total for an adjustment"),
    remarks: str = typer.Option(..., "--remarks", "-r", help="Reason recorded on the ledger"),
    user: str = typer.Option(SYSTEM_PRINCIPAL, "--user", "-u", help="Acting principal"),
) -> None:
    """Post a stock movement."""

    settings = _resolve_settings()
    try:
        entry = _posting_engine(settings).post(product_id, transaction_type, quantity, remarks, user)
    except StockLedgerError as exc:
        _fail(exc)
    typer.secho(
        f"#{entry.id} {entry.transaction_type.value} {entry.quantity}: "
        f"{entry.stock_before} -> {entry.stock_after}",
        fg=typer.colors.GREEN,
    )


@app.command()
def history(product_id: int = typer.Argument(..., help="Product to inspect")) -> None:
    """Show the ledger of a product, newest first."""

    _resolve_settings()
    try:
        with session_scope() as session:
            entries = queries.get_history(session, product_id)
            if not entries:
                typer.echo("No transactions recorded.")
                return
            _print_header(f"Ledger of product {product_id}")
            for entry in entries:
                typer.echo(
                    f"- #{entry.id} {entry.created_date:%Y-%m-%d %H:%M:%S} {entry.transaction_type.value} "
                    f"{entry.quantity} ({entry.stock_before} -> {entry.stock_after}) "
                    f"by {entry.created_by}: {entry.remarks}"
                )
    except StockLedgerError as exc:
        _fail(exc)


@app.command("low-stock")
def low_stock() -> None:
    """List active products below their minimum stock."""

    _resolve_settings()
    with session_scope() as session:
        products = queries.get_low_stock(session)
        if not products:
            typer.echo("No products below minimum stock.")
            return
        _print_header("Low stock")
        for product in products:
            typer.echo(
                f"- #{product.id} {product.name} | stock={product.current_stock} | minimum={product.minimum_stock}"
            )


@app.command()
def verify(
    product_id: Optional[int] = typer.Option(None, help="Check a single product instead of all"),
) -> None:
    """Replay the ledger and compare it with stored balances. Exits 1 on drift."""

    _resolve_settings()
    try:
        with session_scope() as session:
            if product_id is None:
                reports = consistency.check_all(session)
            else:
                report = consistency.check_product(session, product_id)
                reports = [] if report.consistent else [report]
    except StockLedgerError as exc:
        _fail(exc)

    if not reports:
        typer.secho("Ledger and balances agree.", fg=typer.colors.GREEN)
        return
    for report in reports:
        typer.secho(
            f"Product {report.product_id}: stored {report.stored_stock}, replayed {report.replayed_stock}",
            fg=typer.colors.RED,
        )
        for issue in report.issues:
            typer.echo(f"  - entry #{issue.transaction_id}: {issue.problem}")
    raise typer.Exit(code=1)


def main() -> None:
    """Entry-point for console scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()

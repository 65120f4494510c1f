#!/usr/bin/env python3
"""
Fund CLI - balances and expense summaries from the JSON document store.
"""

import asyncio

import click

from ..core.config import get_config
from ..core.currency import format_vnd
from ..core.datastore import JsonFileDocumentStore, StoreError
from ..services.funds import FundService
from ..services.transactions import TransactionService
from ..services.users import UserDirectory
from ..splits.balances import (
    balances_total,
    calculate_balances,
    calculate_daily_expenses,
    calculate_total_expense,
    personal_transactions,
    sort_balances_for_display,
)
from ..splits.settlement import outstanding_debt


async def _load_fund_data(fund_id: str):
    store = JsonFileDocumentStore(get_config().data_dir)
    fund = await FundService(store).get_fund(fund_id)
    if fund is None:
        raise click.ClickException(f"Fund not found: {fund_id}")
    transactions = await TransactionService(store).get_fund_transactions(fund_id)
    user_ids = set(fund.members) | {s.user_id for t in transactions for s in t.splits}
    users = await UserDirectory(store).batch_get(user_ids)
    return fund, transactions, users


@click.command()
@click.argument("fund_id")
@click.option("--daily", is_flag=True, help="Show daily expense totals")
@click.option("--user", "user_id", help="Show one member's transactions and outstanding debt")
@click.pass_context
def balances(ctx: click.Context, fund_id: str, daily: bool, user_id: str | None) -> None:
    """
    Show member balances for FUND_ID.

    Examples:
      fundflow balances abc123
      fundflow balances abc123 --daily
      fundflow balances abc123 --user u1
    """
    try:
        fund, transactions, users = asyncio.run(_load_fund_data(fund_id))
    except StoreError as e:
        click.echo(f"❌ Error reading data: {e}", err=True)
        raise click.ClickException(str(e)) from e

    def name(uid: str) -> str:
        user = users.get(uid)
        return user.display_name if user is not None else f"User {uid[:4]}"

    fund_balances = sort_balances_for_display(calculate_balances(fund_id, transactions))

    click.echo(f"💰 {fund.name} ({len(transactions)} transactions)")
    click.echo(f"Total expense: {format_vnd(calculate_total_expense(transactions))}")
    click.echo()
    for balance in fund_balances:
        click.echo(f"  {name(balance.user_id):<20} {format_vnd(balance.amount, signed=True):>16}")

    total = balances_total(fund_balances)
    if total != 0:
        click.echo(f"\n⚠️  Balances are off by {format_vnd(total, signed=True)}")

    if daily:
        click.echo("\nDaily expenses:")
        frame = calculate_daily_expenses(transactions)
        if frame.empty:
            click.echo("  (no transactions)")
        else:
            for row in frame.itertuples(index=False):
                click.echo(f"  {row.date}  {format_vnd(row.expense):>16}  ({row.count} transactions)")

    if user_id:
        debt = outstanding_debt(fund_balances, user_id)
        click.echo(f"\n{name(user_id)} owes: {format_vnd(debt)}")
        for transaction in personal_transactions(user_id, transactions):
            split = transaction.split_for(user_id)
            share = format_vnd(split.amount, signed=True) if split is not None else "-"
            click.echo(f"  {transaction.description[:40]:<40} {share:>16}")

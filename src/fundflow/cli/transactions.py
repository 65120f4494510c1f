#!/usr/bin/env python3
"""
Transaction CLI - record a manually entered expense.
"""

import asyncio
import sys

import click

from ..ai.form_validator import TransactionFormValidator, parse_form_amount
from ..ai.models import has_errors
from ..ai.validator import ValidationPolicy
from ..core.config import get_config
from ..core.currency import format_vnd
from ..core.datastore import JsonFileDocumentStore, StoreError
from ..core.models import TransactionInput
from ..services.lifecycle import TransactionLifecycle
from ..services.notifications import LoggingNotificationDispatcher
from ..services.transactions import TransactionService
from ..services.users import UserDirectory
from ..splits.calculator import SplitCalculationError, SplitStrategy, compute_splits
from .proposals import load_fund_members


@click.command()
@click.argument("description")
@click.argument("amount")
@click.option("--fund", "fund_id", required=True, help="Fund the expense belongs to")
@click.option("--payer", required=True, help="User id of whoever paid")
@click.option("--participants", "-p", help="Comma-separated user ids who consumed (default: every member)")
@click.option(
    "--payer-participates/--payer-external",
    default=None,
    help="Whether the payer consumed a share (default: inferred from participants)",
)
def add(
    description: str,
    amount: str,
    fund_id: str,
    payer: str,
    participants: str | None,
    payer_participates: bool | None,
) -> None:
    """
    Record an expense of AMOUNT split evenly among the participants.

    Examples:
      fundflow add "Ăn trưa" 300.000 --fund abc123 --payer u1
      fundflow add "Taxi" 90000 --fund abc123 --payer u2 -p u1,u3 --payer-external
    """
    config = get_config()
    store = JsonFileDocumentStore(config.data_dir)
    participant_ids = [p.strip() for p in (participants or "").split(",") if p.strip()]

    async def run():
        fund, members = await load_fund_members(store, fund_id)
        form = TransactionFormValidator(members, silent_tolerance=config.validation.silent_tolerance)

        value = parse_form_amount(amount)
        splits = []
        if value is not None and value > 0:
            strategy = SplitStrategy.SELECTIVE if participant_ids else SplitStrategy.EVEN
            try:
                splits = compute_splits(
                    strategy,
                    value,
                    payer,
                    participant_ids=participant_ids,
                    member_ids=fund.members,
                    payer_participates=payer_participates,
                )
            except SplitCalculationError as e:
                raise click.ClickException(str(e)) from e

        issues = form.validate_form(description, amount, splits)
        for issue in issues:
            marker = "❌" if issue.is_error else "⚠️ "
            click.echo(f"{marker} [{issue.field}] {issue.message}", err=issue.is_error)
        if has_errors(issues):
            return None

        failures: list[str] = []
        lifecycle = TransactionLifecycle(
            TransactionService(store),
            UserDirectory.from_config(store, config.cache),
            LoggingNotificationDispatcher() if config.notifications.enabled else None,
            error_reporter=failures.append,
            policy=ValidationPolicy.from_config(config.validation),
        )
        transaction = await lifecycle.create_transaction(
            TransactionInput(fund_id=fund_id, description=description.strip(), amount=value, paid_by=payer, splits=splits),
            member_ids=fund.members,
            created_by=payer,
        )
        if transaction is None:
            raise click.ClickException("; ".join(failures) or "Could not save the transaction")
        return transaction

    try:
        transaction = asyncio.run(run())
    except StoreError as e:
        raise click.ClickException(str(e)) from e

    if transaction is None:
        sys.exit(1)

    click.echo(f"💾 Saved transaction {transaction.id}: {transaction.description} {format_vnd(transaction.amount)}")
    for split in transaction.splits:
        click.echo(f"  {split.user_id}: {format_vnd(split.amount, signed=True)}")

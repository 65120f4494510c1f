#!/usr/bin/env python3
"""
Proposal CLI - validate AI transaction proposals and parse free text with an LLM.
"""

import asyncio
import sys

import click

from ..ai.models import ValidationResult
from ..ai.parser import AIConfigurationError, AIServiceError, LLMTransactionParser, propose_transaction
from ..ai.validator import ProposalParseError, TransactionValidationError, TransactionValidator, ValidationPolicy
from ..core.config import get_config
from ..core.currency import format_vnd
from ..core.datastore import JsonFileDocumentStore, StoreError
from ..core.json_utils import format_json
from ..core.models import Fund, User
from ..services.funds import FundService
from ..services.lifecycle import TransactionLifecycle
from ..services.notifications import LoggingNotificationDispatcher
from ..services.transactions import TransactionService
from ..services.users import UserDirectory


async def load_fund_members(store: JsonFileDocumentStore, fund_id: str) -> tuple[Fund, list[User]]:
    fund = await FundService(store).get_fund(fund_id)
    if fund is None:
        raise click.ClickException(f"Fund not found: {fund_id}")
    users = await UserDirectory(store).batch_get(fund.members)
    return fund, [users.get(member_id) or User.placeholder(member_id) for member_id in fund.members]


def _echo_result(result: ValidationResult, members: list[User]) -> None:
    names = {member.id: member.display_name for member in members}
    draft = result.draft

    click.echo("✅ Proposal is valid")
    click.echo(f"  Description: {draft.description}")
    click.echo(f"  Amount: {format_vnd(draft.amount)}")
    click.echo(f"  Paid by: {names.get(draft.paid_by, draft.paid_by)}")
    for split in draft.splits:
        click.echo(f"    {names.get(split.user_id, split.user_id):<20} {format_vnd(split.amount, signed=True):>16}")
    for warning in result.warnings:
        click.echo(f"⚠️  {warning.message}")


def _result_document(result: ValidationResult) -> dict:
    return {
        "proposal": result.draft.to_proposal(),
        "warnings": [warning.to_dict() for warning in result.warnings],
    }


def _echo_issues(error: TransactionValidationError) -> None:
    click.echo("❌ Proposal rejected:", err=True)
    for issue in error.issues:
        marker = "❌" if issue.is_error else "⚠️ "
        click.echo(f"  {marker} [{issue.field}] {issue.message}", err=True)


@click.command()
@click.argument("proposal_file", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--fund", "fund_id", required=True, help="Fund whose members the proposal must use")
@click.option("--json", "as_json", is_flag=True, help="Print the accepted proposal and warnings as JSON")
def validate(proposal_file, fund_id: str, as_json: bool) -> None:
    """
    Validate a JSON proposal (file or stdin) against a fund's members.

    Examples:
      fundflow validate proposal.json --fund abc123
      cat response.txt | fundflow validate --fund abc123
      fundflow validate proposal.json --fund abc123 --json
    """
    config = get_config()
    raw = proposal_file.read()

    try:
        _, members = asyncio.run(load_fund_members(JsonFileDocumentStore(config.data_dir), fund_id))
    except StoreError as e:
        raise click.ClickException(str(e)) from e

    validator = TransactionValidator(members, ValidationPolicy.from_config(config.validation))
    try:
        result = validator.validate_json(raw)
    except ProposalParseError as e:
        raise click.ClickException(str(e)) from e
    except TransactionValidationError as e:
        _echo_issues(e)
        sys.exit(1)

    if as_json:
        click.echo(format_json(_result_document(result)))
        return
    _echo_result(result, members)


@click.command()
@click.argument("message")
@click.option("--fund", "fund_id", required=True, help="Fund the expense belongs to")
@click.option("--user", "user_id", help="Current user (assumed payer when none is named)")
@click.option("--model", "model_id", help="AI model id (default from configuration)")
@click.option("--save", is_flag=True, help="Record the transaction when the proposal is valid")
def parse(message: str, fund_id: str, user_id: str | None, model_id: str | None, save: bool) -> None:
    """
    Turn a free-text expense into a validated transaction proposal.

    Examples:
      fundflow parse "Minh trả 300k ăn trưa cho cả nhóm" --fund abc123 --user u1
      fundflow parse "mỗi người 15k ăn sáng" --fund abc123 --user u1 --save
    """
    config = get_config()
    store = JsonFileDocumentStore(config.data_dir)

    async def run():
        fund, members = await load_fund_members(store, fund_id)
        result = await propose_transaction(
            LLMTransactionParser(config.llm),
            message,
            fund,
            members,
            current_user_id=user_id,
            model_id=model_id,
            policy=ValidationPolicy.from_config(config.validation),
            store=store,
        )
        transaction = None
        if save:
            failures: list[str] = []
            lifecycle = TransactionLifecycle(
                TransactionService(store),
                UserDirectory.from_config(store, config.cache),
                LoggingNotificationDispatcher() if config.notifications.enabled else None,
                error_reporter=failures.append,
                policy=ValidationPolicy.from_config(config.validation),
            )
            transaction = await lifecycle.create_transaction(
                result.draft.to_input(fund_id), member_ids=fund.members, created_by=user_id
            )
            if transaction is None:
                raise click.ClickException("; ".join(failures) or "Could not save the transaction")
        return members, result, transaction

    try:
        members, result, transaction = asyncio.run(run())
    except (AIConfigurationError, AIServiceError, ProposalParseError, StoreError) as e:
        click.echo(f"❌ {e}", err=True)
        raise click.ClickException(str(e)) from e
    except TransactionValidationError as e:
        _echo_issues(e)
        sys.exit(1)

    _echo_result(result, members)
    if transaction is not None:
        click.echo(f"\n💾 Saved transaction {transaction.id}")

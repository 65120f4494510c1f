#!/usr/bin/env python3
"""
Split CLI - compute signed splits for an expense without recording it.
"""

import click

from ..core.currency import format_vnd, parse_vnd_string, sum_amounts
from ..splits.calculator import SplitCalculationError, SplitStrategy, compute_splits


def _parse_weights(weights: tuple[str, ...]) -> dict[str, float]:
    parsed: dict[str, float] = {}
    for item in weights:
        user_id, sep, value = item.partition("=")
        amount = parse_vnd_string(value) if sep else None
        if not user_id or amount is None:
            raise click.BadParameter(f"Expected USER=VALUE, got {item!r}", param_hint="--weight")
        parsed[user_id.strip()] = amount
    return parsed


@click.command()
@click.argument("amount")
@click.option("--payer", required=True, help="User id of whoever paid")
@click.option("--participants", "-p", help="Comma-separated user ids who consumed")
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in SplitStrategy]),
    default=SplitStrategy.EVEN.value,
    help="Distribution strategy (default: even)",
)
@click.option("--weight", "-w", multiple=True, help="USER=VALUE percentage or amount (percentage/custom)")
@click.option(
    "--payer-participates/--payer-external",
    default=None,
    help="Whether the payer consumed a share (default: inferred from participants)",
)
def split(
    amount: str,
    payer: str,
    participants: str | None,
    strategy: str,
    weight: tuple[str, ...],
    payer_participates: bool | None,
) -> None:
    """
    Compute signed splits for AMOUNT.

    Examples:
      fundflow split 300000 --payer A -p A,B,C
      fundflow split 300k --payer A -p B,C --payer-external
      fundflow split 100000 --payer A --strategy percentage -w A=50 -w B=50
    """
    text = amount.strip()
    if text.lower().endswith("k"):
        value = parse_vnd_string(text[:-1])
        value = value * 1000 if value is not None else None
    else:
        value = parse_vnd_string(text)
    if value is None:
        raise click.BadParameter(f"Not an amount: {amount!r}", param_hint="AMOUNT")

    participant_ids = [p.strip() for p in (participants or "").split(",") if p.strip()]

    try:
        splits = compute_splits(
            SplitStrategy(strategy),
            value,
            payer,
            participant_ids=participant_ids,
            member_ids=participant_ids,
            weights=_parse_weights(weight) if weight else None,
            payer_participates=payer_participates,
        )
    except SplitCalculationError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Splits for {format_vnd(value)} paid by {payer}:")
    for s in splits:
        click.echo(f"  {s.user_id}: {format_vnd(s.amount, signed=True)}")
    click.echo(f"Total: {format_vnd(sum_amounts(s.amount for s in splits), signed=True)}")

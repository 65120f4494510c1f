#!/usr/bin/env python3
"""
Integration tests for the split, balances, validate, parse and add commands.

Fund data is seeded as JSON collection files in the configured data directory.
"""

import json

import pytest
from click.testing import CliRunner

from fundflow.cli.main import main
from fundflow.core.json_utils import read_json, write_json

PROPOSAL = {
    "desc": "Hưng trả 300.000đ ăn trưa",
    "totalAmount": 300000,
    "payer": "A",
    "users": {"A": "200000", "B": "-100000", "C": "-100000"},
}


@pytest.fixture
def data_dir(tmp_path, members, fund, sample_transactions):
    """Data directory seeded with the shared fixtures."""
    root = tmp_path / "fundflow_data"
    write_json(root / "users.json", {m.id: m.to_dict() for m in members})
    write_json(root / "funds.json", {fund.id: fund.to_dict()})
    write_json(root / "transactions.json", {t.id: t.to_dict() for t in sample_transactions})
    return root


@pytest.fixture
def runner():
    return CliRunner()


@pytest.mark.integration
@pytest.mark.cli
class TestSplitCommand:
    """Test fundflow split."""

    def test_even_split_with_participating_payer(self, runner):
        result = runner.invoke(main, ["split", "300k", "--payer", "A", "-p", "A,B,C"])

        assert result.exit_code == 0
        assert "Splits for 300.000đ paid by A:" in result.output
        assert "  A: +200.000đ" in result.output
        assert "  B: -100.000đ" in result.output
        assert "  C: -100.000đ" in result.output
        assert "Total: 0đ" in result.output

    def test_external_payer(self, runner):
        result = runner.invoke(main, ["split", "300000", "--payer", "A", "-p", "B,C", "--payer-external"])

        assert result.exit_code == 0
        assert "  A: +300.000đ" in result.output
        assert "  B: -150.000đ" in result.output

    def test_percentage_weights(self, runner):
        result = runner.invoke(
            main, ["split", "100.000", "--payer", "A", "--strategy", "percentage", "-w", "A=50", "-w", "B=50"]
        )

        assert result.exit_code == 0
        assert "  A: +50.000đ" in result.output
        assert "  B: -50.000đ" in result.output

    def test_calculation_error(self, runner):
        result = runner.invoke(main, ["split", "300000", "--payer", "A", "--strategy", "selective"])

        assert result.exit_code == 1
        assert "Select at least one participant" in result.output

    def test_bad_amount(self, runner):
        result = runner.invoke(main, ["split", "nhiều", "--payer", "A"])

        assert result.exit_code == 2
        assert "Not an amount" in result.output


@pytest.mark.integration
@pytest.mark.cli
class TestBalancesCommand:
    """Test fundflow balances."""

    def test_balances(self, runner, data_dir):
        result = runner.invoke(main, ["balances", "fund-1"])

        assert result.exit_code == 0
        assert "💰 Tam Đảo (2 transactions)" in result.output
        assert "Total expense: 260.000đ" in result.output
        lines = [line for line in result.output.splitlines() if line.startswith("  ")]
        assert "Hưng" in lines[0] and "+170.000đ" in lines[0]
        assert "Minh" in lines[2] and "-130.000đ" in lines[2]
        assert "off by" not in result.output

    def test_daily_and_user(self, runner, data_dir):
        result = runner.invoke(main, ["balances", "fund-1", "--daily", "--user", "C"])

        assert result.exit_code == 0
        assert "Daily expenses:" in result.output
        assert "(1 transactions)" in result.output
        assert "Minh owes: 130.000đ" in result.output
        assert "Taxi" in result.output

    def test_unknown_fund(self, runner, data_dir):
        result = runner.invoke(main, ["balances", "nope"])

        assert result.exit_code == 1
        assert "Fund not found: nope" in result.output


@pytest.mark.integration
@pytest.mark.cli
class TestValidateCommand:
    """Test fundflow validate."""

    def test_valid_proposal_file(self, runner, data_dir, tmp_path):
        proposal_file = tmp_path / "proposal.json"
        proposal_file.write_text(json.dumps(PROPOSAL, ensure_ascii=False), encoding="utf-8")

        result = runner.invoke(main, ["validate", str(proposal_file), "--fund", "fund-1"])

        assert result.exit_code == 0
        assert "✅ Proposal is valid" in result.output
        assert "Paid by: Hưng" in result.output

    def test_proposal_from_stdin_with_code_fence(self, runner, data_dir):
        raw = "```json\n" + json.dumps(PROPOSAL) + "\n```"

        result = runner.invoke(main, ["validate", "--fund", "fund-1"], input=raw)

        assert result.exit_code == 0
        assert "✅ Proposal is valid" in result.output

    def test_rejected_proposal(self, runner, data_dir):
        bad = dict(PROPOSAL, users={"A": "200000", "B": "-100000", "Z": "-100000"})

        result = runner.invoke(main, ["validate", "--fund", "fund-1"], input=json.dumps(bad))

        assert result.exit_code == 1
        assert "Proposal rejected" in result.output
        assert 'User with ID "Z" not found in fund members list' in result.output

    def test_json_output(self, runner, data_dir):
        result = runner.invoke(main, ["validate", "--fund", "fund-1", "--json"], input=json.dumps(PROPOSAL))

        assert result.exit_code == 0
        output = result.output
        document = json.loads(output[output.index("{") : output.rindex("}") + 1])
        assert document["proposal"]["payer"] == "A"
        assert document["proposal"]["users"] == {"A": "200000", "B": "-100000", "C": "-100000"}
        assert document["warnings"] == []
        assert "Hưng trả 300.000đ" in result.output

    def test_unparseable_proposal(self, runner, data_dir):
        result = runner.invoke(main, ["validate", "--fund", "fund-1"], input="không phải JSON")

        assert result.exit_code == 1
        assert "Failed to parse JSON response" in result.output


class FakeParser:
    """Stands in for the HTTP parser; returns a canned proposal."""

    def __init__(self, config):
        self.config = config

    async def aparse(self, message, fund, members, current_user_id=None, model_id=None):
        return json.dumps(PROPOSAL)


@pytest.mark.integration
@pytest.mark.cli
class TestParseCommand:
    """Test fundflow parse."""

    def test_missing_api_key(self, runner, data_dir):
        result = runner.invoke(main, ["parse", "Hưng trả 300k", "--fund", "fund-1"])

        assert result.exit_code == 1
        assert "No active API key found for provider: google" in result.output

    def test_parse_and_save(self, runner, data_dir, monkeypatch):
        monkeypatch.setattr("fundflow.cli.proposals.LLMTransactionParser", FakeParser)

        result = runner.invoke(main, ["parse", "Hưng trả 300k ăn trưa", "--fund", "fund-1", "--user", "A", "--save"])

        assert result.exit_code == 0
        assert "✅ Proposal is valid" in result.output
        assert "💾 Saved transaction" in result.output

        transactions = read_json(data_dir / "transactions.json")
        saved = [t for t in transactions.values() if t.get("aiGenerated")]
        assert len(saved) == 1
        assert saved[0]["aiPrompt"] == "Hưng trả 300k ăn trưa"
        assert read_json(data_dir / "funds.json")["fund-1"]["aiUsageStats"]["totalCalls"] == 1


@pytest.mark.integration
@pytest.mark.cli
class TestAddCommand:
    """Test fundflow add."""

    def test_add_even_split(self, runner, data_dir):
        result = runner.invoke(main, ["add", "Ăn tối", "300.000", "--fund", "fund-1", "--payer", "A"])

        assert result.exit_code == 0
        assert "💾 Saved transaction" in result.output
        assert "  A: +200.000đ" in result.output
        assert "  C: -100.000đ" in result.output

        transactions = read_json(data_dir / "transactions.json")
        [saved] = [t for t in transactions.values() if t["description"] == "Ăn tối"]
        assert saved["amount"] == 300000
        assert sum(split["amount"] for split in saved["splits"]) == 0

    def test_add_external_payer(self, runner, data_dir):
        result = runner.invoke(
            main, ["add", "Taxi", "90000", "--fund", "fund-1", "--payer", "B", "-p", "A,C", "--payer-external"]
        )

        assert result.exit_code == 0
        assert "  B: +90.000đ" in result.output
        assert "  A: -45.000đ" in result.output

    def test_form_errors_block_saving(self, runner, data_dir):
        result = runner.invoke(main, ["add", " ", "abc", "--fund", "fund-1", "--payer", "A"])

        assert result.exit_code == 1
        assert "[description] Please enter a transaction description" in result.output
        assert "[amount] Amount is not a valid number" in result.output
        assert len(read_json(data_dir / "transactions.json")) == 3

    def test_small_amount_warns(self, runner, data_dir):
        result = runner.invoke(main, ["add", "Trà đá", "900", "--fund", "fund-1", "--payer", "A"])

        assert result.exit_code == 0
        assert "are some zeros missing?" in result.output
        assert "💾 Saved transaction" in result.output

    def test_non_member_payer_rejected(self, runner, data_dir):
        result = runner.invoke(main, ["add", "Ăn tối", "300000", "--fund", "fund-1", "--payer", "Z"])

        assert result.exit_code == 1
        assert 'Payer with ID "Z" not found in fund members list' in result.output
        assert len(read_json(data_dir / "transactions.json")) == 3

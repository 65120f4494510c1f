"""
Test Suite for Fund Flow

Test Structure:
- unit/: Unit tests mirroring the src/fundflow package structure

Test Categories:
- Core utilities (amounts, models, config, document store, cache)
- Split calculation, balances and repayments
- Proposal validation, reconciliation and the LLM parser
- Services and session orchestration
- Command-line interface

All test data is synthetic.
"""

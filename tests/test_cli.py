from decimal import Decimal

import pytest

from ewx_rewards import cli
from ewx_rewards.chain import ChainClient
from ewx_rewards.config import load_config
from ewx_rewards.constants import DEFAULT_NODE_URL, SOLUTION_GROUP_STAKE_RECORDS
from ewx_rewards.errors import ValidationError
from ewx_rewards.models import InitialBlockConfidence, RewardTotals
from tests.fakes import ALICE, DISTRIBUTION_BLOCK, GROUP, INITIAL_BLOCK, block_hash, make_config, scenario_chain


def _args(*argv):
    return cli.parse_args(list(argv))


def test_load_config_from_environment():
    env = {"REWARD_PERIOD_INDEX": "614", "GROUP_NAMESPACE": GROUP, "ADDRESS": ALICE, "INDEXER_URL": "http://idx"}
    config = load_config(_args(), env)
    assert config.period_index == 614
    assert config.group_namespace == GROUP
    assert config.address == ALICE
    assert config.rpc_url == DEFAULT_NODE_URL
    assert config.indexer_url == "http://idx"
    assert config.pinned_block_hash is None


def test_flags_override_environment():
    env = {"REWARD_PERIOD_INDEX": "614", "GROUP_NAMESPACE": "other", "ADDRESS": ALICE}
    pinned = "0x" + "AB" * 32
    config = load_config(_args("--period", "615", "--group", GROUP, "--block-hash", pinned, "--verbose"), env)
    assert config.period_index == 615
    assert config.group_namespace == GROUP
    assert config.pinned_block_hash == "0x" + "ab" * 32
    assert config.verbose is True


@pytest.mark.parametrize(
    "env",
    [
        {"GROUP_NAMESPACE": GROUP, "ADDRESS": ALICE},
        {"REWARD_PERIOD_INDEX": "0", "GROUP_NAMESPACE": GROUP, "ADDRESS": ALICE},
        {"REWARD_PERIOD_INDEX": "abc", "GROUP_NAMESPACE": GROUP, "ADDRESS": ALICE},
        {"REWARD_PERIOD_INDEX": "5", "GROUP_NAMESPACE": "  ", "ADDRESS": ALICE},
        {"REWARD_PERIOD_INDEX": "5", "GROUP_NAMESPACE": GROUP},
        {"REWARD_PERIOD_INDEX": "5", "GROUP_NAMESPACE": GROUP, "ADDRESS": "not-an-address"},
        {"REWARD_PERIOD_INDEX": "5", "GROUP_NAMESPACE": GROUP, "ADDRESS": ALICE, "SPECIFIC_BLOCK_HASH": "0x1234"},
        {"REWARD_PERIOD_INDEX": "5", "GROUP_NAMESPACE": GROUP, "ADDRESS": ALICE, "SCAN_TIMEOUT_S": "-1"},
    ],
)
def test_load_config_rejects_bad_input(env):
    with pytest.raises(ValidationError):
        load_config(_args(), env)


def test_run_analysis_end_to_end():
    chain = scenario_chain()
    result = cli.run_analysis(chain, make_config())
    assert result.final_block.number == DISTRIBUTION_BLOCK
    assert result.initial_block.number == INITIAL_BLOCK
    assert result.initial_confidence is InitialBlockConfidence.EXACT
    assert result.period_rewards == RewardTotals(223792384141068974, 1535257246929821022)
    assert result.eligible_rounds == 49
    assert result.votes_submitted == 61
    assert result.vote_ratio_percent.quantize(Decimal("0.01")) == Decimal("124.49")
    assert result.meets_sla is True
    assert result.system_voting_rounds == 49


def test_run_analysis_is_repeatable_with_pinned_block():
    config = make_config(pinned_block_hash=block_hash(DISTRIBUTION_BLOCK))
    assert cli.run_analysis(scenario_chain(), config) == cli.run_analysis(scenario_chain(), config)


def _patch_environment(monkeypatch, chain):
    monkeypatch.setattr(cli, "load_dotenv", lambda *_args, **_kwargs: False)
    monkeypatch.setattr(ChainClient, "connect", classmethod(lambda _cls, _url: chain))
    for name in ("REWARD_PERIOD_INDEX", "GROUP_NAMESPACE", "ADDRESS", "SPECIFIC_BLOCK_HASH", "INDEXER_URL"):
        monkeypatch.delenv(name, raising=False)


def test_main_prints_report_and_disconnects(monkeypatch, capsys):
    chain = scenario_chain()
    _patch_environment(monkeypatch, chain)
    code = cli.main(["--period", "8", "--group", GROUP, "--address", ALICE])
    captured = capsys.readouterr()
    assert code == 0
    assert chain.closed
    assert "REWARD PERIOD ANALYSIS REPORT" in captured.out
    assert "Disconnected" in captured.err


def test_main_reports_failing_stage_and_still_disconnects(monkeypatch, capsys):
    chain = scenario_chain()
    chain.set_storage(SOLUTION_GROUP_STAKE_RECORDS, [GROUP, ALICE], {9: 10}, at=800)
    _patch_environment(monkeypatch, chain)
    code = cli.main(["--period", "8", "--group", GROUP, "--address", ALICE])
    captured = capsys.readouterr()
    assert code == 1
    assert chain.closed
    assert "❌ [subscription]" in captured.err
    assert "REWARD PERIOD ANALYSIS REPORT" not in captured.out


def test_main_pinned_mismatch_names_its_stage(monkeypatch, capsys):
    chain = scenario_chain()
    _patch_environment(monkeypatch, chain)
    code = cli.main(
        ["--period", "8", "--group", GROUP, "--address", ALICE, "--block-hash", block_hash(DISTRIBUTION_BLOCK - 1)]
    )
    assert code == 1
    assert "❌ [distribution-block]" in capsys.readouterr().err


def test_main_invalid_config(monkeypatch, capsys):
    _patch_environment(monkeypatch, scenario_chain())
    assert cli.main(["--group", GROUP, "--address", ALICE]) == 2
    assert "REWARD_PERIOD_INDEX" in capsys.readouterr().err
